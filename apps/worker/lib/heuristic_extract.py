"""
Heuristic minimal extractor, the last dispatcher tier.

Any object that directly holds a date-like string and a name-like string is
taken as a claim; its type is the key of the array or object that contains
it. Qualifying objects are not searched further.
"""
from __future__ import annotations

import logging
from typing import Any, Iterator, Optional, Sequence

from apps.worker.lib.field_hints import (
    END_HINTS,
    ID_HINTS,
    NAME_HINTS,
    START_HINTS,
    hint_rank,
    is_date_like,
    is_name_like,
)
from packages.shared.errors import ValidationFailure
from packages.shared.models import ClaimItem, Warning
from packages.shared.models.common import DEFAULT_PALETTE
from packages.shared.utils.dates import parse_date_string

logger = logging.getLogger(__name__)

ROOT_TYPE = "record"
MAX_DEPTH = 8


def _qualifies(node: dict) -> bool:
    values = list(node.values())
    return any(is_date_like(v) for v in values) and any(is_name_like(v) for v in values)


def iter_candidate_records(document: Any, max_depth: int = MAX_DEPTH) -> Iterator[tuple[str, dict]]:
    """Yield (containing key, record) for every qualifying object, in document order."""

    def walk(node: Any, container: str, depth: int):
        if depth > max_depth:
            return
        if isinstance(node, dict):
            if _qualifies(node):
                yield container, node
                return
            for key, value in node.items():
                yield from walk(value, str(key), depth + 1)
        elif isinstance(node, list):
            for item in node:
                yield from walk(item, container, depth + 1)

    yield from walk(document, ROOT_TYPE, 0)


def has_candidate_records(document: Any) -> bool:
    return next(iter_candidate_records(document), None) is not None


def _best_key(record: dict, hints: tuple[str, ...], accept) -> Optional[str]:
    best: Optional[tuple[int, str]] = None
    for key, value in record.items():
        if not accept(value):
            continue
        rank = hint_rank(str(key), hints)
        if rank is not None and (best is None or rank < best[0]):
            best = (rank, key)
    return best[1] if best else None


def _first_key(record: dict, accept) -> Optional[str]:
    return next((key for key, value in record.items() if accept(value)), None)


def heuristic_extract(
    document: Any,
    palette: Sequence[str] = DEFAULT_PALETTE,
) -> tuple[list[ClaimItem], list[Warning]]:
    """
    Extract minimal claims from any document shape.
    Returns (claims, warnings); raises ValidationFailure when nothing qualifies.

    The dispatcher checks has_candidate_records first and skips the tier for
    documents with no candidates, so the ValidationFailure only reaches
    direct callers.
    """
    claims: list[ClaimItem] = []
    warnings: list[Warning] = []
    colors: dict[str, str] = {}
    counts: dict[str, int] = {}

    for claim_type, record in iter_candidate_records(document):
        index = counts.get(claim_type, 0)
        counts[claim_type] = index + 1
        start_key = _best_key(record, START_HINTS, is_date_like) or _first_key(record, is_date_like)
        start = parse_date_string(record[start_key])
        end_key = _best_key(record, END_HINTS, is_date_like)
        end = parse_date_string(record[end_key]) if end_key and end_key != start_key else start

        if end < start:
            warnings.append(Warning(
                code="DATE_RANGE_CORRECTED",
                message=f"{claim_type} record {index + 1}: end date {end} before start date {start}, clamped to start",
                claim_type=claim_type,
                claim_index=index,
            ))
            end = start

        id_key = _best_key(record, ID_HINTS, lambda v: v is not None and not isinstance(v, (dict, list)))
        claim_id = str(record[id_key]) if id_key else f"{claim_type}_{index}"
        name_key = _best_key(record, NAME_HINTS, is_name_like) or _first_key(record, is_name_like)

        if claim_type not in colors:
            colors[claim_type] = palette[len(colors) % len(palette)]
        claims.append(ClaimItem(
            id=claim_id,
            type=claim_type,
            start_date=start,
            end_date=end,
            display_name=record[name_key].strip(),
            color=colors[claim_type],
            details=dict(record),
        ))

    if not claims:
        raise ValidationFailure(
            "No records with a date and a name were found anywhere in the document",
            recovery_suggestions=(
                "Verify the file contains medical claims data",
                "Configure claim types that describe this file's layout",
            ),
        )

    logger.info("Heuristic extraction found %d claims across %d type(s)", len(claims), len(colors))
    return claims, warnings
