"""
Claim type discovery for the configurable-schema tier.

Walks a document's objects (not its arrays) looking for arrays of objects,
samples their records and infers a ClaimTypeConfig for each from key names
and value shapes: start/end date paths, an id, a display name and, for
prescription-like records, a days-supply calculation for the end date.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Optional, Sequence

from apps.worker.lib.field_hints import (
    END_HINTS,
    ID_HINTS,
    NAME_HINTS,
    START_HINTS,
    SUPPLY_HINTS,
    hint_rank,
    is_date_like,
    is_name_like,
)
from packages.shared.models import (
    CalculationDateConfig,
    ClaimTypeConfig,
    DateCalculation,
    FieldConfig,
    FieldDateConfig,
)
from packages.shared.models.common import DEFAULT_PALETTE
from packages.shared.models.enums import CalcOperation, CalcUnit
from packages.shared.utils.paths import resolve_path

logger = logging.getLogger(__name__)

MAX_DEPTH = 5
SAMPLE_SIZE = 25

_PATH_CHARS = (".", "[", "]")


def _plain_key(key: Any) -> bool:
    """True for keys usable as a single path segment (no separators, not blank)."""
    return isinstance(key, str) and bool(key.strip()) and not any(c in key for c in _PATH_CHARS)


def find_record_arrays(document: Any, max_depth: int = MAX_DEPTH) -> list[str]:
    """Paths of every non-empty array of objects reachable through nested objects."""
    found: list[str] = []

    def walk(node: dict, prefix: str, depth: int) -> None:
        if depth > max_depth:
            return
        for key, value in node.items():
            if not _plain_key(key):
                logger.debug("Discovery: key %r cannot be addressed by a path, skipped", key)
                continue
            path = f"{prefix}.{key}" if prefix else key
            if isinstance(value, list):
                if value and all(isinstance(v, dict) for v in value):
                    found.append(path)
            elif isinstance(value, dict):
                walk(value, path, depth + 1)

    if isinstance(document, dict):
        walk(document, "", 0)
    return found


def _candidate_fields(records: Sequence[dict]) -> tuple[Counter, Counter, Counter]:
    """Count, per path, how often it holds a date, a name-like string and a number."""
    dates: Counter = Counter()
    names: Counter = Counter()
    numbers: Counter = Counter()

    def visit(record: dict, prefix: str, nested: bool) -> None:
        for key, value in record.items():
            if not _plain_key(key):
                continue
            path = f"{prefix}.{key}" if prefix else key
            if is_date_like(value):
                dates[path] += 1
            elif is_name_like(value):
                names[path] += 1
            elif isinstance(value, (int, float)) and not isinstance(value, bool):
                numbers[path] += 1
            elif not nested and isinstance(value, dict):
                visit(value, path, True)
            elif not nested and isinstance(value, list) and value and isinstance(value[0], dict):
                visit(value[0], f"{path}[0]", True)

    for record in records:
        visit(record, "", False)
    return dates, names, numbers


def _pick(counts: Counter, hints: tuple[str, ...], exclude: Sequence[str] = ()) -> Optional[str]:
    ranked = []
    for path, count in counts.items():
        if path in exclude:
            continue
        rank = hint_rank(path, hints)
        if rank is not None:
            ranked.append((rank, -count, path.count("."), path))
    if not ranked:
        return None
    return min(ranked)[3]


def infer_claim_type(
    records: Sequence[dict],
    array_path: str,
    name: str,
    color: str,
) -> Optional[ClaimTypeConfig]:
    """Infer a claim type from sample records, or None when no date field is found."""
    dates, names, numbers = _candidate_fields(records[:SAMPLE_SIZE])
    if not dates:
        return None

    start = _pick(dates, START_HINTS) or dates.most_common(1)[0][0]
    end = _pick(dates, END_HINTS, exclude=(start,))
    fallbacks = tuple(p for p, _ in dates.most_common() if p not in (start, end))[:3]

    if end is not None:
        end_date = FieldDateConfig(field=end, fallbacks=(start,))
    else:
        supply = _pick(numbers, SUPPLY_HINTS)
        if supply is not None:
            end_date = CalculationDateConfig(
                calculation=DateCalculation(
                    base_field=start,
                    operation=CalcOperation.ADD,
                    value=supply,
                    unit=CalcUnit.DAYS,
                    default_value=0,
                ),
                fallbacks=fallbacks,
            )
        else:
            end_date = FieldDateConfig(field=start, fallbacks=fallbacks)

    all_fields = Counter({**names, **numbers})
    id_path = _pick(all_fields, ID_HINTS) or "id"
    name_path = _pick(names, NAME_HINTS) or "name"

    return ClaimTypeConfig(
        name=name,
        array_path=array_path,
        color=color,
        id_field=FieldConfig(path=id_path),
        start_date=FieldDateConfig(field=start, fallbacks=fallbacks),
        end_date=end_date,
        display_name=FieldConfig(path=name_path),
    )


def discover_claim_types(
    document: Any,
    palette: Sequence[str] = DEFAULT_PALETTE,
) -> tuple[ClaimTypeConfig, ...]:
    """Infer one claim type per record array; colours cycle through *palette*."""
    discovered: list[ClaimTypeConfig] = []
    used_names: set[str] = set()
    for array_path in find_record_arrays(document):
        records = resolve_path(document, array_path)
        if not isinstance(records, list):
            logger.debug("Discovery: %s does not resolve to an array, ignored", array_path)
            continue
        name = array_path.rsplit(".", 1)[-1]
        if name in used_names:
            name = array_path
        color = palette[len(discovered) % len(palette)]
        ct = infer_claim_type(records, array_path, name, color)
        if ct is None:
            logger.debug("Discovery: %s has no date-like fields, ignored", array_path)
            continue
        used_names.add(name)
        discovered.append(ct)
        logger.debug(
            "Discovery: %s -> start=%s end=%s",
            array_path, ct.start_date.model_dump(), ct.end_date.model_dump(),
        )

    logger.info("Discovered %d claim type(s)", len(discovered))
    return tuple(discovered)
