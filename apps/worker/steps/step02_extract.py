"""
Step 2: claim extraction.

Turns every element of every configured claim array into a ClaimItem.
A record whose dates cannot be resolved is skipped with a warning; a claim
type that loses every one of its records escalates to a single failure that
lists each record's problem in ``details["errors"]``.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Sequence

from packages.shared.error_messages import describe_date_failure
from packages.shared.errors import DateFailure, ParseFailure, ValidationFailure
from packages.shared.models import (
    ClaimItem,
    ClaimTypeConfig,
    DateFailurePolicy,
    Warning,
)
from packages.shared.models.common import DEFAULT_DATE_FORMAT
from packages.shared.utils.dates import resolve_date
from packages.shared.utils.display import extract_display_fields
from packages.shared.utils.paths import resolve_path, resolve_required

logger = logging.getLogger(__name__)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _resolve_dates(
    record: dict,
    ct: ClaimTypeConfig,
    index: int,
    claim_id: str,
    global_format: str,
    policy: DateFailurePolicy,
    warnings: list[Warning],
) -> tuple[date, date]:
    kwargs = dict(claim_type=ct.name, claim_index=index, warnings=warnings)
    start: Optional[date] = None
    end: Optional[date] = None
    start_error: Optional[DateFailure] = None
    end_error: Optional[DateFailure] = None

    try:
        start = resolve_date(record, ct.start_date, global_format, claim_id, **kwargs)
    except DateFailure as exc:
        if policy == DateFailurePolicy.RAISE:
            raise
        start_error = exc
    try:
        end = resolve_date(record, ct.end_date, global_format, claim_id, **kwargs)
    except DateFailure as exc:
        if policy == DateFailurePolicy.RAISE or start_error is not None:
            raise (start_error or exc)
        end_error = exc

    if start_error is not None:
        start = end
        warnings.append(Warning(
            code="DATE_POLICY_FALLBACK",
            message=f"claim {claim_id}: start date unresolved, using end date {end}",
            claim_type=ct.name,
            claim_index=index,
        ))
    elif end_error is not None:
        end = start
        warnings.append(Warning(
            code="DATE_POLICY_FALLBACK",
            message=f"claim {claim_id}: end date unresolved, using start date {start}",
            claim_type=ct.name,
            claim_index=index,
        ))

    if end < start:
        warnings.append(Warning(
            code="DATE_RANGE_CORRECTED",
            message=f"claim {claim_id}: end date {end} before start date {start}, clamped to start",
            claim_type=ct.name,
            claim_index=index,
        ))
        end = start
    return start, end


def extract_claim(
    record: Any,
    ct: ClaimTypeConfig,
    index: int,
    *,
    global_format: str = DEFAULT_DATE_FORMAT,
    on_date_failure: DateFailurePolicy = DateFailurePolicy.RAISE,
    warnings: Optional[list[Warning]] = None,
) -> ClaimItem:
    """Build one ClaimItem. Raises DateFailure / ValidationFailure for an unusable record."""
    if not isinstance(record, dict):
        raise ValidationFailure(
            f"record {index + 1} of type {ct.name} is not an object",
            {"claim_type": ct.name, "claim_index": index},
        )

    explicit_id = resolve_required(record, ct.id_field)
    claim_id = f"{ct.name}_{index}" if _blank(explicit_id) else str(explicit_id)

    local: list[Warning] = []
    start, end = _resolve_dates(record, ct, index, claim_id, global_format, on_date_failure, local)

    name = resolve_required(record, ct.display_name)
    if _blank(name):
        name = f"{ct.name} Claim {index + 1 if _blank(explicit_id) else explicit_id}"

    details = dict(record)
    if ct.display_fields:
        details["displayFields"] = extract_display_fields(record, ct.display_fields)

    if warnings is not None:
        warnings.extend(local)
    return ClaimItem(
        id=claim_id,
        type=ct.name,
        start_date=start,
        end_date=end,
        display_name=str(name),
        color=ct.color,
        details=details,
    )


def _escalate(ct: ClaimTypeConfig, failures: list[ParseFailure]) -> ParseFailure:
    messages = [
        describe_date_failure(f) if isinstance(f, DateFailure) else f.message
        for f in failures
    ]
    date_failures = [f for f in failures if isinstance(f, DateFailure)]
    if date_failures:
        first = date_failures[0]
        return DateFailure(
            f"Failed to resolve dates for all {len(failures)} {ct.name} claim(s)",
            {"errors": messages},
            expected_format=first.expected_format,
            claim_type=ct.name,
            original_error=first,
        )
    return ValidationFailure(
        f"No usable {ct.name} claims: all {len(failures)} record(s) failed",
        {"errors": messages, "claim_type": ct.name},
        original_error=failures[0],
    )


def extract_claims(
    document: Any,
    claim_types: Sequence[ClaimTypeConfig],
    *,
    global_format: str = DEFAULT_DATE_FORMAT,
    on_date_failure: DateFailurePolicy = DateFailurePolicy.RAISE,
) -> tuple[list[ClaimItem], list[Warning]]:
    """
    Extract claims for every claim type.
    Returns (claims, warnings); claims keep source order within each type.
    """
    claims: list[ClaimItem] = []
    warnings: list[Warning] = []

    for ct in claim_types:
        records = resolve_path(document, ct.array_path)
        if not isinstance(records, list):
            warnings.append(Warning(
                code="ARRAY_NOT_FOUND",
                message=f"No {ct.name} array at '{ct.array_path}'",
                claim_type=ct.name,
            ))
            continue

        produced = 0
        failures: list[ParseFailure] = []
        for index, record in enumerate(records):
            try:
                claims.append(extract_claim(
                    record,
                    ct,
                    index,
                    global_format=global_format,
                    on_date_failure=on_date_failure,
                    warnings=warnings,
                ))
                produced += 1
            except (DateFailure, ValidationFailure) as exc:
                failures.append(exc)
                logger.warning("Skipping %s record %d: %s", ct.name, index, exc.message)
                warnings.append(Warning(
                    code="RECORD_SKIPPED",
                    message=describe_date_failure(exc) if isinstance(exc, DateFailure) else exc.message,
                    claim_type=ct.name,
                    claim_index=index,
                ))

        if records and produced == 0:
            raise _escalate(ct, failures)
        logger.info("Extracted %d/%d %s claims", produced, len(records), ct.name)

    return claims, warnings
