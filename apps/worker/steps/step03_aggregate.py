"""
Step 3: aggregate extracted claims into a TimelineResult.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional, Sequence

from packages.shared.models import (
    ClaimItem,
    DateRange,
    SortDirection,
    StrategyTier,
    TimelineMetadata,
    TimelineResult,
    Warning,
)

logger = logging.getLogger(__name__)


def sort_claims(claims: Iterable[ClaimItem], direction: SortDirection = SortDirection.OLDEST_FIRST) -> list[ClaimItem]:
    """Stable sort by start date; equal start dates keep extraction order in both directions."""
    ordered = list(claims)
    if direction == SortDirection.NEWEST_FIRST:
        return sorted(ordered, key=lambda c: c.start_date, reverse=True)
    return sorted(ordered, key=lambda c: c.start_date)


def aggregate(
    claims: Sequence[ClaimItem],
    *,
    sort_direction: SortDirection = SortDirection.OLDEST_FIRST,
    claim_type_order: Sequence[str] = (),
    warnings: Sequence[Warning] = (),
    strategy: Optional[StrategyTier] = None,
    empty_anchor: Optional[date] = None,
) -> TimelineResult:
    """
    Build the timeline result.

    ``claimTypes`` lists each present type once, in *claim_type_order* first
    (configuration order) then by first appearance. An empty timeline gets the
    one-day range ``(anchor, anchor)``, anchor defaulting to today.
    """
    ordered = sort_claims(claims, sort_direction)

    present = {c.type for c in ordered}
    types = [t for t in dict.fromkeys(claim_type_order) if t in present]
    for c in claims:
        if c.type not in types:
            types.append(c.type)

    if ordered:
        date_range = DateRange(
            start=min(c.start_date for c in ordered),
            end=max(c.end_date for c in ordered),
        )
    else:
        anchor = empty_anchor or date.today()
        date_range = DateRange(start=anchor, end=anchor)

    logger.info(
        "Timeline: %d claims, types=%s, range=%s..%s",
        len(ordered), types, date_range.start, date_range.end,
    )
    return TimelineResult(
        claims=ordered,
        date_range=date_range,
        metadata=TimelineMetadata(total_claims=len(ordered), claim_types=types, strategy=strategy),
        warnings=list(warnings),
    )
