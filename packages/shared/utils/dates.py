"""
Date parsing, formatting and configuration-driven date resolution.

Parsing is strict per format (``2024-1-5`` does not match ``YYYY-MM-DD``):
the caller's primary format first, then every other supported format, then a
flexible python-dateutil parse for text carrying a four-digit year. A parse
that finds nothing returns ``None``; only ``resolve_date`` turns exhausted
strategies into a ``DateFailure``.
"""
from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import Any, Optional

from dateutil import parser as dateutil_parser
from dateutil.relativedelta import relativedelta

from packages.shared.errors import DateFailure
from packages.shared.models.common import DEFAULT_DATE_FORMAT, SUPPORTED_DATE_FORMATS
from packages.shared.models.config import (
    CalculationDateConfig,
    DateFieldConfig,
    FieldDateConfig,
    FixedDateConfig,
)
from packages.shared.models.domain import Warning
from packages.shared.models.enums import CalcOperation, CalcUnit
from packages.shared.utils.paths import resolve_path

logger = logging.getLogger(__name__)

_TOKENS = {"YYYY": r"(?P<year>\d{4})", "MM": r"(?P<month>\d{2})", "DD": r"(?P<day>\d{2})"}
_TOKEN_RE = re.compile(r"YYYY|MM|DD")
_YEAR_RE = re.compile(r"(?<!\d)\d{4}(?!\d)")


@lru_cache(maxsize=32)
def _format_regex(fmt: str) -> re.Pattern:
    pattern = ""
    pos = 0
    for m in _TOKEN_RE.finditer(fmt):
        pattern += re.escape(fmt[pos:m.start()]) + _TOKENS[m.group(0)]
        pos = m.end()
    pattern += re.escape(fmt[pos:])
    return re.compile(f"^{pattern}$")


def _parse_strict(text: str, fmt: str) -> Optional[date]:
    m = _format_regex(fmt).match(text)
    if not m:
        return None
    try:
        return date(int(m.group("year")), int(m.group("month")), int(m.group("day")))
    except ValueError:
        return None


def _parse_flexible(text: str) -> Optional[date]:
    if not _YEAR_RE.search(text):
        return None
    try:
        return dateutil_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None


def parse_date_string(text: str, primary_format: str = DEFAULT_DATE_FORMAT) -> Optional[date]:
    """Parse *text* as a calendar date, or return None when nothing matches."""
    if not isinstance(text, str):
        return None
    text = text.strip()
    if not text:
        return None

    parsed = _parse_strict(text, primary_format)
    if parsed:
        return parsed
    for fmt in SUPPORTED_DATE_FORMATS:
        if fmt == primary_format:
            continue
        parsed = _parse_strict(text, fmt)
        if parsed:
            return parsed
    return _parse_flexible(text)


def coerce_date(value: Any, primary_format: str = DEFAULT_DATE_FORMAT) -> Optional[date]:
    """Like parse_date_string but also accepts date/datetime values already decoded."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date_string(value, primary_format)


def format_date(value: date, fmt: str = DEFAULT_DATE_FORMAT) -> str:
    parts = {"YYYY": f"{value.year:04d}", "MM": f"{value.month:02d}", "DD": f"{value.day:02d}"}
    return _TOKEN_RE.sub(lambda m: parts[m.group(0)], fmt)


def shift_date(base: date, operation: CalcOperation, amount: float, unit: CalcUnit) -> date:
    """
    Add or subtract *amount* units from *base*.

    Days and weeks round to the nearest whole day. Months and years must be
    whole numbers (calendar arithmetic clamps to the month end, e.g. Jan 31 + 1 month
    is Feb 29 in a leap year). Raises ValueError otherwise.
    """
    sign = -1 if operation == CalcOperation.SUBTRACT else 1
    if unit in (CalcUnit.DAYS, CalcUnit.WEEKS):
        days = amount * (7 if unit == CalcUnit.WEEKS else 1)
        return base + timedelta(days=sign * round(days))
    if float(amount) != int(amount):
        raise ValueError(f"cannot shift by a fractional number of {unit.value}: {amount}")
    if unit == CalcUnit.MONTHS:
        return base + relativedelta(months=sign * int(amount))
    return base + relativedelta(years=sign * int(amount))


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


class _Context:
    """Claim identity threaded into failures and warnings."""

    def __init__(self, claim_type, claim_index, claim_id, warnings):
        self.claim_type = claim_type
        self.claim_index = claim_index
        self.claim_id = claim_id
        self.warnings = warnings

    def warn(self, code: str, message: str) -> None:
        logger.debug("%s: %s", code, message)
        if self.warnings is not None:
            self.warnings.append(Warning(
                code=code,
                message=message,
                claim_type=self.claim_type,
                claim_index=self.claim_index,
            ))

    def failure(self, message: str, fmt: str, config, field_name=None, field_value=None, **details) -> DateFailure:
        return DateFailure(
            message,
            {"claim_id": self.claim_id, "config": config.model_dump(mode="json", by_alias=True), **details},
            expected_format=fmt,
            claim_type=self.claim_type,
            claim_index=self.claim_index,
            field_name=field_name,
            field_value=field_value,
        )


def _first_date(record: Any, paths: tuple[str, ...], fmt: str, config, ctx: _Context) -> date:
    tried: list[tuple[str, Any]] = []
    for position, path in enumerate(paths):
        raw = resolve_path(record, path)
        if raw is None:
            continue
        parsed = coerce_date(raw, fmt)
        if parsed is None:
            tried.append((path, raw))
            continue
        if position > 0:
            ctx.warn(
                "DATE_FALLBACK_FIELD",
                f"claim {ctx.claim_id}: '{paths[0]}' unusable, date taken from fallback '{path}'",
            )
        return parsed

    if tried:
        field_name, field_value = tried[0]
        message = f"Unable to parse date '{field_value}' from field '{field_name}' for claim {ctx.claim_id}"
    else:
        field_name, field_value = paths[0], None
        message = f"No date found in '{', '.join(paths)}' for claim {ctx.claim_id}"
    raise ctx.failure(
        message,
        fmt,
        config,
        field_name=field_name,
        field_value=field_value,
        tried_fields=list(paths),
    )


def _calculated_date(record: Any, config: CalculationDateConfig, fmt: str, ctx: _Context) -> date:
    calc = config.calculation
    base = _first_date(record, (calc.base_field, *config.fallbacks), fmt, config, ctx)

    if isinstance(calc.value, str):
        raw = resolve_path(record, calc.value)
        if raw is None:
            if calc.default_value is None:
                raise ctx.failure(
                    f"Calculation operand '{calc.value}' missing for claim {ctx.claim_id}",
                    fmt, config, field_name=calc.value,
                )
            ctx.warn(
                "OPERAND_DEFAULTED",
                f"claim {ctx.claim_id}: '{calc.value}' missing, using {calc.default_value:g} {calc.unit.value}",
            )
            amount = calc.default_value
        else:
            amount = _number(raw)
            if calc.default_on_invalid and (amount is None or not amount > 0):
                ctx.warn(
                    "OPERAND_DEFAULTED",
                    f"claim {ctx.claim_id}: invalid '{calc.value}' ('{raw}'), "
                    f"using {calc.default_value:g} {calc.unit.value}",
                )
                amount = calc.default_value
            elif amount is None:
                raise ctx.failure(
                    f"Calculation operand '{calc.value}' is not numeric ('{raw}') for claim {ctx.claim_id}",
                    fmt, config, field_name=calc.value, field_value=raw,
                )
    else:
        amount = calc.value

    if calc.max_value is not None and amount > calc.max_value:
        ctx.warn(
            "OPERAND_CAPPED",
            f"claim {ctx.claim_id}: {calc.value} of {amount:g} exceeds {calc.max_value:g}, capped",
        )
        amount = calc.max_value

    try:
        return shift_date(base, calc.operation, amount, calc.unit)
    except (ValueError, OverflowError) as exc:
        raise ctx.failure(
            f"Date calculation failed for claim {ctx.claim_id}: {exc}",
            fmt, config, field_name=calc.base_field, field_value=str(base),
        ) from exc


def resolve_date(
    record: Any,
    config: DateFieldConfig,
    global_format: str = DEFAULT_DATE_FORMAT,
    claim_id: Optional[str] = None,
    *,
    claim_type: Optional[str] = None,
    claim_index: Optional[int] = None,
    warnings: Optional[list[Warning]] = None,
) -> date:
    """Resolve a date from *record* with one of the field/calculation/fixed strategies."""
    ctx = _Context(claim_type, claim_index, claim_id, warnings)
    fmt = config.format or global_format

    if isinstance(config, FieldDateConfig):
        return _first_date(record, (config.field, *config.fallbacks), fmt, config, ctx)

    if isinstance(config, CalculationDateConfig):
        return _calculated_date(record, config, fmt, ctx)

    if isinstance(config, FixedDateConfig):
        parsed = parse_date_string(config.value, fmt)
        if parsed is None:
            raise ctx.failure(
                f"Unable to parse fixed date '{config.value}'",
                fmt, config, field_value=config.value,
            )
        return parsed

    raise TypeError(f"unsupported date configuration: {type(config).__name__}")
