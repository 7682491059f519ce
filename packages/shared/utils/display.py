"""
Presentation formatting for configured display fields.
"""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Iterable

from packages.shared.models.config import DisplayFieldConfig
from packages.shared.models.enums import DisplayFormat
from packages.shared.utils.dates import coerce_date
from packages.shared.utils.paths import resolve_path

_LEADING_NUMBER = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?")


def parse_number(value: Any) -> float:
    """Numeric value of *value*, reading a leading number from text; 0 when there is none."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        m = _LEADING_NUMBER.match(value)
        if m:
            return float(m.group(0))
    return 0


def _us_date(value: date) -> str:
    return f"{value.month}/{value.day}/{value.year}"


def format_for_display(value: Any, kind: DisplayFormat | str | None = DisplayFormat.TEXT) -> str:
    """Render *value* as text. Pure: no side effects, never raises for odd input."""
    if value is None:
        return ""
    kind = DisplayFormat(kind) if kind else DisplayFormat.TEXT

    if kind == DisplayFormat.DATE:
        if isinstance(value, datetime):
            return _us_date(value.date())
        parsed = coerce_date(value)
        return _us_date(parsed) if parsed else str(value)

    if kind == DisplayFormat.CURRENCY:
        amount = parse_number(value)
        text = f"${abs(amount):,.2f}"
        return f"-{text}" if amount < 0 else text

    if kind == DisplayFormat.NUMBER:
        amount = parse_number(value)
        if float(amount).is_integer():
            return f"{int(amount):,}"
        return f"{amount:,.3f}".rstrip("0").rstrip(".")

    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def extract_display_fields(record: Any, fields: Iterable[DisplayFieldConfig]) -> dict[str, dict[str, Any]]:
    """Resolve every configured display field: {label: {raw, formatted, showInTooltip, showInDetails}}."""
    result: dict[str, dict[str, Any]] = {}
    for field in fields:
        raw = resolve_path(record, field.path)
        result[field.label] = {
            "raw": raw,
            "formatted": format_for_display(raw, field.format),
            "showInTooltip": field.show_in_tooltip,
            "showInDetails": field.show_in_details,
        }
    return result
