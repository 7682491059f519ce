from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

DEFAULT_DATE_FORMAT = "YYYY-MM-DD"

# Tried in this order after the caller's primary format.
SUPPORTED_DATE_FORMATS: tuple[str, ...] = (
    "YYYY-MM-DD",
    "MM/DD/YYYY",
    "DD-MM-YYYY",
    "YYYY/MM/DD",
    "DD/MM/YYYY",
    "MM-DD-YYYY",
)

# Worked examples for 2024-03-15, surfaced in date failure details.
DATE_FORMAT_EXAMPLES: dict[str, str] = {
    "YYYY-MM-DD": "2024-03-15",
    "MM/DD/YYYY": "03/15/2024",
    "DD-MM-YYYY": "15-03-2024",
    "YYYY/MM/DD": "2024/03/15",
    "DD/MM/YYYY": "15/03/2024",
    "MM-DD-YYYY": "03-15-2024",
}

HEX_COLOR_PATTERN = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"

# Dotted/bracketed path expression, e.g. "lines[0].description" or "[0].id".
# Field names need at least one non-whitespace character.
PATH_PATTERN = r"^(?:[^.\[\]]*[^.\[\]\s][^.\[\]]*(?:\[\d+\])*|(?:\[\d+\])+)(?:\.[^.\[\]]*[^.\[\]\s][^.\[\]]*(?:\[\d+\])*)*$"


class CamelModel(BaseModel):
    """Base for models exchanged as camelCase JSON with the outside world."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DateRange(CamelModel):
    start: date
    end: Optional[date] = None

# Colours handed to inferred claim types, in order.
DEFAULT_PALETTE: tuple[str, ...] = (
    "#FF6B6B",
    "#4ECDC4",
    "#45B7D1",
    "#96CEB4",
    "#FFEAA7",
    "#DDA0DD",
    "#98D8C8",
    "#F7DC6F",
)
