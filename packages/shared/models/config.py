"""
Claim type and parser configuration.

Loaded once (from defaults or a user settings document) and immutable for the
lifetime of a parser instance. JSON keys are camelCase (``arrayPath``,
``idField``...) so existing settings files load unchanged.
"""
import re
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import ConfigDict, Field, StrictFloat, StrictInt, field_validator, model_validator

from .common import (
    DEFAULT_DATE_FORMAT,
    DEFAULT_PALETTE,
    HEX_COLOR_PATTERN,
    PATH_PATTERN,
    SUPPORTED_DATE_FORMATS,
    CamelModel,
)
from .enums import CalcOperation, CalcUnit, DateFailurePolicy, DisplayFormat, SortDirection

_PATH_RE = re.compile(PATH_PATTERN)
_HEX_RE = re.compile(HEX_COLOR_PATTERN)


def _check_path(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("path cannot be empty")
    if not _PATH_RE.match(value):
        raise ValueError(f"invalid path expression '{value}'")
    return value


def _check_format(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in SUPPORTED_DATE_FORMATS:
        raise ValueError(
            f"Invalid date format: {value}. Supported formats include {', '.join(SUPPORTED_DATE_FORMATS)}"
        )
    return value


def _check_color(value: str) -> str:
    if not _HEX_RE.match(value or ""):
        raise ValueError(f"Invalid color '{value}'. Must be a valid hex color (e.g., #FF6B6B)")
    return value


class FrozenConfig(CamelModel):
    model_config = ConfigDict(frozen=True)


class FieldConfig(FrozenConfig):
    path: str
    default_value: Any = None
    required: bool = False

    @field_validator("path")
    @classmethod
    def _path(cls, v: str) -> str:
        return _check_path(v)


class DateCalculation(FrozenConfig):
    base_field: str
    operation: CalcOperation
    value: Union[StrictInt, StrictFloat, str]  # literal operand, or path to a numeric field
    unit: CalcUnit = CalcUnit.DAYS
    default_value: Optional[float] = None  # operand used when the field is absent
    default_on_invalid: bool = False  # non-numeric or non-positive operands also take default_value
    max_value: Optional[float] = Field(default=None, gt=0)  # larger operands are capped

    @model_validator(mode="after")
    def _default_required(self) -> "DateCalculation":
        if self.default_on_invalid and self.default_value is None:
            raise ValueError("defaultOnInvalid needs a defaultValue")
        return self

    @field_validator("base_field")
    @classmethod
    def _base_field(cls, v: str) -> str:
        return _check_path(v)

    @field_validator("value")
    @classmethod
    def _operand(cls, v):
        if isinstance(v, str):
            return _check_path(v)
        return v


class FieldDateConfig(FrozenConfig):
    type: Literal["field"] = "field"
    field: str
    fallbacks: tuple[str, ...] = ()
    format: Optional[str] = None

    @field_validator("field")
    @classmethod
    def _field(cls, v: str) -> str:
        return _check_path(v)

    @field_validator("fallbacks")
    @classmethod
    def _fallbacks(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(_check_path(p) for p in v)

    @field_validator("format")
    @classmethod
    def _format(cls, v):
        return _check_format(v)


class CalculationDateConfig(FrozenConfig):
    type: Literal["calculation"] = "calculation"
    calculation: DateCalculation
    fallbacks: tuple[str, ...] = ()  # alternate base date paths
    format: Optional[str] = None

    @field_validator("fallbacks")
    @classmethod
    def _fallbacks(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(_check_path(p) for p in v)

    @field_validator("format")
    @classmethod
    def _format(cls, v):
        return _check_format(v)


class FixedDateConfig(FrozenConfig):
    type: Literal["fixed"] = "fixed"
    value: str
    format: Optional[str] = None

    @field_validator("format")
    @classmethod
    def _format(cls, v):
        return _check_format(v)


DateFieldConfig = Annotated[
    Union[FieldDateConfig, CalculationDateConfig, FixedDateConfig],
    Field(discriminator="type"),
]


class DisplayFieldConfig(FrozenConfig):
    label: str
    path: str
    format: DisplayFormat = DisplayFormat.TEXT
    show_in_tooltip: bool = True
    show_in_details: bool = True

    @field_validator("path")
    @classmethod
    def _path(cls, v: str) -> str:
        return _check_path(v)


class ClaimTypeConfig(FrozenConfig):
    name: str = Field(min_length=1)
    array_path: str
    color: str
    id_field: FieldConfig = FieldConfig(path="id")
    start_date: DateFieldConfig
    end_date: DateFieldConfig
    display_name: FieldConfig = FieldConfig(path="name")
    display_fields: tuple[DisplayFieldConfig, ...] = ()

    @field_validator("array_path")
    @classmethod
    def _array_path(cls, v: str) -> str:
        return _check_path(v)

    @field_validator("color")
    @classmethod
    def _color(cls, v: str) -> str:
        return _check_color(v)


class LegacyColors(FrozenConfig):
    rx_tba: str = "#FF6B6B"
    rx_history: str = "#4ECDC4"
    med_history: str = "#45B7D1"

    @field_validator("rx_tba", "rx_history", "med_history")
    @classmethod
    def _color(cls, v: str) -> str:
        return _check_color(v)


class ParserConfig(FrozenConfig):
    """Everything a parser instance needs; see packages.shared.defaults for the built-in layout."""

    # configurable tier
    claim_types: tuple[ClaimTypeConfig, ...] = ()
    global_date_format: str = DEFAULT_DATE_FORMAT
    default_colors: tuple[str, ...] = DEFAULT_PALETTE

    # fixed tier (legacy settings of the built-in layout)
    rx_tba_path: str = "rxTba"
    rx_history_path: str = "rxHistory"
    med_history_path: str = "medHistory"
    date_format: str = DEFAULT_DATE_FORMAT
    colors: LegacyColors = LegacyColors()

    on_date_failure: DateFailurePolicy = DateFailurePolicy.RAISE
    sort_direction: SortDirection = SortDirection.OLDEST_FIRST

    @field_validator("global_date_format", "date_format")
    @classmethod
    def _formats(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("date format cannot be empty")
        return _check_format(v)

    @field_validator("rx_tba_path", "rx_history_path", "med_history_path")
    @classmethod
    def _paths(cls, v: str) -> str:
        return _check_path(v)

    @field_validator("default_colors")
    @classmethod
    def _palette(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("defaultColors cannot be empty")
        return tuple(_check_color(c) for c in v)

    @model_validator(mode="after")
    def _unique_names(self) -> "ParserConfig":
        names = [ct.name for ct in self.claim_types]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"duplicate claim type names: {', '.join(dupes)}")
        return self
