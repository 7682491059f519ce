from .common import (
    DATE_FORMAT_EXAMPLES,
    DEFAULT_DATE_FORMAT,
    DEFAULT_PALETTE,
    SUPPORTED_DATE_FORMATS,
    DateRange,
)
from .config import (
    CalculationDateConfig,
    ClaimTypeConfig,
    DateCalculation,
    DateFieldConfig,
    DisplayFieldConfig,
    FieldConfig,
    FieldDateConfig,
    FixedDateConfig,
    LegacyColors,
    ParserConfig,
)
from .domain import ClaimItem, TimelineMetadata, TimelineResult, Warning
from .enums import (
    CalcOperation,
    CalcUnit,
    DateFailurePolicy,
    DisplayFormat,
    FileAccessKind,
    SortDirection,
    StrategyTier,
)
