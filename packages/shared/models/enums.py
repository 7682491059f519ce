from enum import Enum


class CalcOperation(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"


class CalcUnit(str, Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


class DisplayFormat(str, Enum):
    TEXT = "text"
    DATE = "date"
    CURRENCY = "currency"
    NUMBER = "number"


class StrategyTier(str, Enum):
    FIXED_SCHEMA = "fixed_schema"  # Built-in rxTba / rxHistory / medHistory layout
    CONFIGURABLE_SCHEMA = "configurable_schema"  # User or inferred claim types
    HEURISTIC = "heuristic"  # Date-like + name-like values anywhere
    NONE = "none"


class DateFailurePolicy(str, Enum):
    RAISE = "raise"
    FALLBACK = "fallback"


class SortDirection(str, Enum):
    OLDEST_FIRST = "oldest_first"
    NEWEST_FIRST = "newest_first"


class FileAccessKind(str, Enum):
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    NO_SPACE = "no_space"
    OUT_OF_MEMORY = "out_of_memory"
    NETWORK_UNREACHABLE = "network_unreachable"
    UNKNOWN = "unknown"
