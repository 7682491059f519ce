from datetime import date
from typing import Any, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from .common import HEX_COLOR_PATTERN, CamelModel, DateRange
from .enums import StrategyTier


class Warning(CamelModel):
    code: str
    message: str
    claim_type: Optional[str] = None
    claim_index: Optional[int] = None


class ClaimItem(CamelModel):
    """One normalized claim. Built once during extraction, never modified afterwards."""
    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    start_date: date
    end_date: date
    display_name: str
    color: str = Field(pattern=HEX_COLOR_PATTERN)
    details: dict[str, Any] = Field(default_factory=dict)

    @field_validator("details", mode="before")
    @classmethod
    def _details_never_null(cls, v):
        return {} if v is None else v

    @model_validator(mode="after")
    def _ordered(self) -> "ClaimItem":
        if self.end_date < self.start_date:
            raise ValueError(f"claim {self.id}: end_date {self.end_date} is before start_date {self.start_date}")
        return self


class TimelineMetadata(CamelModel):
    total_claims: int = Field(ge=0)
    claim_types: list[str] = Field(default_factory=list)
    strategy: Optional[StrategyTier] = None


class TimelineResult(CamelModel):
    claims: list[ClaimItem] = Field(default_factory=list)
    date_range: DateRange
    metadata: TimelineMetadata
    warnings: list[Warning] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        """Plain JSON data for presentation: ISO-8601 dates, camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
