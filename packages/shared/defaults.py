"""
Built-in claim types for the fixed-schema tier.

Everything here is built on demand from a ParserConfig; nothing is
populated at import time.
"""
from __future__ import annotations

from packages.shared.models.config import (
    CalculationDateConfig,
    ClaimTypeConfig,
    DateCalculation,
    FieldConfig,
    FieldDateConfig,
    ParserConfig,
)
from packages.shared.models.enums import CalcOperation, CalcUnit

RX_SUPPLY_DEFAULT_DAYS = 30
RX_SUPPLY_MAX_DAYS = 365
RX_START_FALLBACKS = ("fillDate", "prescriptionDate", "serviceDate")


def default_parser_config() -> ParserConfig:
    return ParserConfig()


def _rx_claim_type(name: str, array_path: str, color: str, date_format: str) -> ClaimTypeConfig:
    return ClaimTypeConfig(
        name=name,
        array_path=array_path,
        color=color,
        id_field=FieldConfig(path="id"),
        start_date=FieldDateConfig(field="dos", fallbacks=RX_START_FALLBACKS, format=date_format),
        end_date=CalculationDateConfig(
            calculation=DateCalculation(
                base_field="dos",
                operation=CalcOperation.ADD,
                value="dayssupply",
                unit=CalcUnit.DAYS,
                default_value=RX_SUPPLY_DEFAULT_DAYS,
                default_on_invalid=True,
                max_value=RX_SUPPLY_MAX_DAYS,
            ),
            fallbacks=RX_START_FALLBACKS,
            format=date_format,
        ),
        display_name=FieldConfig(path="medication"),
    )


def build_fixed_claim_types(config: ParserConfig) -> tuple[ClaimTypeConfig, ...]:
    """rxTba, rxHistory and medHistory claim types honouring the legacy path/colour/format settings."""
    fmt = config.date_format
    med_history = ClaimTypeConfig(
        name="medHistory",
        array_path=f"{config.med_history_path}.claims",
        color=config.colors.med_history,
        id_field=FieldConfig(path="lines[0].lineId"),
        start_date=FieldDateConfig(
            field="lines[0].srvcStart",
            fallbacks=("lines[0].serviceDate", "claimDate"),
            format=fmt,
        ),
        end_date=FieldDateConfig(
            field="lines[0].srvcEnd",
            fallbacks=("lines[0].srvcStart", "lines[0].serviceDate", "claimDate"),
            format=fmt,
        ),
        display_name=FieldConfig(path="lines[0].description"),
    )
    return (
        _rx_claim_type("rxTba", config.rx_tba_path, config.colors.rx_tba, fmt),
        _rx_claim_type("rxHistory", config.rx_history_path, config.colors.rx_history, fmt),
        med_history,
    )
