"""
Unit tests for date parsing, formatting, shifting and configured date resolution.
"""
import pytest
from datetime import date, datetime

from packages.shared.errors import DateFailure
from packages.shared.models import (
    CalculationDateConfig,
    DateCalculation,
    FieldDateConfig,
    FixedDateConfig,
    SUPPORTED_DATE_FORMATS,
)
from packages.shared.models.enums import CalcOperation, CalcUnit
from packages.shared.utils.dates import (
    coerce_date,
    format_date,
    parse_date_string,
    resolve_date,
    shift_date,
)


class TestParseDateString:
    @pytest.mark.parametrize("text,expected", [
        ("2024-03-15", date(2024, 3, 15)),
        ("03/15/2024", date(2024, 3, 15)),
        ("15-03-2024", date(2024, 3, 15)),
        ("2024/03/15", date(2024, 3, 15)),
        ("15/03/2024", date(2024, 3, 15)),
        ("03-15-2024", date(2024, 3, 15)),
    ])
    def test_every_supported_format(self, text, expected):
        assert parse_date_string(text) == expected

    def test_primary_format_wins_when_ambiguous(self):
        assert parse_date_string("04/05/2024", "MM/DD/YYYY") == date(2024, 4, 5)
        assert parse_date_string("04/05/2024", "DD/MM/YYYY") == date(2024, 5, 4)

    def test_invalid_calendar_date_falls_through_to_next_format(self):
        # not a valid MM/DD (month 13) but valid as DD/MM
        assert parse_date_string("13/01/2024", "MM/DD/YYYY") == date(2024, 1, 13)

    def test_flexible_parse_for_iso_timestamps(self):
        assert parse_date_string("2024-01-15T08:30:00Z") == date(2024, 1, 15)
        assert parse_date_string("January 5, 2024") == date(2024, 1, 5)

    @pytest.mark.parametrize("text", ["", "   ", "xyz", "not a date", "12345", "2024-02-30", None, 20240115])
    def test_unparseable_returns_none(self, text):
        assert parse_date_string(text) is None

    def test_surrounding_whitespace_ignored(self):
        assert parse_date_string("  2024-03-15 ") == date(2024, 3, 15)

    def test_coerce_accepts_date_objects(self):
        assert coerce_date(date(2024, 1, 1)) == date(2024, 1, 1)
        assert coerce_date(datetime(2024, 1, 1, 12, 0)) == date(2024, 1, 1)


class TestFormatDate:
    def test_default_format(self):
        assert format_date(date(2024, 3, 5)) == "2024-03-05"

    def test_round_trip_every_format(self):
        fixed = date(2024, 3, 15)
        for fmt in SUPPORTED_DATE_FORMATS:
            assert parse_date_string(format_date(fixed, fmt), fmt) == fixed


class TestShiftDate:
    def test_add_days(self):
        assert shift_date(date(2024, 1, 15), CalcOperation.ADD, 30, CalcUnit.DAYS) == date(2024, 2, 14)

    def test_subtract_weeks(self):
        assert shift_date(date(2024, 1, 15), CalcOperation.SUBTRACT, 2, CalcUnit.WEEKS) == date(2024, 1, 1)

    def test_months_clamp_to_month_end(self):
        assert shift_date(date(2024, 1, 31), CalcOperation.ADD, 1, CalcUnit.MONTHS) == date(2024, 2, 29)

    def test_years(self):
        assert shift_date(date(2024, 2, 29), CalcOperation.ADD, 1, CalcUnit.YEARS) == date(2025, 2, 28)

    def test_fractional_days_round(self):
        assert shift_date(date(2024, 1, 1), CalcOperation.ADD, 1.6, CalcUnit.DAYS) == date(2024, 1, 3)

    def test_fractional_months_rejected(self):
        with pytest.raises(ValueError):
            shift_date(date(2024, 1, 1), CalcOperation.ADD, 1.5, CalcUnit.MONTHS)


def _rx_end(default=None, **bounds):
    return CalculationDateConfig(
        calculation=DateCalculation(
            base_field="dos",
            operation=CalcOperation.ADD,
            value="dayssupply",
            unit=CalcUnit.DAYS,
            default_value=default,
            **bounds,
        ),
    )


class TestResolveDate:
    def test_primary_field(self):
        config = FieldDateConfig(field="dos")
        assert resolve_date({"dos": "2024-01-15"}, config) == date(2024, 1, 15)

    def test_fallback_used_and_recorded(self):
        config = FieldDateConfig(field="dos", fallbacks=("fillDate", "serviceDate"))
        warnings = []
        result = resolve_date(
            {"dos": "garbage", "serviceDate": "2024-02-01"},
            config,
            claim_id="rx9",
            claim_type="rxTba",
            claim_index=4,
            warnings=warnings,
        )
        assert result == date(2024, 2, 1)
        assert [w.code for w in warnings] == ["DATE_FALLBACK_FIELD"]
        assert warnings[0].claim_type == "rxTba"
        assert warnings[0].claim_index == 4

    def test_configured_format_overrides_global(self):
        config = FieldDateConfig(field="d", format="DD/MM/YYYY")
        assert resolve_date({"d": "04/05/2024"}, config, "MM/DD/YYYY") == date(2024, 5, 4)

    def test_global_format_used_without_override(self):
        config = FieldDateConfig(field="d")
        assert resolve_date({"d": "04/05/2024"}, config, "MM/DD/YYYY") == date(2024, 4, 5)

    def test_exhausted_fallbacks_raise_date_failure_with_context(self):
        config = FieldDateConfig(field="dos", fallbacks=("fillDate",))
        with pytest.raises(DateFailure) as exc_info:
            resolve_date({"dos": "xyz"}, config, claim_id="rx3", claim_type="rxTba", claim_index=2)
        failure = exc_info.value
        assert failure.field_name == "dos"
        assert failure.field_value == "xyz"
        assert failure.claim_type == "rxTba"
        assert failure.claim_index == 2
        assert failure.details["claim_id"] == "rx3"
        assert failure.details["tried_fields"] == ["dos", "fillDate"]
        assert "examples" in failure.details
        assert "YYYY-MM-DD" in failure.supported_formats

    def test_absent_date_raises(self):
        with pytest.raises(DateFailure) as exc_info:
            resolve_date({}, FieldDateConfig(field="dos"))
        assert exc_info.value.field_value is None

    def test_calculation_with_field_operand(self):
        result = resolve_date({"dos": "2024-01-15", "dayssupply": 30}, _rx_end())
        assert result == date(2024, 2, 14)

    def test_calculation_with_numeric_string_operand(self):
        result = resolve_date({"dos": "2024-01-15", "dayssupply": " 7 "}, _rx_end())
        assert result == date(2024, 1, 22)

    def test_calculation_with_literal_operand(self):
        config = CalculationDateConfig(
            calculation=DateCalculation(base_field="start", operation="subtract", value=1, unit="months"),
        )
        assert resolve_date({"start": "2024-03-31"}, config) == date(2024, 2, 29)

    def test_calculation_operand_default(self):
        warnings = []
        result = resolve_date({"dos": "2024-01-01"}, _rx_end(default=30), warnings=warnings)
        assert result == date(2024, 1, 31)
        assert [w.code for w in warnings] == ["OPERAND_DEFAULTED"]

    def test_calculation_missing_operand_without_default(self):
        with pytest.raises(DateFailure):
            resolve_date({"dos": "2024-01-01"}, _rx_end())

    def test_calculation_non_numeric_operand(self):
        with pytest.raises(DateFailure) as exc_info:
            resolve_date({"dos": "2024-01-01", "dayssupply": "thirty"}, _rx_end(default=30))
        assert exc_info.value.field_name == "dayssupply"
        assert exc_info.value.field_value == "thirty"

    @pytest.mark.parametrize("supply", ["thirty", 0, -3, float("nan")])
    def test_calculation_invalid_operand_defaulted_when_enabled(self, supply):
        warnings = []
        config = _rx_end(default=30, default_on_invalid=True)
        result = resolve_date({"dos": "2024-01-01", "dayssupply": supply}, config, claim_id="rx9", warnings=warnings)
        assert result == date(2024, 1, 31)
        assert [w.code for w in warnings] == ["OPERAND_DEFAULTED"]
        assert warnings[0].message.startswith("claim rx9: invalid 'dayssupply'")

    def test_calculation_operand_capped(self):
        warnings = []
        config = _rx_end(default=30, max_value=365)
        result = resolve_date({"dos": "2023-01-01", "dayssupply": "1000"}, config, warnings=warnings)
        assert result == date(2024, 1, 1)
        assert [w.code for w in warnings] == ["OPERAND_CAPPED"]

    def test_calculation_operand_at_cap_is_kept(self):
        warnings = []
        result = resolve_date({"dos": "2023-01-01", "dayssupply": 365}, _rx_end(max_value=365), warnings=warnings)
        assert result == date(2024, 1, 1)
        assert warnings == []

    def test_calculation_base_fallbacks(self):
        config = CalculationDateConfig(
            calculation=DateCalculation(base_field="dos", operation="add", value=10, unit="days"),
            fallbacks=("fillDate",),
        )
        assert resolve_date({"fillDate": "2024-01-01"}, config) == date(2024, 1, 11)

    def test_calculation_unparseable_base(self):
        with pytest.raises(DateFailure):
            resolve_date({"dos": "soon", "dayssupply": 5}, _rx_end())

    def test_fixed(self):
        assert resolve_date({}, FixedDateConfig(value="2023-12-31")) == date(2023, 12, 31)

    def test_fixed_unparseable(self):
        with pytest.raises(DateFailure):
            resolve_date({}, FixedDateConfig(value="someday"))
