"""
Unit tests for parser configuration validation and loading.
"""
from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from packages.shared.errors import ConfigurationFailure, FileAccessFailure
from packages.shared.models import (
    CalculationDateConfig,
    ClaimTypeConfig,
    DateCalculation,
    FieldConfig,
    FieldDateConfig,
    ParserConfig,
    SortDirection,
)
from packages.shared.schema_validator import (
    load_parser_config,
    parse_parser_config,
    validate_config_payload,
)


def _claim_type(**overrides):
    data = {
        "name": "visits",
        "arrayPath": "data.visits",
        "color": "#45B7D1",
        "startDate": {"type": "field", "field": "startDate"},
        "endDate": {
            "type": "calculation",
            "calculation": {"baseField": "startDate", "operation": "add", "value": "los", "defaultValue": 1},
        },
    }
    data.update(overrides)
    return data


def test_validate_config_payload_valid():
    ok, errors = validate_config_payload({"claimTypes": [_claim_type()], "sortDirection": "newest_first"})
    assert ok, errors


def test_validate_config_payload_empty_object_is_valid():
    assert validate_config_payload({}) == (True, [])


def test_validate_config_payload_reports_paths():
    ok, errors = validate_config_payload({"claimTypes": [_claim_type(color="red")], "bogus": 1})
    assert not ok
    assert any(e.startswith("claimTypes→0→color") for e in errors)
    assert any("bogus" in e for e in errors)


def test_field_date_requires_field():
    ok, errors = validate_config_payload({"claimTypes": [_claim_type(startDate={"type": "field"})]})
    assert not ok


def test_blank_path_segment_rejected_by_schema():
    ok, errors = validate_config_payload({"claimTypes": [_claim_type(arrayPath="data. .visits")]})
    assert not ok
    assert any(e.startswith("claimTypes→0→arrayPath") for e in errors)


def test_operand_bounds_accepted_by_schema():
    end = {
        "type": "calculation",
        "calculation": {
            "baseField": "startDate",
            "operation": "add",
            "value": "los",
            "defaultValue": 1,
            "defaultOnInvalid": True,
            "maxValue": 90,
        },
    }
    config = parse_parser_config({"claimTypes": [_claim_type(endDate=end)]})
    calculation = config.claim_types[0].end_date.calculation
    assert calculation.default_on_invalid is True
    assert calculation.max_value == 90


class TestParseParserConfig:
    def test_camel_case_payload(self):
        config = parse_parser_config({"claimTypes": [_claim_type()], "globalDateFormat": "MM/DD/YYYY"})
        (ct,) = config.claim_types
        assert ct.array_path == "data.visits"
        assert isinstance(ct.start_date, FieldDateConfig)
        assert isinstance(ct.end_date, CalculationDateConfig)
        assert ct.end_date.calculation.default_value == 1
        assert ct.id_field == FieldConfig(path="id")
        assert config.global_date_format == "MM/DD/YYYY"

    def test_schema_problems_are_listed(self):
        with pytest.raises(ConfigurationFailure) as exc_info:
            parse_parser_config({"globalDateFormat": "YYYYMMDD", "sortDirection": "sideways"})
        assert len(exc_info.value.errors) == 2

    def test_duplicate_names_fail_model_validation(self):
        with pytest.raises(ConfigurationFailure) as exc_info:
            parse_parser_config({"claimTypes": [_claim_type(), _claim_type()]})
        assert isinstance(exc_info.value.original_error, ValidationError)
        assert "duplicate claim type names: visits" in exc_info.value.errors[0]

    def test_non_object_payload(self):
        with pytest.raises(ConfigurationFailure):
            parse_parser_config(["not", "a", "config"])


class TestModels:
    def test_defaults(self):
        config = ParserConfig()
        assert config.rx_tba_path == "rxTba"
        assert config.sort_direction == SortDirection.OLDEST_FIRST
        assert config.colors.med_history == "#45B7D1"

    def test_configs_are_frozen(self):
        config = ParserConfig()
        with pytest.raises(ValidationError):
            config.date_format = "MM/DD/YYYY"

    @pytest.mark.parametrize("path", ["", "a..b", "a[x]", ".a", "a.", "  ", "data. .visits"])
    def test_invalid_paths(self, path):
        with pytest.raises(ValidationError):
            FieldConfig(path=path)

    def test_field_names_may_contain_inner_spaces(self):
        assert FieldConfig(path="patient info.first name").path == "patient info.first name"

    def test_default_on_invalid_needs_default_value(self):
        with pytest.raises(ValidationError):
            DateCalculation(base_field="dos", operation="add", value="dayssupply", default_on_invalid=True)

    def test_max_value_must_be_positive(self):
        with pytest.raises(ValidationError):
            DateCalculation(base_field="dos", operation="add", value="dayssupply", max_value=0)

    def test_invalid_color(self):
        with pytest.raises(ValidationError):
            ClaimTypeConfig(
                name="x",
                array_path="x",
                color="#12345",
                start_date=FieldDateConfig(field="d"),
                end_date=FieldDateConfig(field="d"),
            )

    def test_invalid_date_format(self):
        with pytest.raises(ValidationError):
            FieldDateConfig(field="d", format="YYYY.MM.DD")

    def test_empty_palette(self):
        with pytest.raises(ValidationError):
            ParserConfig(default_colors=())


class TestLoadParserConfig:
    def test_load(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"claimTypes": [_claim_type()]}), encoding="utf-8")
        assert load_parser_config(path).claim_types[0].name == "visits"

    def test_bad_json(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{claimTypes: }", encoding="utf-8")
        with pytest.raises(ConfigurationFailure) as exc_info:
            load_parser_config(path)
        assert exc_info.value.file_path == str(path)
        assert "line 1" in exc_info.value.message

    def test_invalid_content_carries_file_path(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text('{"dateFormat": "nope"}', encoding="utf-8")
        with pytest.raises(ConfigurationFailure) as exc_info:
            load_parser_config(path)
        assert exc_info.value.file_path == str(path)
        assert isinstance(exc_info.value.original_error, ConfigurationFailure)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileAccessFailure):
            load_parser_config(tmp_path / "absent.json")
