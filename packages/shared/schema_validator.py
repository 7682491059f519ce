"""
Validate parser configuration payloads against the parser-config JSON schema
and materialise them as ParserConfig models.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import jsonschema
from pydantic import ValidationError

from packages.shared.errors import ConfigurationFailure
from packages.shared.models.config import ParserConfig
from packages.shared.storage import read_text

logger = logging.getLogger(__name__)

_SCHEMA_PATH = Path(__file__).resolve().parent.parent.parent / "schemas" / "parser-config.schema.json"
_schema_cache: dict | None = None


def _load_schema() -> dict:
    global _schema_cache
    if _schema_cache is None:
        with open(_SCHEMA_PATH, "r", encoding="utf-8") as f:
            _schema_cache = json.load(f)
    return _schema_cache


def validate_config_payload(data: Any) -> tuple[bool, list[str]]:
    """
    Validate *data* against the parser configuration schema.
    Returns (is_valid, list_of_error_messages).
    """
    schema = _load_schema()
    validator = jsonschema.Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))
    messages = [f"{'→'.join(str(p) for p in e.absolute_path) or '<root>'}: {e.message}" for e in errors]
    return (len(messages) == 0, messages)


def parse_parser_config(data: Any) -> ParserConfig:
    """Schema-check then build a ParserConfig. Raises ConfigurationFailure listing every problem."""
    ok, messages = validate_config_payload(data)
    if not ok:
        raise ConfigurationFailure(
            f"Parser configuration is invalid ({len(messages)} problem(s))",
            messages,
        )
    try:
        return ParserConfig.model_validate(data)
    except ValidationError as exc:
        problems = [
            f"{'→'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        ]
        raise ConfigurationFailure(
            f"Parser configuration is invalid ({len(problems)} problem(s))",
            problems,
            original_error=exc,
        ) from exc


def load_parser_config(path: str | Path) -> ParserConfig:
    """Read a JSON settings file and return its ParserConfig."""
    text = read_text(path)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationFailure(
            f"Configuration file is not valid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})",
            [str(exc)],
            file_path=str(path),
            original_error=exc,
        ) from exc

    try:
        config = parse_parser_config(data)
    except ConfigurationFailure as failure:
        raise failure.enrich(file_path=str(path)) from failure
    logger.info("Loaded parser configuration from %s (%d claim type(s))", path, len(config.claim_types))
    return config
