"""
Step 0: read the export and decode it as JSON, once per parse.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from packages.shared.errors import ValidationFailure
from packages.shared.storage import TextReader, read_text

logger = logging.getLogger(__name__)


def decode_document(text: str, file_path: Optional[str] = None) -> Any:
    """Decode JSON text into plain dict/list/scalar values. Syntax errors become ValidationFailure."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationFailure(
            f"Invalid JSON format: {exc.msg} (line {exc.lineno}, column {exc.colno})",
            {"line": exc.lineno, "column": exc.colno, "position": exc.pos},
            file_path=file_path,
            original_error=exc,
            recovery_suggestions=(
                "Check JSON syntax and structure",
                "Validate the file with a JSON linter",
                "Ensure the export was not truncated",
            ),
        ) from exc


def read_document(path: str | Path, reader: TextReader = read_text) -> Any:
    text = reader(path)
    document = decode_document(text, str(path))
    logger.info("Decoded %s (%d characters)", path, len(text))
    return document
