"""
Local file reader for claims exports and settings files.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from packages.shared.errors import FileAccessFailure, ValidationFailure

logger = logging.getLogger(__name__)


class TextReader(Protocol):
    def __call__(self, path: str | Path) -> str: ...


def read_text(path: str | Path) -> str:
    """
    Read a whole UTF-8 text file (a leading BOM is dropped).
    OS and memory errors become FileAccessFailure with the OS code classified.
    """
    try:
        data = Path(path).read_bytes()
    except (OSError, MemoryError) as exc:
        failure = FileAccessFailure.from_os_error(exc, str(path))
        logger.warning("File read failed for %s: %s", path, failure.code)
        raise failure from exc

    logger.debug("Read %d bytes from %s", len(data), path)
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValidationFailure(
            f"File is not UTF-8 text: {path}",
            {"position": exc.start},
            file_path=str(path),
            original_error=exc,
        ) from exc
