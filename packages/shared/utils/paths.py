"""
Path expressions over generic JSON trees.

A path such as ``lines[0].description`` is compiled once into an ordered tuple
of field and index segments and evaluated against the plain ``dict`` / ``list``
/ scalar values produced by ``json.loads``. Resolution never fails for absent
data: the first missing, null or type-mismatched segment yields the default.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Union

from packages.shared.errors import ConfigurationFailure, MissingFieldFailure
from packages.shared.models.common import PATH_PATTERN

_PATH_RE = re.compile(PATH_PATTERN)
_SEGMENT_RE = re.compile(r"^([^\[\]]*)((?:\[\d+\])*)$")
_INDEX_RE = re.compile(r"\[(\d+)\]")


@dataclass(frozen=True)
class FieldSegment:
    name: str


@dataclass(frozen=True)
class IndexSegment:
    index: int


PathSegment = Union[FieldSegment, IndexSegment]


def is_valid_path(path: str) -> bool:
    return bool(path) and bool(_PATH_RE.match(path))


@lru_cache(maxsize=512)
def parse_path(path: str) -> tuple[PathSegment, ...]:
    """Compile a dotted/bracketed path into segments. Raises ConfigurationFailure on bad syntax."""
    if not is_valid_path(path):
        raise ConfigurationFailure(
            f"Invalid path expression: '{path}'",
            [f"'{path}' is not a dotted/bracketed path such as 'lines[0].description'"],
        )
    segments: list[PathSegment] = []
    for part in path.split("."):
        match = _SEGMENT_RE.match(part)
        name, indexes = match.group(1), match.group(2)
        if name:
            segments.append(FieldSegment(name))
        segments.extend(IndexSegment(int(i)) for i in _INDEX_RE.findall(indexes))
    return tuple(segments)


def resolve_path(value: Any, path: str, default: Any = None) -> Any:
    """Walk *path* over *value*; return *default* as soon as a segment cannot be followed."""
    if value is None or not path:
        return default
    current = value
    for seg in parse_path(path):
        if current is None:
            return default
        if isinstance(seg, IndexSegment):
            if not isinstance(current, list) or seg.index >= len(current):
                return default
            current = current[seg.index]
        else:
            if not isinstance(current, dict) or seg.name not in current:
                return default
            current = current[seg.name]
    return default if current is None else current


def resolve_required(value: Any, config) -> Any:
    """Resolve a FieldConfig; raise MissingFieldFailure when a required field yields nothing."""
    resolved = resolve_path(value, config.path)
    if resolved is None or (isinstance(resolved, str) and not resolved.strip()):
        if config.required:
            raise MissingFieldFailure(config.path)
        return config.default_value
    return resolved


def path_root(path: str) -> str:
    """First field name of a path ("medHistory" for "medHistory.claims")."""
    for seg in parse_path(path):
        if isinstance(seg, FieldSegment):
            return seg.name
        break
    return path
