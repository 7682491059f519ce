"""
Failure taxonomy for claims timeline parsing.

Every failure carries a message, a machine code, structured details and,
optionally, the file path, the wrapped original cause, recovery suggestions
and free-form context. Failures are never mutated after construction: a layer
that wants to add context calls ``enrich()`` which returns a new failure whose
``original_error`` is the previous one.
"""
from __future__ import annotations

import errno
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from packages.shared.models.common import (
    DATE_FORMAT_EXAMPLES,
    DEFAULT_DATE_FORMAT,
    SUPPORTED_DATE_FORMATS,
)
from packages.shared.models.enums import FileAccessKind


def _frozen(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


class ParseFailure(Exception):
    """Base failure for everything the parsing engine raises."""

    code = "PARSE_ERROR"
    default_recovery_suggestions: tuple[str, ...] = ()

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
        *,
        file_path: Optional[str] = None,
        original_error: Optional[BaseException] = None,
        recovery_suggestions: Optional[Iterable[str]] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or type(self).code
        self.details = _frozen(details)
        self.file_path = file_path
        self.original_error = original_error
        if recovery_suggestions is None:
            recovery_suggestions = self.default_recovery_suggestions
        self.recovery_suggestions = tuple(recovery_suggestions)
        self.context = _frozen(context)
        self.timestamp = datetime.now(timezone.utc)

    def __str__(self) -> str:
        return self.message

    def enrich(
        self,
        *,
        message: Optional[str] = None,
        file_path: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> "ParseFailure":
        """Return a copy of this failure with extra context, wrapping this one as its cause."""
        clone = type(self).__new__(type(self))
        clone.__dict__.update(self.__dict__)
        text = message if message is not None else self.message
        Exception.__init__(clone, text)
        clone.message = text
        if file_path is not None:
            clone.file_path = file_path
        if context:
            clone.context = _frozen({**self.context, **context})
        if details:
            clone.details = _frozen({**self.details, **details})
        clone.original_error = self
        return clone

    @property
    def root_cause(self) -> BaseException:
        """Innermost wrapped cause (the failure itself when nothing is wrapped)."""
        current: BaseException = self
        seen = set()
        while isinstance(current, ParseFailure) and current.original_error is not None:
            if id(current) in seen:
                break
            seen.add(id(current))
            current = current.original_error
        return current


class ValidationFailure(ParseFailure):
    """Malformed or unrecognised input."""

    code = "VALIDATION_ERROR"
    default_recovery_suggestions = (
        "Check JSON syntax and structure",
        "Verify the file contains valid medical claims data",
        "Ensure all required fields are present",
    )

    def __init__(self, message: str, details: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        super().__init__(message, kwargs.pop("code", None), details, **kwargs)


DEFAULT_EXPECTED_STRUCTURE = (
    "Expected structure:\n"
    "• rxTba: array of prescription claims\n"
    "• rxHistory: array of prescription history\n"
    "• medHistory: object with claims array"
)


class StructureFailure(ValidationFailure):
    """The document does not expose any usable claim array."""

    code = "STRUCTURE_VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        missing_fields: Iterable[str],
        suggestions: Iterable[str],
        *,
        expected_structure: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        missing = tuple(missing_fields)
        hints = tuple(suggestions)
        kwargs.setdefault(
            "recovery_suggestions",
            (
                "Ensure your JSON contains medical claims data",
                "Check the sample files for correct structure",
                "Verify that arrays contain valid claim objects",
                *hints,
            ),
        )
        details = {"missing_fields": list(missing), "suggestions": list(hints)}
        super().__init__(message, details, **kwargs)
        self.missing_fields = missing
        self.suggestions = hints
        self.expected_structure = expected_structure or DEFAULT_EXPECTED_STRUCTURE


class MissingFieldFailure(ValidationFailure):
    """A field configured as required resolved to nothing."""

    code = "MISSING_FIELD"

    def __init__(self, field_path: str, message: Optional[str] = None, **kwargs: Any) -> None:
        kwargs.setdefault(
            "recovery_suggestions",
            (
                f"Add a value for '{field_path}' to every record",
                "Mark the field as optional in the claim type configuration",
            ),
        )
        super().__init__(
            message or f"Required field '{field_path}' is missing",
            {"field": field_path},
            **kwargs,
        )
        self.field_path = field_path


class DateFailure(ParseFailure):
    """A date could not be resolved from any configured strategy."""

    code = "DATE_PARSE_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
        *,
        expected_format: str = DEFAULT_DATE_FORMAT,
        supported_formats: Iterable[str] = SUPPORTED_DATE_FORMATS,
        claim_type: Optional[str] = None,
        claim_index: Optional[int] = None,
        field_name: Optional[str] = None,
        field_value: Any = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault(
            "recovery_suggestions",
            (
                f"Use the format: {expected_format}",
                "Check your date values",
                "Ensure dates are valid calendar dates",
            ),
        )
        context = dict(kwargs.pop("context", None) or {})
        for key, value in (
            ("claim_type", claim_type),
            ("claim_index", claim_index),
            ("field_name", field_name),
            ("field_value", field_value),
        ):
            if value is not None:
                context[key] = value
        payload = {"examples": dict(DATE_FORMAT_EXAMPLES), **(details or {})}
        super().__init__(message, kwargs.pop("code", None), payload, context=context, **kwargs)
        self.expected_format = expected_format
        self.supported_formats = tuple(supported_formats)

    @property
    def claim_type(self) -> Optional[str]:
        return self.context.get("claim_type")

    @property
    def claim_index(self) -> Optional[int]:
        return self.context.get("claim_index")

    @property
    def field_name(self) -> Optional[str]:
        return self.context.get("field_name")

    @property
    def field_value(self) -> Any:
        return self.context.get("field_value")


# (message template, recovery suggestions) per access kind
_ACCESS_TEXT: dict[FileAccessKind, tuple[str, tuple[str, ...]]] = {
    FileAccessKind.NOT_FOUND: (
        "File not found: {path}",
        ("Check if the file path is correct", "Verify the file exists"),
    ),
    FileAccessKind.PERMISSION_DENIED: (
        "Permission denied reading file: {path}",
        ("Ensure you have read permissions", "Check file ownership and access rights"),
    ),
    FileAccessKind.NO_SPACE: (
        "Not enough disk space to read file: {path}",
        ("Free up disk space", "Move the file to a drive with more free space"),
    ),
    FileAccessKind.OUT_OF_MEMORY: (
        "Not enough memory to read file: {path}",
        ("Close other applications to free memory", "Split the export into smaller files"),
    ),
    FileAccessKind.NETWORK_UNREACHABLE: (
        "Network location unreachable while reading file: {path}",
        ("Check network connection", "Copy the file to a local drive and retry"),
    ),
    FileAccessKind.UNKNOWN: (
        "Unable to read file: {path}",
        (
            "Check if the file path is correct",
            "Verify the file exists",
            "Ensure you have read permissions",
        ),
    ),
}

_OS_CODE_KINDS: dict[str, FileAccessKind] = {
    "ENOENT": FileAccessKind.NOT_FOUND,
    "ENOTDIR": FileAccessKind.NOT_FOUND,
    "EACCES": FileAccessKind.PERMISSION_DENIED,
    "EPERM": FileAccessKind.PERMISSION_DENIED,
    "ENOSPC": FileAccessKind.NO_SPACE,
    "EDQUOT": FileAccessKind.NO_SPACE,
    "ENOMEM": FileAccessKind.OUT_OF_MEMORY,
    "ENETUNREACH": FileAccessKind.NETWORK_UNREACHABLE,
    "ENETDOWN": FileAccessKind.NETWORK_UNREACHABLE,
    "EHOSTUNREACH": FileAccessKind.NETWORK_UNREACHABLE,
}


def os_error_code(error: BaseException) -> Optional[str]:
    """Symbolic OS error code (``ENOENT`` ...) for an I/O failure, if known."""
    if isinstance(error, MemoryError):
        return "ENOMEM"
    if isinstance(error, OSError):
        if error.errno is not None and error.errno in errno.errorcode:
            return errno.errorcode[error.errno]
        if isinstance(error, FileNotFoundError):
            return "ENOENT"
        if isinstance(error, PermissionError):
            return "EACCES"
    return None


class FileAccessFailure(ParseFailure):
    """The input file could not be read."""

    code = "FILE_READ_ERROR"

    def __init__(
        self,
        message: str,
        kind: FileAccessKind = FileAccessKind.UNKNOWN,
        *,
        os_code: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("recovery_suggestions", _ACCESS_TEXT[kind][1])
        details = {"kind": kind.value, "os_code": os_code}
        super().__init__(message, os_code, details, **kwargs)
        self.kind = kind
        self.os_code = os_code

    @classmethod
    def from_os_error(cls, error: BaseException, file_path: str) -> "FileAccessFailure":
        code = os_error_code(error)
        kind = _OS_CODE_KINDS.get(code or "", FileAccessKind.UNKNOWN)
        message = _ACCESS_TEXT[kind][0].format(path=file_path)
        if kind is FileAccessKind.UNKNOWN:
            message = f"{message} ({error})"
        return cls(
            message,
            kind,
            os_code=code,
            file_path=file_path,
            original_error=error,
        )


class ConfigurationFailure(ParseFailure):
    """Invalid parser or claim type configuration."""

    code = "CONFIGURATION_ERROR"
    default_recovery_suggestions = (
        "Review your parser configuration",
        "Reset configuration to defaults if needed",
        "Check that all required configuration fields are set",
    )

    def __init__(self, message: str, errors: Iterable[str] = (), **kwargs: Any) -> None:
        problems = list(errors)
        super().__init__(message, kwargs.pop("code", None), {"errors": problems}, **kwargs)
        self.errors = tuple(problems)
