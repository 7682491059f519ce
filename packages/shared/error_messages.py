"""
User-facing text for parse failures.

Pure functions only: nothing here raises, logs or touches the failure objects.
"""
from __future__ import annotations

from typing import Any

from packages.shared.errors import (
    ConfigurationFailure,
    DateFailure,
    FileAccessFailure,
    ParseFailure,
    StructureFailure,
    ValidationFailure,
)

_GENERAL_SUGGESTIONS: list[tuple[type, tuple[str, ...]]] = [
    (StructureFailure, (
        "Verify your JSON file contains medical claims data",
        "Check that at least one of rxTba, rxHistory, or medHistory arrays exists",
        "Ensure the JSON structure matches the expected format",
    )),
    (DateFailure, (
        "Check date formats in your JSON file",
        "Ensure dates are in YYYY-MM-DD format or configure a different format",
        "Verify all date fields contain valid dates",
    )),
    (FileAccessFailure, (
        "Check that the file exists and is accessible",
        "Verify you have read permissions for the file",
        "Ensure the file is not corrupted or locked by another application",
    )),
    (ConfigurationFailure, (
        "Review your parser configuration",
        "Reset configuration to defaults if needed",
        "Check that all required configuration fields are set",
    )),
]


def _bullets(items) -> str:
    return "\n".join(f"• {item}" for item in items)


def describe_date_failure(error: DateFailure) -> str:
    """One-line description such as "record 3 of type rxTba has unparseable date 'xyz'"."""
    if error.claim_type is None or error.claim_index is None:
        return error.message
    text = f"record {error.claim_index + 1} of type {error.claim_type}"
    if error.field_value is not None:
        text += f" has unparseable date '{error.field_value}'"
    else:
        text += " has no resolvable date"
    if error.field_name:
        text += f" in field '{error.field_name}'"
    return text


def user_friendly_message(error: BaseException) -> str:
    """Convert any failure into the message shown to the user."""
    if isinstance(error, StructureFailure):
        message = f"Invalid JSON structure: {error.message}"
        if error.missing_fields:
            message += f"\n\nMissing required fields: {', '.join(error.missing_fields)}"
        if error.suggestions:
            message += f"\n\nSuggestions:\n{_bullets(error.suggestions)}"
        return message

    if isinstance(error, DateFailure):
        message = f"Date parsing error: {error.message}"
        described = describe_date_failure(error)
        if described != error.message:
            message += f"\n\n{described[0].upper()}{described[1:]}"
        errors = error.details.get("errors")
        if errors:
            message += f"\n\nFailed records:\n{_bullets(errors)}"
        if error.supported_formats:
            message += f"\n\nSupported date formats:\n{_bullets(error.supported_formats)}"
        return message

    if isinstance(error, FileAccessFailure):
        return f"File access error: {error.message}"

    if isinstance(error, ConfigurationFailure):
        message = f"Configuration error: {error.message}"
        if error.errors:
            message += f"\n\n{_bullets(error.errors)}"
        return message

    if isinstance(error, ValidationFailure):
        return f"Validation error: {error.message}"

    if isinstance(error, ParseFailure):
        return f"Parsing error: {error.message}"

    return f"Unexpected error: {error}"


def recovery_suggestions(error: BaseException) -> list[str]:
    """Ordered, de-duplicated recovery suggestions for a failure."""
    suggestions: list[str] = []
    if isinstance(error, ParseFailure):
        suggestions.extend(error.recovery_suggestions)
    for failure_type, general in _GENERAL_SUGGESTIONS:
        if isinstance(error, failure_type):
            suggestions.extend(general)
            break
    return list(dict.fromkeys(suggestions))


def error_payload(error: BaseException) -> dict[str, Any]:
    """JSON-ready summary used by the HTTP and CLI surfaces."""
    code = error.code if isinstance(error, ParseFailure) else "UNKNOWN_ERROR"
    payload: dict[str, Any] = {
        "code": code,
        "message": user_friendly_message(error),
        "suggestions": recovery_suggestions(error),
    }
    if isinstance(error, ParseFailure) and error.file_path:
        payload["filePath"] = error.file_path
    return payload
