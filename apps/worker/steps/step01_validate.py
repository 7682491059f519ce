"""
Step 1: structural validation.

Pass/fail shape check of a decoded document against the array locations of a
set of claim types. The document must expose at least one location; every
exposed location must hold a list whose elements (if any) are objects. Field
contents are not inspected here.
"""
from __future__ import annotations

import logging
from typing import Any, Sequence

from packages.shared.errors import StructureFailure
from packages.shared.models import ClaimTypeConfig
from packages.shared.utils.paths import path_root, resolve_path

logger = logging.getLogger(__name__)


def expected_structure(claim_types: Sequence[ClaimTypeConfig]) -> str:
    """Human-readable template of the shape the claim types accept."""
    lines = ["Expected structure:"]
    for ct in claim_types:
        root = path_root(ct.array_path)
        if root == ct.array_path:
            lines.append(f"• {root}: array of {ct.name} claims")
        else:
            rest = ct.array_path[len(root):].lstrip(".")
            lines.append(f"• {root}: object with {rest} array ({ct.name} claims)")
    return "\n".join(lines)


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "string"


def validate_structure(document: Any, claim_types: Sequence[ClaimTypeConfig]) -> bool:
    """Return True when *document* is usable by *claim_types*; raise StructureFailure otherwise."""
    template = expected_structure(claim_types)

    if not claim_types:
        raise StructureFailure(
            "No claim types configured",
            [],
            ["Configure at least one claim type with an arrayPath"],
            expected_structure=template,
        )

    if not isinstance(document, dict):
        raise StructureFailure(
            f"Invalid JSON: Expected an object but received {_type_name(document)}",
            ["root object"],
            ["Ensure the JSON file contains a valid object structure"],
            expected_structure=template,
        )

    exposed = [ct for ct in claim_types if resolve_path(document, ct.array_path) is not None]
    logger.debug(
        "Structure check: keys=%s exposed=%s",
        sorted(document)[:20],
        [ct.array_path for ct in exposed],
    )

    if not exposed:
        names = ", ".join(ct.array_path for ct in claim_types)
        raise StructureFailure(
            "No valid medical claims arrays found in JSON",
            [f"{ct.array_path} ({ct.name} claims)" for ct in claim_types],
            [
                f"Ensure your JSON contains at least one of the following arrays: {names}",
                "Check that the array paths in your configuration match your JSON structure",
                "Verify that the arrays contain valid claim objects",
            ],
            expected_structure=template,
        )

    problems: list[str] = []
    for ct in exposed:
        value = resolve_path(document, ct.array_path)
        if not isinstance(value, list):
            problems.append(f"{ct.array_path} must be an array (found {_type_name(value)})")
            continue
        for index, element in enumerate(value):
            if not isinstance(element, dict):
                problems.append(f"{ct.array_path}[{index}] must be an object (found {_type_name(element)})")
                break

    if problems:
        raise StructureFailure(
            "Invalid claim array structures found",
            problems,
            [
                "Check that every claim array location holds an array of objects",
                "Check that the array paths in your configuration match your JSON structure",
            ],
            expected_structure=template,
        )

    return True
