"""
Key-name hints shared by schema discovery and the heuristic extractor.

Keys are compared after lower-casing and dropping ``_``/``-``/spaces, so
``date_of_service``, ``DateOfService`` and ``dateOfService`` all match.
"""
from __future__ import annotations

import re
from typing import Any, Optional

from packages.shared.utils.dates import parse_date_string

START_HINTS = (
    "dos", "startdate", "start", "srvcstart", "servicedate", "dateofservice",
    "fromdate", "filldate", "datefilled", "prescriptiondate", "claimdate",
    "admitdate", "visitdate", "date",
)
END_HINTS = (
    "enddate", "end", "srvcend", "todate", "thrudate", "throughdate",
    "dischargedate", "servicedateend",
)
SUPPLY_HINTS = ("dayssupply", "daysupply", "supplydays", "dayssupplied")
ID_HINTS = (
    "id", "claimid", "lineid", "rxid", "claimnumber", "rxnumber", "visitid",
    "encounterid", "identifier", "uuid",
)
NAME_HINTS = (
    "medication", "drugname", "drug", "description", "servicedescription",
    "procedure", "name", "title", "provider", "diagnosis",
)

_NORMALISE = re.compile(r"[\s_\-]+")


def normalise_key(key: str) -> str:
    return _NORMALISE.sub("", key).lower()


def hint_rank(key: str, hints: tuple[str, ...]) -> Optional[int]:
    """Position of *key* in *hints* (lower is better), None when it matches none."""
    norm = normalise_key(key.rsplit(".", 1)[-1])
    try:
        return hints.index(norm)
    except ValueError:
        return None


def is_date_like(value: Any) -> bool:
    return isinstance(value, str) and len(value.strip()) >= 6 and parse_date_string(value) is not None


def is_name_like(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip()) and not is_date_like(value)
