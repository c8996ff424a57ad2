"""Normalization of remote read results for storage, comparison and display.

Decoded contract results are Python ints (possibly wider than BSON's int64),
bools, str, bytes and tuples of those. They are stored in a BSON-safe form and
compared through a canonical string so that a value read back from Mongo
(e.g. a big integer stored as a decimal string) equals the freshly decoded one.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from src.chainwatch.schemas.alerts import AlertState

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_ADDRESS_RE = re.compile(r"^0[xX][0-9a-fA-F]{40}$")


# PUBLIC_INTERFACE
def to_storable(value: Any) -> Any:
    """Convert a decoded remote value into a BSON-safe value."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return value if _INT64_MIN <= value <= _INT64_MAX else str(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [to_storable(v) for v in value]
    return value


# PUBLIC_INTERFACE
def canonical_value(value: Any) -> str:
    """Canonical string form used for change detection and messages."""
    if value is None:
        return "None"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        # Stored numbers can come back as doubles when written by other tools.
        return str(int(value))
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, str):
        # Addresses compare regardless of checksum casing; other strings are exact.
        return value.lower() if _ADDRESS_RE.match(value) else value
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(canonical_value(v) for v in value) + "]"
    return str(value)


# PUBLIC_INTERFACE
def has_changed(prior: Optional[AlertState], response: Any) -> bool:
    """Return True when the response differs from the stored state (absent state counts as changed)."""
    if prior is None:
        return True
    return canonical_value(prior.value) != canonical_value(response)
