"""
CID helpers for subdomain-safe gateway addressing.

DNS labels are case-insensitive, so a CID that is going to be used as a
subdomain must be a version 1 CID in lowercase base32.
"""

from typing import Any

from multiformats import CID

SUBDOMAIN_BASE = "base32"


def is_valid(value: Any) -> bool:
    """Return True if ``value`` parses as a CID. Never raises."""
    if not isinstance(value, str) or not value:
        return False
    try:
        CID.decode(value)
    except Exception:
        return False
    return True


def to_subdomain_safe(value: str) -> str:
    """
    Return the version 1, base32 form of ``value``.

    CIDs already in that form are returned unchanged, so the function is
    idempotent.

    Raises:
        ValueError: If ``value`` is not a CID.
    """
    try:
        cid = CID.decode(value)
    except Exception as e:
        raise ValueError(f"Not a CID: {value!r}") from e

    if cid.version == 1 and cid.base.name == SUBDOMAIN_BASE:
        return value
    return cid.set(version=1).encode(SUBDOMAIN_BASE)
