"""Phone number normalisation helpers.

The same number reaches the inventory in many shapes (``+593 99 123 4567``,
``0993-123-4567``...). These functions decide *what* counts as the same
number, and are shared by the direct uniqueness check and the fallback scan
so both paths agree.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

__all__ = ["PHONE_ATTRIBUTE_KEYS", "normalize_phone_number", "extract_phone_number"]

# Attribute keys that may carry a device's phone number, in lookup order.
PHONE_ATTRIBUTE_KEYS = ("chipNumber", "phoneNumber", "phone")

_WHITESPACE_RE = re.compile(r"\s+")
_NOT_PHONE_CHAR_RE = re.compile(r"[^+0-9]")


def normalize_phone_number(raw: Any) -> str:
    """Return the canonical form of a phone number.

    * Drops whitespace, then every character other than ``+`` and digits.
    * Keeps a ``+`` only in leading position so the result is idempotent.
    """

    if raw is None:
        return ""
    cleaned = _WHITESPACE_RE.sub("", str(raw).strip())
    cleaned = _NOT_PHONE_CHAR_RE.sub("", cleaned)
    if not cleaned:
        return ""
    lead = "+" if cleaned.startswith("+") else ""
    digits = cleaned.replace("+", "")
    if not digits:
        return ""
    return lead + digits


def extract_phone_number(attributes: Mapping[str, Any] | None) -> str:
    """Return the first non-empty normalized phone number found in ``attributes``."""

    if not attributes:
        return ""
    for key in PHONE_ATTRIBUTE_KEYS:
        normalized = normalize_phone_number(attributes.get(key))
        if normalized:
            return normalized
    return ""
