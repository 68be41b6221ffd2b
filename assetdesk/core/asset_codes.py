"""Asset code helpers explained for newcomers.

Asset codes follow a ``"<PREFIX> - <SUFFIX>"`` convention for a handful of
asset types. These functions reveal *what* prefix each type carries, *when* it
is applied (while a create form changes type), *why* it matters (codes stay
grouped and readable in the inventory), and *how* unique suffixes are drawn.
"""

from __future__ import annotations

import logging
import random
from typing import Iterable

from .asset_types import (
    ASSET_TYPE_CHARGING_CABLE,
    ASSET_TYPE_LAPTOP,
    ASSET_TYPE_LAPTOP_CHARGER,
    ASSET_TYPE_PHONE_CHARGER,
    ASSET_TYPE_SMARTPHONE,
    ASSET_TYPE_TABLET,
    normalize_asset_type,
)

__all__ = [
    "CODE_ALPHABET",
    "CODE_PREFIXES",
    "SUFFIX_LENGTH",
    "apply_type_prefix",
    "code_prefix_for",
    "generate_unique_code",
    "is_valid_code_format",
]

logger = logging.getLogger(__name__)

# Advisory prefixes; types not listed here carry no prefix.
CODE_PREFIXES: dict[str, str] = {
    ASSET_TYPE_LAPTOP: "LAPT - ",
    ASSET_TYPE_SMARTPHONE: "CELU - ",
    ASSET_TYPE_TABLET: "TABL - ",
    ASSET_TYPE_LAPTOP_CHARGER: "CARGL - ",
    ASSET_TYPE_PHONE_CHARGER: "CARGC - ",
    ASSET_TYPE_CHARGING_CABLE: "CABC - ",
}

# No 0/O, 1/I/l look-alikes.
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
SUFFIX_LENGTH = 5
_MAX_ATTEMPTS = 100

_rng = random.SystemRandom()


def code_prefix_for(asset_type: str | None) -> str:
    """Return the configured prefix for ``asset_type`` or ``""``."""

    return CODE_PREFIXES.get(normalize_asset_type(asset_type), "")


def apply_type_prefix(current_code: str | None, asset_type: str | None) -> str:
    """Return the asset code a create form should show after a type change.

    * Types without a prefix clear the code.
    * A code that already starts with the new type's prefix is kept.
    * Anything else is replaced by the bare prefix.
    """

    prefix = code_prefix_for(asset_type)
    if not prefix:
        return ""
    code = current_code or ""
    if code.startswith(prefix):
        return code
    return prefix


def _random_suffix(length: int = SUFFIX_LENGTH) -> str:
    return "".join(_rng.choice(CODE_ALPHABET) for _ in range(length))


def _used_suffixes(prefix: str, existing: Iterable[str]) -> set[str]:
    used: set[str] = set()
    for code in existing:
        if isinstance(code, str) and code.startswith(prefix):
            used.add(code[len(prefix):].strip())
    return used


def generate_unique_code(prefix: str, existing: Iterable[str] = ()) -> str:
    """Draw a code whose suffix is not used by any of ``existing`` under ``prefix``."""

    used = _used_suffixes(prefix, existing)
    for _ in range(_MAX_ATTEMPTS):
        suffix = _random_suffix()
        if suffix not in used:
            return f"{prefix}{suffix}"
    logger.warning("No unused suffix found for prefix %r after %s draws", prefix, _MAX_ATTEMPTS)
    return f"{prefix}{_random_suffix()}"


def is_valid_code_format(code: str | None, prefix: str) -> bool:
    """``True`` when ``code`` is ``prefix`` followed by a well-formed suffix."""

    if not code or not code.startswith(prefix):
        return False
    suffix = code[len(prefix):].strip()
    if len(suffix) != SUFFIX_LENGTH:
        return False
    return all(char in CODE_ALPHABET for char in suffix)
