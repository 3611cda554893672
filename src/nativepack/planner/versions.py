"""Dotted numeric version comparison with implicit zero padding.

    compare("0.21", "0.21.0")   -> Ordering.EQUAL
    compare("0.20.1", "0.20")   -> Ordering.GREATER
    compare("1.10", "1.9")      -> Ordering.GREATER

Every decision that depends on the requested version (configure flags,
runtime dependencies) goes through this module so the two can never
disagree.
"""

from __future__ import annotations

import re
from enum import IntEnum

from packaging.version import Version

from nativepack.errors import MalformedVersion

_DOTTED = re.compile(r"^[0-9]+(\.[0-9]+)*$")
_SUFFIX = re.compile(r"^v?([0-9]+(?:\.[0-9]+)*)(?:[-~+].*)?$")


class Ordering(IntEnum):
    LESS = -1
    EQUAL = 0
    GREATER = 1


def parse_version(text: str) -> Version:
    """Parse a dotted integer version, rejecting anything else.

    ``packaging`` accepts far more than we do (``1.0rc1``, epochs, local
    tags), so the input is validated first and only the release tuple is
    ever compared. Its release comparison already treats ``1.2`` and
    ``1.2.0`` as equal.
    """
    stripped = text.strip() if isinstance(text, str) else ""
    if not stripped:
        raise MalformedVersion(f"Empty version string: {text!r}")
    if not _DOTTED.match(stripped):
        raise MalformedVersion(f"Not a dotted numeric version: {text!r}")
    return Version(stripped)


def compare(a: str, b: str) -> Ordering:
    """Compare two dotted versions component-wise, zero-padding the shorter."""
    left, right = parse_version(a), parse_version(b)
    if left < right:
        return Ordering.LESS
    if left > right:
        return Ordering.GREATER
    return Ordering.EQUAL


def eq(a: str, b: str) -> bool:
    return compare(a, b) is Ordering.EQUAL


def gt(a: str, b: str) -> bool:
    return compare(a, b) is Ordering.GREATER


def gte(a: str, b: str) -> bool:
    return compare(a, b) is not Ordering.LESS


def lt(a: str, b: str) -> bool:
    return compare(a, b) is Ordering.LESS


def lte(a: str, b: str) -> bool:
    return compare(a, b) is not Ordering.GREATER


def release_of(requested: str) -> str:
    """Return the numeric release part of a requested version or tag.

    ``0.22.0-rc2`` -> ``0.22.0``, ``v0.21.1`` -> ``0.21.1``. Anything that
    does not start with a dotted release raises MalformedVersion.
    """
    match = _SUFFIX.match(requested.strip())
    if not match:
        raise MalformedVersion(f"No numeric release in {requested!r}")
    return match.group(1)


def looks_like_version(text: str) -> bool:
    """Check if a revision selector names a release (``0.21.0``, ``v0.21.0``)."""
    try:
        release_of(text)
    except MalformedVersion:
        return False
    return True
