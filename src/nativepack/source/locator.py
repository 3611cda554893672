"""Parse combined ``repository?query#fragment`` source locators.

A locator carries the clone URL and, optionally, the revision to check out:

    https://github.com/apache/mesos.git                -> default branch
    https://github.com/apache/mesos.git?ref=0.21.0     -> 0.21.0
    https://github.com/apache/mesos.git?prod7          -> prod7
    https://github.com/apache/mesos.git#0.21.0         -> UnsupportedSyntax

Fragments are refused because ``#`` is easy to mistake for a comment or a
URL anchor; use ``?ref=`` instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from nativepack.errors import UnsupportedSyntax

logger = logging.getLogger("nativepack.source")

SELECTOR_KEYS = frozenset({"ref", "h", "branch", "tag"})


@dataclass(frozen=True)
class SourceRef:
    repository_url: str
    revision: str = ""

    def __str__(self) -> str:
        if self.revision:
            return f"{self.repository_url}?ref={self.revision}"
        return self.repository_url


def _selector_from_query(query: str) -> str:
    key, sep, value = query.partition("=")
    if sep and key in SELECTOR_KEYS:
        return value
    return query


def parse_locator(locator: str, revision: str | None = None) -> SourceRef:
    """Split a locator into a SourceRef.

    Args:
        locator: Repository URL with optional ``?query`` and ``#fragment``.
        revision: Selector supplied separately by the caller (``--ref``).
            When given it always wins over the query, and a fragment is
            ignored with a warning instead of rejected.

    Raises:
        UnsupportedSyntax: A fragment was given and no *revision* was.
    """
    pre_fragment, has_fragment, fragment = locator.partition("#")
    repository_url, _, query = pre_fragment.partition("?")

    if has_fragment:
        if not revision:
            raise UnsupportedSyntax(
                f"Fragment '#{fragment}' in {locator!r} is not supported; "
                f"use '?ref={fragment}' instead"
            )
        logger.warning(
            f"Ignoring fragment '#{fragment}' in {locator!r}; "
            f"using explicit ref {revision!r}"
        )

    if revision:
        return SourceRef(repository_url, revision)
    return SourceRef(repository_url, _selector_from_query(query))
