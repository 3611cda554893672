"""Source locator parsing and working-copy management."""

from nativepack.source.checkout import GitCheckout
from nativepack.source.locator import SourceRef, parse_locator

__all__ = ["GitCheckout", "SourceRef", "parse_locator"]
