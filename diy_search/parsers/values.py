# diy_search/parsers/values.py

"""Scalar helpers shared by the retailer parsers: prices, URLs, terms."""

import math
import re
from typing import Any

from diy_search.config.settings import Settings

_PRICE_RE = re.compile(r"\d+(?:\.\d{1,2})?")
_ABSOLUTE_RE = re.compile(r"^https?://", re.IGNORECASE)
# Anything that is not a letter, digit, whitespace, hyphen or plus
_STRICT_TERM_RE = re.compile(r"[^\w\s+\-]|_")


class InvalidSearchTermError(ValueError):
    """Raised when a search term is empty after trimming and sanitizing."""


def extract_price(raw: Any) -> float | None:
    """Pull a numeric price out of a number, ``{"value": n}`` or a string.

    Strings such as ``"£1,299.50 each"`` yield the first decimal number
    found; anything unparseable yields ``None``.
    """
    if isinstance(raw, dict):
        raw = raw.get("value")
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else None
    if isinstance(raw, str):
        match = _PRICE_RE.search(raw.replace(",", ""))
        return float(match.group(0)) if match else None
    return None


def ensure_absolute(url: Any, origin: str) -> str | None:
    """Resolve *url* against a retailer *origin*.

    ``/path`` and bare ``path`` are prefixed with the origin,
    ``//host/path`` gets ``https:``, absolute URLs pass through.
    """
    if not isinstance(url, str):
        return None
    url = url.strip()
    if not url:
        return None
    if _ABSOLUTE_RE.match(url):
        return url
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("/"):
        return f"{origin}{url}"
    return f"{origin}/{url}"


def sanitize_term(raw: str | None, strict: bool = False) -> str:
    """Trim and cap a search term; *strict* also drops punctuation.

    Raises:
        InvalidSearchTermError: when nothing usable is left.
    """
    term = raw or ""
    if strict:
        term = _STRICT_TERM_RE.sub(" ", term)
    term = term.strip()[: Settings.MAX_TERM_LENGTH].strip()
    if not term:
        raise InvalidSearchTermError("Missing term")
    return term


def clean_title(*candidates: Any) -> str:
    """First non-blank candidate with whitespace collapsed, else a generic one."""
    for candidate in candidates:
        if isinstance(candidate, (str, int, float)) and not isinstance(
            candidate, bool
        ):
            text = " ".join(str(candidate).split())
            if text:
                return text
    return "Top result"
