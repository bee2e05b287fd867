# diy_search/parsers/images.py

"""Image URL normalization and proxy selection.

B&Q serves product images from a Scene7 image service whose URLs arrive
in several forms (relative, protocol-relative, with ``$preset$`` macros,
with HTML-escaped ``&amp;`` separators).  They are rewritten into one
canonical absolute URL with explicit size/format/quality parameters.
The vendor blocks hotlinking by referrer, so URLs on its image hosts are
routed through the local image proxy.
"""

import logging
import re
from typing import Any
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from diy_search.config.settings import Settings
from diy_search.parsers.tree import find_first
from diy_search.parsers.values import ensure_absolute

logger = logging.getLogger("diy_search.images")

_IMAGE_PATH_RE = re.compile(r"/(?:is|media)/image/", re.IGNORECASE)
_IMAGE_EXT_RE = re.compile(r"\.(?:png|jpe?g|webp)(?:\?|$)", re.IGNORECASE)

_URL_FIELDS = ("url", "src", "href", "link", "image")
_PREFERRED_KEYS = (
    "imageUrl",
    "image",
    "thumbnail",
    "thumbnailUrl",
    "img",
    "uri",
    "url",
)
_SCAN_DEPTH = 3


def host_matches(host: str | None, domains: list[str]) -> bool:
    """True if *host* equals one of *domains* or is a subdomain of one."""
    if not host:
        return False
    host = host.lower()
    return any(host == d or host.endswith(f".{d}") for d in domains)


def _first_param(pairs: list[tuple[str, str]], key: str) -> str:
    for k, v in pairs:
        if k == key:
            return v
    return ""


def _set_param(
    pairs: list[tuple[str, str]], key: str, value: str,
) -> list[tuple[str, str]]:
    """Replace the first *key* in place (dropping repeats) or append it."""
    result: list[tuple[str, str]] = []
    replaced = False
    for k, v in pairs:
        if k != key:
            result.append((k, v))
        elif not replaced:
            result.append((k, value))
            replaced = True
    if not replaced:
        result.append((key, value))
    return result


def _looks_like_image(value: str) -> bool:
    return bool(
        _IMAGE_PATH_RE.search(value) or _IMAGE_EXT_RE.search(value)
    )


def _image_string(node: Any) -> str | None:
    """Image-looking string held directly by a dict or list, if any."""
    if isinstance(node, dict):
        for key in _PREFERRED_KEYS:
            value = node.get(key)
            if isinstance(value, str) and _looks_like_image(value):
                return value.strip()
        values: Any = node.values()
    elif isinstance(node, list):
        values = node
    else:
        return None
    for value in values:
        if isinstance(value, str) and _looks_like_image(value):
            return value.strip()
    return None


class ImageNormalizer:
    """Turn arbitrary image-ish values into canonical, fetchable URLs."""

    DEFAULT_ORIGIN = "https://www.diy.com"

    @staticmethod
    def unwrap(value: Any) -> str | None:
        """Reduce a string, candidate list or URL-bearing object to a string."""
        if isinstance(value, list):
            value = next(
                (v for v in value if isinstance(v, str)),
                value[0] if value else None,
            )
        if isinstance(value, dict):
            value = next(
                (value[k] for k in _URL_FIELDS if value.get(k)), None
            )
        if not isinstance(value, str):
            return None
        return value.strip() or None

    @staticmethod
    def is_vendor_image(url: str) -> bool:
        """True for URLs served by the Scene7 image service."""
        try:
            parts = urlsplit(url)
        except ValueError:
            return False
        host = (parts.hostname or "").lower()
        return parts.path.startswith("/is/image/") or "scene7.com" in host

    @staticmethod
    def sanitize_query(url: str) -> str:
        """Strip ``$macro`` params and pin explicit wid/hei/fmt/qlt."""
        parts = urlsplit(url.replace("&amp;", "&"))
        pairs = parse_qsl(parts.query, keep_blank_values=True)
        defaults = Settings.IMAGE_DEFAULTS

        wid = (
            _first_param(pairs, "wid")
            or _first_param(pairs, "$width")
            or defaults["wid"]
        )
        hei = (
            _first_param(pairs, "hei")
            or _first_param(pairs, "$height")
            or defaults["hei"]
        )
        kept = [(k, v) for k, v in pairs if not k.startswith("$")]
        kept = _set_param(kept, "wid", wid)
        kept = _set_param(kept, "hei", hei)
        if not _first_param(kept, "fmt"):
            kept = _set_param(kept, "fmt", defaults["fmt"])
        if not _first_param(kept, "qlt"):
            kept = _set_param(kept, "qlt", defaults["qlt"])
        return urlunsplit(parts._replace(query=urlencode(kept)))

    @classmethod
    def normalize(
        cls, value: Any, origin: str | None = None,
    ) -> str | None:
        """Canonical absolute URL for *value*, or ``None``."""
        src = cls.unwrap(value)
        if src is None or src.startswith("data:"):
            return None
        absolute = ensure_absolute(src, origin or cls.DEFAULT_ORIGIN)
        if absolute is None:
            return None
        if cls.is_vendor_image(absolute):
            return cls.sanitize_query(absolute)
        return absolute

    @staticmethod
    def find_any_image_url(
        node: Any, max_depth: int = _SCAN_DEPTH,
    ) -> str | None:
        """Scan up to *max_depth* levels of *node* for an image-like string."""
        found = find_first(
            node,
            lambda n: _image_string(n) is not None,
            max_depth=max_depth,
        )
        return _image_string(found) if found is not None else None

    @staticmethod
    def proxy_if_needed(
        url: str | None, endpoint: str | None = None,
    ) -> str | None:
        """Route vendor image hosts through the image proxy endpoint."""
        if not url:
            return url
        try:
            host = urlsplit(url).hostname
        except ValueError:
            return url
        if not host_matches(host, Settings.PROXIED_IMAGE_HOSTS):
            return url
        target = endpoint or Settings.IMAGE_PROXY_ENDPOINT
        return f"{target}?url={quote(url, safe='')}"

    @classmethod
    def resolve(
        cls,
        item: dict[str, Any],
        keys: tuple[str, ...],
        origin: str | None = None,
    ) -> str | None:
        """Image URL for a raw product: named fields, then a shallow scan."""
        raw = next((item[k] for k in keys if item.get(k)), None)
        if raw is None:
            raw = cls.find_any_image_url(item)
            if raw is not None:
                logger.debug("Image found by scan: %s", raw)
        return cls.proxy_if_needed(cls.normalize(raw, origin))
