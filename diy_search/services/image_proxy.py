# diy_search/services/image_proxy.py

"""Fetches allow-listed retailer images on behalf of the browser.

B&Q's image CDN refuses hotlinked requests, so product images from it
are served through this proxy with the right ``Referer``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote, urlsplit

from curl_cffi import requests as curl_requests

from diy_search.config.settings import Settings
from diy_search.parsers.images import ImageNormalizer, host_matches

logger = logging.getLogger("diy_search.images")


@dataclass
class ProxyResponse:
    """Status, body and headers to hand back to the HTTP layer."""

    status: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def media_type(self) -> str:
        return self.headers.get("Content-Type", "text/plain")


def _text(status: int, message: str, **headers: str) -> ProxyResponse:
    return ProxyResponse(
        status=status,
        body=message.encode(),
        headers={"Content-Type": "text/plain", **headers},
    )


class ImageProxy:
    """Validates, canonicalises and fetches a proxied image URL."""

    UPSTREAM_HEADERS = {
        "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
        "Referer": "https://www.diy.com/",
    }

    def __init__(self, http: Any | None = None) -> None:
        self.settings = Settings()
        self.http = http or curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )

    def resolve_target(self, raw: str | None) -> tuple[str | None, int]:
        """Canonical upstream URL and ``200``, or ``None`` and an error status."""
        if not raw or not raw.strip():
            return None, 400
        raw = raw.strip()
        if raw.lower().startswith(("http%3a", "https%3a")):
            raw = unquote(raw)
        raw = raw.replace("&amp;", "&")
        try:
            parts = urlsplit(raw)
        except ValueError:
            return None, 400
        if parts.scheme not in ("http", "https") or not parts.hostname:
            return None, 400
        if not host_matches(
            parts.hostname, self.settings.IMAGE_PROXY_ALLOWED_HOSTS
        ):
            return None, 403
        if ImageNormalizer.is_vendor_image(raw):
            raw = ImageNormalizer.sanitize_query(raw)
        return raw, 200

    def fetch(self, raw: str | None) -> ProxyResponse:
        target, status = self.resolve_target(raw)
        if target is None:
            if status == 403:
                logger.warning("Image proxy refused host for %s", raw)
                return _text(403, "Host not allowed")
            return _text(400, "Missing url" if not raw else "Invalid url")

        try:
            resp = self.http.get(
                target,
                headers={**self.settings.DEFAULT_HEADERS, **self.UPSTREAM_HEADERS},
                timeout=self.settings.REQUEST_TIMEOUT,
            )
        except Exception as exc:
            logger.error(
                "Image proxy fetch failed for %s: %s", target, exc, exc_info=True
            )
            return _text(502, "Upstream error", **{"X-Proxy-Url": target})

        if resp.status_code != 200:
            logger.warning(
                "Image proxy upstream HTTP %d for %s", resp.status_code, target
            )
            return _text(
                resp.status_code,
                resp.text or "Upstream error",
                **{"Cache-Control": "no-store", "X-Proxy-Url": target},
            )

        return ProxyResponse(
            status=200,
            body=resp.content,
            headers={
                "Content-Type": resp.headers.get("content-type") or "image/jpeg",
                "Cache-Control": self.settings.IMAGE_CACHE_CONTROL,
                "X-Proxy-Url": target,
            },
        )
