# diy_search/scrapers/base_scraper.py

"""Abstract base class for the retailer scrapers."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from curl_cffi import requests as curl_requests

from diy_search.config.settings import Settings
from diy_search.models.product import ProviderResult, Retailer


class BaseScraper(ABC):
    """Abstract base class for the retailer scrapers.

    Subclasses implement :meth:`_search`.  The public :meth:`search`
    never raises: any failure is logged, kept in :attr:`last_error` and
    turned into an empty list so one broken retailer cannot sink a
    whole search.
    """

    retailer: Retailer

    def __init__(self, source_name: str) -> None:
        self.source_name = source_name
        self.logger = logging.getLogger(
            f"diy_search.{source_name}"
        )
        self.settings = Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._request_timeout: int = (
            self.settings.REQUEST_TIMEOUT
        )
        self.last_error: str | None = None

    # Cloudflare challenge page markers (checked before keyword scan)
    _CF_CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "just a moment",
        "cf-turnstile",
        "cf_chl_opt",
    ]

    def _validate_response(
        self, resp: curl_requests.Response,
    ) -> bool:
        """Check for Cloudflare challenge pages and CAPTCHA indicators."""
        text = resp.text
        if text.lstrip().startswith(("{", "[")):
            return True
        lower = text.lower()

        for marker in self._CF_CHALLENGE_MARKERS:
            if marker in lower:
                self.logger.warning(
                    "[%s] Cloudflare challenge detected "
                    "(marker: '%s')",
                    self.source_name,
                    marker,
                )
                return False

        # Skip the keyword scan on content-rich pages to avoid
        # false positives from footer text
        has_body_content = (
            "<body" in lower and len(text) > 5000
        )
        if not has_body_content:
            for keyword in self.settings.CAPTCHA_KEYWORDS:
                if keyword in lower:
                    self.logger.warning(
                        "[%s] CAPTCHA keyword '%s' "
                        "detected",
                        self.source_name,
                        keyword,
                    )
                    return False
        return True

    @staticmethod
    def _is_retryable(status: int) -> bool:
        return status == 429 or status >= 500

    def _fetch_get(
        self,
        url: str,
        headers: dict[str, str],
        params: dict[str, str] | None = None,
    ) -> curl_requests.Response | None:
        """GET with retries on transport errors, 5xx and 429."""
        for attempt in range(self.settings.MAX_RETRIES):
            try:
                resp = self.session.get(
                    url,
                    headers=headers,
                    params=params,
                    timeout=self._request_timeout,
                )
                if resp.status_code == 200:
                    if not self._validate_response(resp):
                        return None
                    return resp
                self.logger.warning(
                    "[%s] HTTP %d on attempt %d for %s",
                    self.source_name,
                    resp.status_code,
                    attempt + 1,
                    url,
                )
                if not self._is_retryable(resp.status_code):
                    return None
                time.sleep(
                    self.settings.REQUEST_DELAY * (attempt + 1)
                )
            except Exception as exc:
                self.logger.warning(
                    "[%s] Request error on attempt %d: %s",
                    self.source_name,
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
                time.sleep(
                    self.settings.REQUEST_DELAY * (attempt + 1)
                )
        return None

    def _page_headers(self) -> dict[str, str]:
        return {
            **self.settings.DEFAULT_HEADERS,
            "Referer": self._get_homepage(),
        }

    def _get_html(self, url: str) -> str | None:
        """Fetch an HTML page, falling back to cloudscraper on failure."""
        headers = self._page_headers()

        # Primary: curl_cffi (browser-impersonating TLS)
        resp = self._fetch_get(url, headers)
        if resp is not None:
            return resp.text

        # Fallback: cloudscraper (JS challenge solver)
        self.logger.info(
            "[%s] curl_cffi exhausted, falling back to cloudscraper",
            self.source_name,
        )
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            fallback_resp: Any = scraper.get(
                url,
                headers=headers,
                timeout=self._request_timeout,
            )
            if fallback_resp.status_code == 200:
                return str(fallback_resp.text)
            self.logger.warning(
                "[%s] cloudscraper HTTP %d",
                self.source_name,
                fallback_resp.status_code,
            )
        except Exception as e:
            self.logger.error(
                "[%s] cloudscraper fallback also failed: %s",
                self.source_name,
                e,
                exc_info=True,
            )

        return None

    def _fail(self, message: str) -> list[ProviderResult]:
        """Record an upstream failure and return the empty result."""
        self.last_error = message
        self.logger.warning("[%s] %s", self.source_name, message)
        return []

    def search(
        self, query: str, limit: int | None = None,
    ) -> list[ProviderResult]:
        """Search the retailer; never raises."""
        self.last_error = None
        if limit is None:
            limit = self.settings.DEFAULT_RESULT_LIMIT
        try:
            results = self._search(query, limit)
        except Exception as exc:
            self.last_error = str(exc) or type(exc).__name__
            self.logger.error(
                "[%s] Search failed: %s",
                self.source_name,
                exc,
                exc_info=True,
            )
            return []
        self.logger.info(
            "[%s] %d results for '%s'",
            self.source_name,
            len(results),
            query,
        )
        return results

    @abstractmethod
    def _get_homepage(self) -> str:
        """Return the homepage URL for the Referer header."""
        ...

    @abstractmethod
    def _search(
        self, query: str, limit: int,
    ) -> list[ProviderResult]:
        """Fetch and parse results; may raise."""
        ...
