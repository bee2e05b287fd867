# diy_search/services/session_manager.py

"""Bearer-token session handling for Toolstation's search API.

Toolstation's ``/api/search/crs`` endpoint only answers requests that
carry the ``ecomApiAccessToken`` cookie as a bearer token.  The cookie is
issued by the storefront itself, so a session is "warmed" by visiting the
homepage (and, when that is not enough, a search page) and collecting
``Set-Cookie`` headers.
"""

import base64
import json
import logging
import re
import threading
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import quote

from diy_search.config.settings import Settings
from diy_search.models.session import Session

logger = logging.getLogger("diy_search.session")

HOMEPAGE = "https://www.toolstation.com/"
SEARCH_PAGE = "https://www.toolstation.com/search?q={term}"


class SessionUnavailableError(RuntimeError):
    """Warm-up finished without finding an access token."""


def extract_set_cookies(headers: Any) -> list[str]:
    """Every ``Set-Cookie`` value from a response's headers."""
    if headers is None:
        return []
    get_list = getattr(headers, "get_list", None)
    if callable(get_list):
        values = get_list("set-cookie")
        if values:
            return [str(value) for value in values]
    single = headers.get("set-cookie")
    return [single] if single else []


def merge_cookies(existing: str | None, set_cookies: list[str]) -> str:
    """Fold *set_cookies* into a ``Cookie`` header, last value winning."""
    jar: dict[str, str] = {}
    if existing:
        for pair in existing.split("; "):
            name, _, value = pair.partition("=")
            if name:
                jar[name] = value
    for cookie in set_cookies:
        name, _, value = cookie.split(";", 1)[0].partition("=")
        name = name.strip()
        if name:
            jar[name] = value
    return "; ".join(f"{name}={value}" for name, value in jar.items())


def find_token(set_cookies: list[str], name: str) -> str | None:
    """The last value of cookie *name* among *set_cookies*."""
    pattern = re.compile(rf"{re.escape(name)}=([^;]+)")
    token = None
    for cookie in set_cookies:
        match = pattern.search(cookie)
        if match:
            token = match.group(1)
    return token


def token_expiry(token: str) -> float | None:
    """The ``exp`` claim of a JWT-style token, or ``None``."""
    parts = token.split(".")
    if len(parts) != 3:
        return None
    payload = parts[1]
    payload += "=" * (-len(payload) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (ValueError, TypeError):
        return None
    exp = claims.get("exp") if isinstance(claims, dict) else None
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return float(exp)


class SessionCache:
    """Process-wide single-slot holder for the most recent session.

    Replacement goes through :meth:`compare_and_swap` so a writer only
    installs its session when the slot still holds what it read.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._session: Session | None = None

    def get(self) -> Session | None:
        with self._lock:
            return self._session

    def compare_and_swap(
        self, expected: Session | None, new: Session,
    ) -> bool:
        with self._lock:
            if self._session is not expected:
                return False
            self._session = new
            return True

    def clear(self) -> None:
        with self._lock:
            self._session = None


_cache = SessionCache()


def get_session_cache() -> SessionCache:
    """The shared cache used by every Toolstation scraper."""
    return _cache


class SessionManager:
    """Acquires and caches Toolstation sessions.

    *http* is any object with a requests-style ``get(url, headers=...,
    timeout=...)``; the scraper passes its curl_cffi session.
    """

    def __init__(
        self,
        http: Any,
        cache: SessionCache | None = None,
        clock: Callable[[], float] = time.time,
        timeout: float | None = None,
    ) -> None:
        self.http = http
        self.cache = cache if cache is not None else get_session_cache()
        self.clock = clock
        self.settings = Settings()
        self.timeout = (
            timeout if timeout is not None else self.settings.REQUEST_TIMEOUT
        )

    def get_session(self, term: str, force: bool = False) -> Session:
        """A fresh session, warming a new one when stale or *force* is set."""
        current = self.cache.get()
        now = self.clock()
        if (
            not force
            and current is not None
            and current.is_fresh(now, self.settings.SESSION_SAFETY_MARGIN)
        ):
            return current

        session = self._warm(term)
        if not self.cache.compare_and_swap(current, session):
            logger.debug("Session cache changed during warm-up")
        return session

    def _page_headers(self, cookie_header: str) -> dict[str, str]:
        headers = dict(self.settings.DEFAULT_HEADERS)
        if cookie_header:
            headers["Cookie"] = cookie_header
        return headers

    def _warm(self, term: str) -> Session:
        name = self.settings.TOKEN_COOKIE_NAME

        home = self.http.get(
            HOMEPAGE, headers=self._page_headers(""), timeout=self.timeout
        )
        cookies = extract_set_cookies(home.headers)
        cookie_header = merge_cookies(None, cookies)
        token = find_token(cookies, name)

        if not token:
            logger.debug("No token from homepage, trying search page")
            page = self.http.get(
                SEARCH_PAGE.format(term=quote(term or "a", safe="")),
                headers=self._page_headers(cookie_header),
                timeout=self.timeout,
            )
            more = extract_set_cookies(page.headers)
            cookie_header = merge_cookies(cookie_header, more)
            token = find_token(more, name)

        if not token:
            raise SessionUnavailableError("Toolstation: token not obtained")

        expires_at = token_expiry(token)
        if expires_at is None:
            expires_at = self.clock() + self.settings.SESSION_DEFAULT_TTL
        logger.info("Warmed Toolstation session (expires %.0f)", expires_at)
        return Session(
            token=token, cookie_header=cookie_header, expires_at=expires_at
        )
