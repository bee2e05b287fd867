# tests/test_session_manager.py

"""Tests for Toolstation session warm-up, caching and cookie handling."""

import base64
import json
import unittest
from typing import Any
from unittest.mock import MagicMock

from diy_search.models.session import Session
from diy_search.services.session_manager import (
    SessionCache,
    SessionManager,
    SessionUnavailableError,
    extract_set_cookies,
    find_token,
    merge_cookies,
    token_expiry,
)

NOW = 1_700_000_000.0


def _jwt(claims: dict[str, Any]) -> str:
    payload = base64.urlsafe_b64encode(json.dumps(claims).encode()).rstrip(b"=")
    return f"eyJhbGciOiJIUzI1NiJ9.{payload.decode()}.c2ln"


class FakeHeaders:
    """Multi-valued header container like curl_cffi's."""

    def __init__(self, set_cookies: list[str]) -> None:
        self._set_cookies = set_cookies

    def get_list(self, name: str) -> list[str]:
        return list(self._set_cookies) if name == "set-cookie" else []

    def get(self, name: str, default: Any = None) -> Any:
        if name == "set-cookie" and self._set_cookies:
            return self._set_cookies[0]
        return default


def _response(*set_cookies: str) -> MagicMock:
    resp = MagicMock()
    resp.status_code = 200
    resp.headers = FakeHeaders(list(set_cookies))
    return resp


class TestCookieHelpers(unittest.TestCase):

    def test_extract_prefers_get_list(self) -> None:
        headers = FakeHeaders(["a=1; Path=/", "b=2"])
        self.assertEqual(extract_set_cookies(headers), ["a=1; Path=/", "b=2"])

    def test_extract_plain_mapping(self) -> None:
        self.assertEqual(extract_set_cookies({"set-cookie": "a=1"}), ["a=1"])
        self.assertEqual(extract_set_cookies({}), [])
        self.assertEqual(extract_set_cookies(None), [])

    def test_merge_last_value_wins(self) -> None:
        merged = merge_cookies("a=1; b=2", ["b=3; Path=/; HttpOnly", "c=4"])
        self.assertEqual(merged, "a=1; b=3; c=4")

    def test_merge_keeps_equals_in_value(self) -> None:
        self.assertEqual(merge_cookies(None, ["t=ab==; Secure"]), "t=ab==")

    def test_find_token(self) -> None:
        cookies = ["x=1", "ecomApiAccessToken=tok123; Path=/; Secure"]
        self.assertEqual(find_token(cookies, "ecomApiAccessToken"), "tok123")
        self.assertIsNone(find_token(["x=1"], "ecomApiAccessToken"))


class TestTokenExpiry(unittest.TestCase):

    def test_reads_exp_claim(self) -> None:
        self.assertEqual(token_expiry(_jwt({"exp": 1_700_003_600})), 1_700_003_600.0)

    def test_non_jwt(self) -> None:
        self.assertIsNone(token_expiry("opaque-token"))
        self.assertIsNone(token_expiry("a.b"))

    def test_garbage_payload(self) -> None:
        self.assertIsNone(token_expiry("a.!!!.c"))

    def test_missing_exp(self) -> None:
        self.assertIsNone(token_expiry(_jwt({"sub": "x"})))


class TestSessionCache(unittest.TestCase):

    def test_compare_and_swap(self) -> None:
        cache = SessionCache()
        first = Session("t1", "c1", NOW)
        second = Session("t2", "c2", NOW)
        self.assertTrue(cache.compare_and_swap(None, first))
        self.assertFalse(cache.compare_and_swap(None, second))
        self.assertIs(cache.get(), first)
        self.assertTrue(cache.compare_and_swap(first, second))
        self.assertIs(cache.get(), second)


class TestSessionManager(unittest.TestCase):
    """SessionManager.get_session warm-up and freshness rules."""

    def setUp(self) -> None:
        self.http = MagicMock()
        self.cache = SessionCache()
        self.manager = SessionManager(
            self.http, cache=self.cache, clock=lambda: NOW
        )

    def test_token_from_homepage(self) -> None:
        token = _jwt({"exp": NOW + 3600})
        self.http.get.return_value = _response(
            "visitor=v1; Path=/", f"ecomApiAccessToken={token}; Path=/"
        )
        session = self.manager.get_session("drill")
        self.assertEqual(session.token, token)
        self.assertEqual(
            session.cookie_header, f"visitor=v1; ecomApiAccessToken={token}"
        )
        self.assertEqual(session.expires_at, NOW + 3600)
        self.assertEqual(self.http.get.call_count, 1)
        self.assertIs(self.cache.get(), session)

    def test_search_page_second_step_carries_cookies(self) -> None:
        self.http.get.side_effect = [
            _response("visitor=v1"),
            _response("ecomApiAccessToken=opaque; Path=/"),
        ]
        session = self.manager.get_session("claw hammer")
        self.assertEqual(session.token, "opaque")
        self.assertEqual(session.cookie_header, "visitor=v1; ecomApiAccessToken=opaque")
        second_call = self.http.get.call_args_list[1]
        self.assertEqual(
            second_call.args[0],
            "https://www.toolstation.com/search?q=claw%20hammer",
        )
        self.assertEqual(second_call.kwargs["headers"]["Cookie"], "visitor=v1")
        # Opaque token: default 45 minute lifetime
        self.assertEqual(session.expires_at, NOW + 45 * 60)

    def test_no_token_raises(self) -> None:
        self.http.get.side_effect = [_response("a=1"), _response("b=2")]
        with self.assertRaises(SessionUnavailableError):
            self.manager.get_session("drill")
        self.assertIsNone(self.cache.get())

    def test_fresh_cached_session_reused(self) -> None:
        cached = Session("cached", "c=1", NOW + 600)
        self.cache.compare_and_swap(None, cached)
        self.assertIs(self.manager.get_session("drill"), cached)
        self.http.get.assert_not_called()

    def test_session_inside_safety_margin_is_rewarmed(self) -> None:
        stale = Session("old", "c=1", NOW + 30)
        self.cache.compare_and_swap(None, stale)
        self.http.get.return_value = _response("ecomApiAccessToken=new")
        session = self.manager.get_session("drill")
        self.assertEqual(session.token, "new")
        self.assertIs(self.cache.get(), session)

    def test_force_bypasses_freshness(self) -> None:
        cached = Session("cached", "c=1", NOW + 600)
        self.cache.compare_and_swap(None, cached)
        self.http.get.return_value = _response("ecomApiAccessToken=forced")
        session = self.manager.get_session("drill", force=True)
        self.assertEqual(session.token, "forced")
        self.assertIsNot(session, cached)
