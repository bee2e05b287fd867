# tests/test_settings.py

"""Tests for the Settings configuration class."""

import os
import re
import unittest
from pathlib import Path
from unittest.mock import patch

from diy_search.config.settings import Settings, _env_float


class TestSettings(unittest.TestCase):
    """Verify Settings constants and the retailer registry."""

    def test_request_delay_is_positive_float(self) -> None:
        self.assertIsInstance(Settings.REQUEST_DELAY, float)
        self.assertGreater(Settings.REQUEST_DELAY, 0)

    def test_request_timeout_is_positive_int(self) -> None:
        self.assertIsInstance(Settings.REQUEST_TIMEOUT, int)
        self.assertGreater(Settings.REQUEST_TIMEOUT, 0)

    def test_max_retries_is_positive(self) -> None:
        self.assertGreaterEqual(Settings.MAX_RETRIES, 1)

    def test_registry_has_three_retailers(self) -> None:
        ids = [s["id"] for s in Settings.AVAILABLE_SOURCES]
        self.assertEqual(ids, ["bq", "screwfix", "toolstation"])

    def test_each_source_has_required_keys(self) -> None:
        for src in Settings.AVAILABLE_SOURCES:
            with self.subTest(src=src.get("id", "?")):
                for key in ("id", "label", "scraper", "timeout"):
                    self.assertIn(key, src)
                self.assertGreater(float(src["timeout"]), 0)

    def test_authenticated_retailer_has_longer_deadline(self) -> None:
        timeouts = {s["id"]: int(s["timeout"]) for s in Settings.AVAILABLE_SOURCES}
        self.assertGreater(timeouts["toolstation"], timeouts["bq"])

    def test_match_weights_sum_to_one(self) -> None:
        self.assertAlmostEqual(sum(Settings.MATCH_WEIGHTS.values()), 1.0)
        self.assertEqual(
            set(Settings.MATCH_WEIGHTS),
            {"term", "spec", "partial", "levenshtein", "numbers"},
        )

    def test_spec_patterns_compile(self) -> None:
        for name, pattern in Settings.SPEC_PATTERNS:
            with self.subTest(name=name):
                re.compile(pattern)

    def test_proxied_hosts_are_allowed_by_proxy(self) -> None:
        for host in Settings.PROXIED_IMAGE_HOSTS:
            self.assertIn(host, Settings.IMAGE_PROXY_ALLOWED_HOSTS)

    def test_session_margin_below_default_ttl(self) -> None:
        self.assertLess(
            Settings.SESSION_SAFETY_MARGIN, Settings.SESSION_DEFAULT_TTL
        )

    def test_path_constants_are_paths(self) -> None:
        self.assertIsInstance(Settings.BASE_DIR, Path)
        self.assertIsInstance(Settings.LOGS_DIR, Path)

    def test_default_headers_has_accept_language(self) -> None:
        self.assertEqual(Settings.DEFAULT_HEADERS["Accept-Language"], "en-GB,en;q=0.9")


class TestEnvFloat(unittest.TestCase):

    def test_unset_keeps_default(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(_env_float("DIY_SEARCH_MATCH_THRESHOLD", 0.5), 0.5)

    def test_override(self) -> None:
        with patch.dict(os.environ, {"DIY_SEARCH_MATCH_THRESHOLD": "0.65"}):
            self.assertEqual(_env_float("DIY_SEARCH_MATCH_THRESHOLD", 0.5), 0.65)

    def test_junk_keeps_default(self) -> None:
        with patch.dict(os.environ, {"DIY_SEARCH_MATCH_THRESHOLD": "high"}):
            self.assertEqual(_env_float("DIY_SEARCH_MATCH_THRESHOLD", 0.5), 0.5)


if __name__ == "__main__":
    unittest.main()
