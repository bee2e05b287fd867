# tests/test_bq_scraper.py

"""Tests for the B&Q scraper fetch flow."""

import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from diy_search.scrapers.bq_scraper import BQScraper

FIXTURES = Path(__file__).parent / "fixtures"


@patch("diy_search.scrapers.base_scraper.curl_requests.Session")
class TestBQScraper(unittest.TestCase):
    """HTML JSON-LD first, then the search.data route."""

    def test_json_ld_page(self, mock_session_cls: MagicMock) -> None:
        scraper = BQScraper()
        html = (FIXTURES / "bq_search.html").read_text(encoding="utf-8")
        with patch.object(scraper, "_get_html", return_value=html) as get_html:
            results = scraper.search("combi drill")
        get_html.assert_called_once_with(
            "https://www.diy.com/search?term=combi%20drill"
        )
        self.assertEqual(len(results), 2)
        self.assertEqual(results[0].price, 59.0)
        scraper.session.get.assert_not_called()
        self.assertIsNone(scraper.last_error)

    def test_search_data_fallback(self, mock_session_cls: MagicMock) -> None:
        scraper = BQScraper()
        body = MagicMock()
        body.text = (FIXTURES / "bq_search_data.txt").read_text(encoding="utf-8")
        with patch.object(
            scraper, "_get_html", return_value="<html><body></body></html>"
        ), patch.object(scraper, "_fetch_get", return_value=body) as fetch:
            results = scraper.search("drill")
        self.assertIn("search.data?term=drill", fetch.call_args.args[0])
        self.assertEqual(
            [r.title for r in results],
            ["Erbauer 18V Cordless Combi Drill", "Bosch 18V Drill Driver"],
        )

    def test_upstream_down(self, mock_session_cls: MagicMock) -> None:
        scraper = BQScraper()
        with patch.object(scraper, "_get_html", return_value=None), patch.object(
            scraper, "_fetch_get", return_value=None
        ):
            self.assertEqual(scraper.search("drill"), [])
        self.assertIsNotNone(scraper.last_error)

    def test_blank_term_never_fetches(self, mock_session_cls: MagicMock) -> None:
        scraper = BQScraper()
        with patch.object(scraper, "_get_html") as get_html:
            self.assertEqual(scraper.search("   "), [])
        get_html.assert_not_called()
