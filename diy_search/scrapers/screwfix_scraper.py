# diy_search/scrapers/screwfix_scraper.py

"""Scraper for screwfix.com using the Next.js data route."""

import json
import re
from urllib.parse import quote, urlsplit

from bs4 import BeautifulSoup

from diy_search.models.product import ProviderResult, Retailer
from diy_search.parsers.screwfix_parser import ScrewfixParser
from diy_search.parsers.values import sanitize_term
from diy_search.scrapers.base_scraper import BaseScraper


class ScrewfixScraper(BaseScraper):
    """Scraper for screwfix.com via ``/_next/data/<buildId>/...json``.

    The build id changes on every deploy, so it is read from the search
    page first.  Searches that match a category answer with a
    ``__N_REDIRECT`` which is followed through the same data route.
    """

    retailer = Retailer.SCREWFIX

    SEARCH_PAGE = "https://www.screwfix.com/search?search={term}"
    DATA_URL = "https://www.screwfix.com/_next/data/{build_id}/en-GB/{path}.json"

    _BUILD_ID_RE = re.compile(r'"buildId":"([^"]+)"')

    def __init__(self) -> None:
        super().__init__("screwfix")
        self.parser = ScrewfixParser()

    def _get_homepage(self) -> str:
        """Return the Screwfix homepage URL."""
        return "https://www.screwfix.com/"

    def find_build_id(self, html: str) -> str | None:
        """Next.js build id from the page, via regex then ``__NEXT_DATA__``."""
        match = self._BUILD_ID_RE.search(html)
        if match:
            return match.group(1)
        script = BeautifulSoup(html, "lxml").find(
            "script", id="__NEXT_DATA__"
        )
        if script is None:
            return None
        try:
            data = json.loads(script.get_text())
        except ValueError:
            return None
        build_id = data.get("buildId") if isinstance(data, dict) else None
        return str(build_id) if build_id else None

    def _data_headers(self, search_page: str) -> dict[str, str]:
        return {
            **self.settings.DEFAULT_HEADERS,
            "Accept": "application/json,text/plain;q=0.9,*/*;q=0.8",
            "Referer": search_page,
        }

    def _redirect_path(self, text: str) -> str | None:
        """Path of ``pageProps.__N_REDIRECT`` when *text* carries one."""
        try:
            data = json.loads(text)
        except ValueError:
            return None
        page_props = data.get("pageProps") if isinstance(data, dict) else None
        redirect = (
            page_props.get("__N_REDIRECT")
            if isinstance(page_props, dict)
            else None
        )
        if isinstance(redirect, str) and redirect:
            return urlsplit(redirect).path.strip("/")
        return None

    def fetch_payload(self, term: str) -> str | None:
        """Raw page-props text for *term*, following category redirects.

        Decoding is left to the parser so a body that is not JSON falls
        through to its placeholder like any other unusable payload.
        """
        search_page = self.SEARCH_PAGE.format(term=quote(term, safe=""))
        html = self._get_html(search_page)
        if not html:
            return None
        build_id = self.find_build_id(html)
        if not build_id:
            self.logger.warning("[screwfix] Unable to determine buildId")
            return None

        headers = self._data_headers(search_page)
        resp = self._fetch_get(
            self.DATA_URL.format(build_id=build_id, path="search"),
            headers,
            params={"search": term},
        )
        if resp is None:
            return None

        path = self._redirect_path(resp.text)
        if path:
            self.logger.info("[screwfix] Following redirect to /%s", path)
            redirected = self._fetch_get(
                self.DATA_URL.format(build_id=build_id, path=path),
                headers,
            )
            if redirected is not None and self._decodes(redirected.text):
                return redirected.text
            self.logger.warning(
                "[screwfix] Redirect /%s unusable, keeping search payload", path
            )
        return resp.text

    @staticmethod
    def _decodes(text: str) -> bool:
        try:
            json.loads(text)
        except ValueError:
            return False
        return True

    def _search(
        self, query: str, limit: int,
    ) -> list[ProviderResult]:
        term = sanitize_term(query, strict=True)
        payload = self.fetch_payload(term)
        if payload is None:
            return self._fail("Search data route unavailable")
        return self.parser.parse(payload, term, limit)
