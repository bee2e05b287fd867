# diy_search/scrapers/bq_scraper.py

"""Scraper for diy.com (B&Q) via HTML JSON-LD with a search.data fallback."""

from typing import Any
from urllib.parse import quote

from diy_search.models.product import ProviderResult, Retailer
from diy_search.parsers.bq_parser import BQParser
from diy_search.parsers.jsonld import extract_item_list_products
from diy_search.parsers.values import sanitize_term
from diy_search.scrapers.base_scraper import BaseScraper


class BQScraper(BaseScraper):
    """Scraper for diy.com search results.

    The server-rendered search page carries a JSON-LD ``ItemList`` that
    is the most stable source.  When it is missing, the unofficial
    ``search.data`` route is asked instead; its script-style body is
    left to :class:`BQParser` to dig through.
    """

    retailer = Retailer.BQ

    SEARCH_PAGE = "https://www.diy.com/search?term={term}"
    SEARCH_DATA = (
        "https://www.diy.com/search.data?term={term}"
        "&_routes=routes%2Fsearch"
    )

    def __init__(self) -> None:
        super().__init__("bq")
        self.parser = BQParser()

    def _get_homepage(self) -> str:
        """Return the B&Q homepage URL."""
        return "https://www.diy.com/"

    def fetch_payload(self, term: str) -> Any | None:
        """Normalized envelope from the HTML page, else the raw data body."""
        encoded = quote(term, safe="")
        html = self._get_html(self.SEARCH_PAGE.format(term=encoded))
        if html:
            docs = extract_item_list_products(html, self.parser.ORIGIN)
            if docs:
                return {"response": {"docs": docs}}
            self.logger.info(
                "[bq] No JSON-LD products, trying search.data"
            )

        resp = self._fetch_get(
            self.SEARCH_DATA.format(term=encoded),
            {
                **self.settings.DEFAULT_HEADERS,
                "Accept": "text/x-script,application/json;q=0.9,*/*;q=0.8",
                "Referer": self._get_homepage(),
            },
        )
        if resp is None:
            return None
        return resp.text

    def _search(
        self, query: str, limit: int,
    ) -> list[ProviderResult]:
        term = sanitize_term(query)
        payload = self.fetch_payload(term)
        if payload is None:
            return self._fail("No response from search page or search.data")
        return self.parser.parse(payload, term, limit)
