# diy_search/scrapers/toolstation_scraper.py

"""Scraper for toolstation.com via its authenticated search API."""

import time
import uuid
from typing import Any
from urllib.parse import quote

from curl_cffi import requests as curl_requests

from diy_search.models.product import ProviderResult, Retailer
from diy_search.models.session import Session
from diy_search.parsers.jsonld import (
    extract_item_list_products,
    find_product_anchor,
)
from diy_search.parsers.toolstation_parser import ToolstationParser
from diy_search.parsers.values import sanitize_term
from diy_search.scrapers.base_scraper import BaseScraper
from diy_search.services.session_manager import (
    SessionManager,
    SessionUnavailableError,
)

# Field list requested by the storefront's own search requests
_FIELDS = (
    "pid,slug,numberofreviews,title,brand,sale_price,promotion,"
    "thumb_image,sku_thumb_images,sku_swatch_images,sku_color_group,url,"
    "priceRange,description,formattedPrices,prices,ts_reviews,assettr,"
    "name_type,name_qty,variations,price,samedaydelivery,quantitymaximum,"
    "quantityminimum,quantitylabel,channel,group_title,sku_count,"
    "sku_group_price_range,sku_group_price_range_ex_vat,campaign"
)


class ToolstationScraper(BaseScraper):
    """Scraper for Toolstation search results.

    Tries the bearer-token API first (refreshing the session once on
    401/403), then falls back to the public HTML search page.
    """

    retailer = Retailer.TOOLSTATION

    API_URL = "https://www.toolstation.com/api/search/crs"
    ORIGIN = "https://www.toolstation.com"

    def __init__(
        self, session_manager: SessionManager | None = None,
    ) -> None:
        super().__init__("toolstation")
        self.parser = ToolstationParser()
        self.session_manager = session_manager or SessionManager(
            self.session, timeout=self._request_timeout
        )

    def _get_homepage(self) -> str:
        """Return the Toolstation homepage URL."""
        return "https://www.toolstation.com/"

    @staticmethod
    def _search_params(term: str) -> dict[str, str]:
        return {
            "request_id": str(int(time.time() * 1000)),
            "domain_key": "toolstation",
            "view_id": "gb",
            "request_type": "search",
            "stats_field": "price,channel",
            "f.category.facet.prefix": "/root,Home/",
            "q": term,
            "rows": "24",
            "start": "0",
            "groupby": "variant_group",
        }

    def _api_headers(self, term: str, session: Session) -> dict[str, str]:
        return {
            **self.settings.DEFAULT_HEADERS,
            "Accept": "application/json, text/plain, */*",
            "Origin": self.ORIGIN,
            "X-Requested-With": "XMLHttpRequest",
            "Referer": f"{self.ORIGIN}/search?q={quote(term, safe='')}",
            "Authorization": f"Bearer {session.token}",
            "Cookie": session.cookie_header,
        }

    def _call_search(
        self, term: str, session: Session,
    ) -> curl_requests.Response:
        """One API call: GET with query params, form POST when GET gets 400."""
        headers = self._api_headers(term, session)
        params = {
            **self._search_params(term),
            "fl": _FIELDS,
            "url": self.ORIGIN,
            "ref_url": "https://www.google.com/",
            "search_type": "keyword",
            "skipCache": "true",
            "ts_visitor_id": str(uuid.uuid4()),
        }
        resp = self.session.get(
            self.API_URL,
            headers=headers,
            params=params,
            timeout=self._request_timeout,
        )
        if resp.status_code != 400:
            return resp

        self.logger.info("[toolstation] GET rejected with 400, retrying as POST")
        return self.session.post(
            self.API_URL,
            headers={
                **headers,
                "Accept": "application/json",
                "Content-Type": (
                    "application/x-www-form-urlencoded; charset=UTF-8"
                ),
            },
            data=self._search_params(term),
            timeout=self._request_timeout,
        )

    def _search_authenticated(self, term: str) -> Any | None:
        """Raw API body, or ``None`` when the authenticated path failed."""
        self.session_manager.timeout = self._request_timeout
        try:
            session = self.session_manager.get_session(term)
            resp = self._call_search(term, session)
            if resp.status_code in (401, 403):
                self.logger.info(
                    "[toolstation] HTTP %d, refreshing session",
                    resp.status_code,
                )
                session = self.session_manager.get_session(term, force=True)
                resp = self._call_search(term, session)
        except SessionUnavailableError as exc:
            self.logger.warning("[toolstation] %s", exc)
            return None
        except Exception as exc:
            self.logger.warning(
                "[toolstation] API call failed: %s", exc, exc_info=True
            )
            return None

        if resp.status_code != 200:
            self.logger.warning(
                "[toolstation] API answered HTTP %d", resp.status_code
            )
            return None
        return resp.text

    def _search_html(self, term: str) -> dict[str, Any] | None:
        """Envelope built from the public search page, or ``None``."""
        html = self._get_html(
            f"{self.ORIGIN}/search?q={quote(term, safe='')}"
        )
        if not html:
            return None
        docs = extract_item_list_products(html, self.ORIGIN)
        if not docs:
            anchor = find_product_anchor(html, self.ORIGIN)
            docs = [anchor] if anchor else []
        self.logger.info(
            "[toolstation] HTML fallback found %d products", len(docs)
        )
        return {"response": {"docs": docs}}

    def _search(
        self, query: str, limit: int,
    ) -> list[ProviderResult]:
        term = sanitize_term(query, strict=True)
        payload = self._search_authenticated(term)
        if payload is None:
            payload = self._search_html(term)
        if payload is None:
            return self._fail("API and HTML search page both unavailable")
        return self.parser.parse(payload, term, limit)
