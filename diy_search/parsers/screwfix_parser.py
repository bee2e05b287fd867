# diy_search/parsers/screwfix_parser.py

"""Normalizes Screwfix Next.js page-props payloads."""

import json
import logging
from typing import Any
from urllib.parse import quote

from diy_search.config.settings import Settings
from diy_search.models.product import ProviderResult, Retailer
from diy_search.parsers.images import ImageNormalizer
from diy_search.parsers.shapes import Shape, ShapeMismatch, load_json
from diy_search.parsers.tree import find_all
from diy_search.parsers.values import (
    clean_title,
    ensure_absolute,
    extract_price,
)


def _looks_like_product(node: Any) -> bool:
    """A detail-page URL plus a description, or a SKU plus image/price."""
    if not isinstance(node, dict):
        return False
    if "detailPageUrl" in node and (
        "longDescription" in node or "name" in node
    ):
        return True
    return "skuId" in node and (
        "imageUrl" in node or "priceInformation" in node
    )


def _identity(item: dict[str, Any]) -> str:
    for key in ("skuId", "detailPageUrl", "longDescription"):
        value = item.get(key)
        if value:
            return f"{key}:{value}"
    return json.dumps(item, sort_keys=True, default=str)


class ScrewfixParser:
    """Parser for Screwfix ``_next/data`` search and category payloads.

    Products normally sit under ``pageProps.pageData.products``; search
    terms that redirect to a category, or A/B variants of the page, move
    them elsewhere.  When the primary path is thin, the known alternative
    paths are merged in, then a recursive scan for product-shaped objects.
    """

    ORIGIN = "https://www.screwfix.com"
    SEARCH_URL = "https://www.screwfix.com/search?search={term}"

    PRIMARY = Shape("pageData.products", ("pageProps", "pageData", "products"))
    ALTERNATIVES = (
        Shape(
            "pageData.results.products",
            ("pageProps", "pageData", "results", "products"),
        ),
        Shape("results.products", ("pageProps", "results", "products")),
        Shape("root.results.products", ("results", "products")),
        Shape(
            "pageData.category.products",
            ("pageProps", "pageData", "category", "products"),
        ),
        Shape("category.products", ("pageProps", "category", "products")),
        Shape("root.category.products", ("category", "products")),
    )
    IMAGE_KEYS = ("imageUrl", "image")

    def __init__(self) -> None:
        self.logger = logging.getLogger("diy_search.screwfix")
        self.settings = Settings()

    def parse(
        self, payload: Any, query: str, limit: int,
    ) -> list[ProviderResult]:
        """Up to *limit* results; a placeholder when nothing is usable."""
        try:
            items = self._decode(load_json(payload))
        except Exception as exc:
            self.logger.warning(
                "[screwfix] Payload unusable: %s", exc, exc_info=True
            )
            items = []

        if not items:
            self.logger.info(
                "[screwfix] No products for '%s', using placeholder", query
            )
            return [self.placeholder(query)]
        return [self._to_result(item) for item in items[:limit]]

    def placeholder(self, query: str) -> ProviderResult:
        """Link to Screwfix's own search page for *query*."""
        return ProviderResult.placeholder(
            Retailer.SCREWFIX,
            query,
            self.SEARCH_URL.format(term=quote(query, safe="")),
        )

    def _decode(self, data: Any) -> list[dict[str, Any]]:
        minimum = self.settings.SCREWFIX_MIN_PRODUCTS
        items: list[dict[str, Any]] = []
        try:
            items = self.PRIMARY.decode(data)
        except ShapeMismatch as exc:
            self.logger.debug("[screwfix] %s", exc)

        if len(items) < minimum:
            for shape in self.ALTERNATIVES:
                try:
                    found = shape.decode(data)
                except ShapeMismatch:
                    continue
                if found:
                    self.logger.debug(
                        "[screwfix] %d products at %s",
                        len(found),
                        shape.name,
                    )
                items.extend(found)

        if len(items) < minimum:
            items.extend(self._scan(data, items))
        return self._dedupe(items)

    def _scan(
        self, data: Any, known: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Product-shaped objects anywhere in the tree, minus *known*."""
        seen = {_identity(item) for item in known}
        cap = self.settings.SCREWFIX_SCAN_CAP
        found: list[dict[str, Any]] = []
        for node in find_all(data, _looks_like_product):
            key = _identity(node)
            if key in seen:
                continue
            seen.add(key)
            found.append(node)
            if len(found) >= cap:
                break
        if found:
            self.logger.info(
                "[screwfix] Deep scan recovered %d products", len(found)
            )
        return found

    @staticmethod
    def _dedupe(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        seen: set[str] = set()
        unique: list[dict[str, Any]] = []
        for item in items:
            key = _identity(item)
            if key not in seen:
                seen.add(key)
                unique.append(item)
        return unique

    def _to_result(self, item: dict[str, Any]) -> ProviderResult:
        info = item.get("priceInformation")
        price = None
        if isinstance(info, dict):
            for field in ("currentPriceIncVat", "currentPriceExVat"):
                amount = info.get(field)
                if isinstance(amount, dict):
                    amount = amount.get("amount")
                price = extract_price(amount)
                if price is not None:
                    break
        return ProviderResult(
            retailer=Retailer.SCREWFIX,
            title=clean_title(item.get("longDescription"), item.get("name")),
            price=price,
            url=ensure_absolute(item.get("detailPageUrl"), self.ORIGIN),
            image_url=ImageNormalizer.resolve(
                item, self.IMAGE_KEYS, self.ORIGIN
            ),
        )
