# diy_search/parsers/toolstation_parser.py

"""Normalizes Toolstation search API payloads."""

import logging
from typing import Any
from urllib.parse import quote

from diy_search.models.product import ProviderResult, Retailer
from diy_search.parsers.images import ImageNormalizer
from diy_search.parsers.shapes import ENVELOPE, load_json
from diy_search.parsers.values import (
    clean_title,
    ensure_absolute,
    extract_price,
)


class ToolstationParser:
    """Parser for the ``{response: {docs: [...]}}`` search API envelope.

    The HTML fallback path builds the same envelope from JSON-LD, so one
    parser covers both.
    """

    ORIGIN = "https://www.toolstation.com"
    SEARCH_URL = "https://www.toolstation.com/search?q={term}"
    IMAGE_KEYS = ("thumb_image", "imageUrl", "sku_thumb_images")

    def __init__(self) -> None:
        self.logger = logging.getLogger("diy_search.toolstation")

    def parse(
        self, payload: Any, query: str, limit: int,
    ) -> list[ProviderResult]:
        """Up to *limit* results; a placeholder when nothing is usable."""
        try:
            docs = ENVELOPE.decode(load_json(payload))
        except Exception as exc:
            self.logger.warning("[toolstation] Payload unusable: %s", exc)
            docs = []

        if not docs:
            self.logger.info(
                "[toolstation] No products for '%s', using placeholder",
                query,
            )
            return [self.placeholder(query)]
        return [self._to_result(doc) for doc in docs[:limit]]

    def placeholder(self, query: str) -> ProviderResult:
        """Link to Toolstation's own search page for *query*."""
        return ProviderResult.placeholder(
            Retailer.TOOLSTATION,
            query,
            self.SEARCH_URL.format(term=quote(query, safe="")),
        )

    def _to_result(self, doc: dict[str, Any]) -> ProviderResult:
        price = extract_price(doc.get("sale_price"))
        if price is None:
            price = extract_price(doc.get("price"))
        return ProviderResult(
            retailer=Retailer.TOOLSTATION,
            title=clean_title(doc.get("title"), doc.get("group_title")),
            price=price,
            url=ensure_absolute(doc.get("url"), self.ORIGIN),
            image_url=ImageNormalizer.resolve(
                doc, self.IMAGE_KEYS, self.ORIGIN
            ),
        )
