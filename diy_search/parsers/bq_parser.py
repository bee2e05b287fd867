# diy_search/parsers/bq_parser.py

"""Normalizes B&Q search payloads into :class:`ProviderResult` lists."""

import logging
from typing import Any
from urllib.parse import quote

from diy_search.models.product import ProviderResult, Retailer
from diy_search.parsers.images import ImageNormalizer
from diy_search.parsers.shapes import (
    ENVELOPE,
    ShapeMismatch,
    extract_json_block,
    load_json,
)
from diy_search.parsers.tree import (
    collect_arrays,
    find_best_effort_candidate,
    has_any,
)
from diy_search.parsers.values import (
    clean_title,
    ensure_absolute,
    extract_price,
)


class BQParser:
    """Parser for B&Q responses.

    The search endpoint answers in one of two ways depending on session
    state: a clean ``{response: {docs: [...]}}`` envelope (built from the
    page's JSON-LD), or a script-style body with a deeply nested JSON
    grab-bag somewhere inside it.  The envelope is tried first; the
    grab-bag is searched for arrays of product-looking objects, and as a
    last resort for the first product-looking object anywhere.
    """

    ORIGIN = "https://www.diy.com"
    SEARCH_URL = "https://www.diy.com/search?term={term}"

    NAME_KEYS = ("title", "name")
    URL_KEYS = ("productUrl", "url")
    PRICE_KEYS = ("price", "priceValue", "priceInformation")
    IMAGE_KEYS = ("imageUrl", "image", "thumbnail")

    def __init__(self) -> None:
        self.logger = logging.getLogger("diy_search.bq")

    def parse(
        self, payload: Any, query: str, limit: int,
    ) -> list[ProviderResult]:
        """Up to *limit* results; a placeholder when nothing is usable."""
        try:
            items, tier = self._decode(payload)
        except Exception as exc:
            self.logger.warning(
                "[bq] Payload unusable: %s", exc, exc_info=True
            )
            items, tier = [], "none"

        results = [self._to_result(item) for item in items[:limit]]
        self.logger.info(
            "[bq] %d products via %s tier", len(results), tier
        )
        if not results:
            return [self.placeholder(query)]
        return results

    def placeholder(self, query: str) -> ProviderResult:
        """Link to B&Q's own search page for *query*."""
        return ProviderResult.placeholder(
            Retailer.BQ,
            query,
            self.SEARCH_URL.format(term=quote(query, safe="")),
        )

    # ── Decoding tiers ───────────────────────────────────

    def _decode(self, payload: Any) -> tuple[list[dict[str, Any]], str]:
        try:
            docs = ENVELOPE.decode(load_json(payload))
            if docs:
                return docs, "envelope"
        except ShapeMismatch as exc:
            self.logger.debug("[bq] No envelope: %s", exc)

        if not isinstance(payload, str):
            return [], "none"
        tree = extract_json_block(payload)

        candidates: list[dict[str, Any]] = []
        for array in collect_arrays(tree):
            candidates.extend(
                item for item in array if self._looks_like_product(item)
            )
        if candidates:
            return candidates, "arrays"

        best = find_best_effort_candidate(
            tree, self.NAME_KEYS, self.URL_KEYS, self.PRICE_KEYS
        )
        return ([best], "best-effort") if best else ([], "none")

    def _looks_like_product(self, item: Any) -> bool:
        return (
            has_any(item, self.URL_KEYS)
            and has_any(item, self.NAME_KEYS)
            and any(item.get(k) for k in self.URL_KEYS)
            and any(item.get(k) for k in self.NAME_KEYS)
        )

    def _to_result(self, item: dict[str, Any]) -> ProviderResult:
        raw_price = item.get("price")
        if raw_price is None:
            raw_price = item.get("priceValue")
        return ProviderResult(
            retailer=Retailer.BQ,
            title=clean_title(item.get("title"), item.get("name")),
            price=extract_price(raw_price),
            url=ensure_absolute(
                item.get("productUrl") or item.get("url"), self.ORIGIN
            ),
            image_url=ImageNormalizer.resolve(
                item, self.IMAGE_KEYS, self.ORIGIN
            ),
        )
