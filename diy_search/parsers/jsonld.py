# diy_search/parsers/jsonld.py

"""Product extraction from server-rendered search pages.

Both B&Q and Toolstation embed a schema.org ``ItemList`` of ``Product``
entries as JSON-LD in their HTML search results.  Those blocks are
turned into the ``{response: {docs: [...]}}`` envelope the retailer
parsers understand.
"""

import json
import logging
import re
from typing import Any

from bs4 import BeautifulSoup, Tag

from diy_search.parsers.values import ensure_absolute, extract_price

logger = logging.getLogger("diy_search.jsonld")

_POUND_PRICE_RE = re.compile(r"£\s*([0-9]+(?:\.[0-9]{1,2})?)")
_ANCHOR_CONTEXT_LEVELS = 3


def _offer_price(item: dict[str, Any]) -> float | None:
    offers = item.get("offers")
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if not isinstance(offers, dict):
        return None
    return extract_price(offers.get("price"))


def _first_image(item: dict[str, Any]) -> Any:
    image = item.get("image")
    if isinstance(image, list):
        return image[0] if image else None
    return image or None


def _ld_blocks(soup: BeautifulSoup) -> list[Any]:
    blocks: list[Any] = []
    for script in soup.find_all("script", type="application/ld+json"):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except ValueError as exc:
            logger.debug("Skipping undecodable JSON-LD block: %s", exc)
            continue
        blocks.extend(data if isinstance(data, list) else [data])
    return blocks


def extract_item_list_products(
    html: str, origin: str,
) -> list[dict[str, Any]]:
    """Normalized docs for every ``Product`` in the page's ``ItemList``s."""
    soup = BeautifulSoup(html, "lxml")
    docs: list[dict[str, Any]] = []
    for block in _ld_blocks(soup):
        if not isinstance(block, dict) or block.get("@type") != "ItemList":
            continue
        elements = block.get("itemListElement")
        if not isinstance(elements, list):
            continue
        for element in elements:
            if not isinstance(element, dict):
                continue
            item = element.get("item") or element
            if not isinstance(item, dict) or item.get("@type") != "Product":
                continue
            docs.append(
                {
                    "title": item.get("name"),
                    "url": ensure_absolute(item.get("url") or "", origin),
                    "imageUrl": _first_image(item),
                    "price": _offer_price(item),
                }
            )
    logger.debug("JSON-LD yielded %d products", len(docs))
    return docs


def _nearby_price(anchor: Tag) -> float | None:
    """Look for a £ amount in the anchor and a few enclosing elements."""
    node: Tag | None = anchor
    for _ in range(_ANCHOR_CONTEXT_LEVELS + 1):
        if node is None:
            break
        match = _POUND_PRICE_RE.search(node.get_text(" ", strip=True))
        if match:
            return float(match.group(1))
        node = node.parent if isinstance(node.parent, Tag) else None
    return None


def find_product_anchor(html: str, origin: str) -> dict[str, Any] | None:
    """Doc for the first product-detail link (``/p/``) on the page."""
    soup = BeautifulSoup(html, "lxml")
    for anchor in soup.find_all("a", href=True):
        href = str(anchor["href"])
        if (
            "/p/" not in href
            or "/help" in href
            or href.startswith(("mailto:", "tel:"))
        ):
            continue
        title = " ".join(anchor.get_text(" ").split()) or "Top result"
        return {
            "title": title,
            "url": ensure_absolute(href, origin),
            "imageUrl": None,
            "price": _nearby_price(anchor),
        }
    return None
