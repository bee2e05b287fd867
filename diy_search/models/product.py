# diy_search/models/product.py

"""Normalized product data model shared by every retailer integration."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Retailer(str, Enum):
    """The three retailers queried by a search."""

    BQ = "B&Q"
    SCREWFIX = "Screwfix"
    TOOLSTATION = "Toolstation"


@dataclass(frozen=True)
class ProviderResult:
    """A single product listing in the common shape.

    ``price`` is ``None`` when no numeric value could be extracted.
    ``title`` is never empty: parsers fall back to ``"Top result"`` or a
    placeholder linking to the retailer's own search page.
    """

    retailer: Retailer
    title: str
    price: float | None = None
    url: str | None = None
    image_url: str | None = None

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            msg = f"{self.retailer.value} result must have a title"
            raise ValueError(msg)

    @classmethod
    def placeholder(
        cls, retailer: Retailer, query: str, search_url: str,
    ) -> "ProviderResult":
        """Synthetic result pointing at the retailer's own search page."""
        return cls(
            retailer=retailer,
            title=f'Open {retailer.value} results for "{query}"',
            price=None,
            url=search_url,
            image_url=None,
        )

    @property
    def is_placeholder(self) -> bool:
        """True for results built by :meth:`placeholder`."""
        return self.price is None and self.title.startswith(
            f"Open {self.retailer.value} results for "
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON shape served by the API and CLI."""
        return {
            "retailer": self.retailer.value,
            "title": self.title,
            "price": self.price,
            "url": self.url,
            "imageUrl": self.image_url,
        }
