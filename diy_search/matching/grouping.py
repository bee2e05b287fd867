# diy_search/matching/grouping.py

"""Greedy clustering of results into equivalence groups, plus result views."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from diy_search.matching.similarity import (
    MatcherConfig,
    normalize_title,
    similarity,
)
from diy_search.models.product import ProviderResult, Retailer

logger = logging.getLogger("diy_search.matching")

SORT_MODES = ("relevance", "price-low", "price-high")


@dataclass
class ProductGroup:
    """Results judged to describe the same product.

    ``key`` is the normalized title of the first member.
    """

    key: str
    members: list[ProviderResult] = field(default_factory=list)

    @property
    def cheapest(self) -> ProviderResult | None:
        """Lowest-priced member; unpriced members never qualify."""
        priced = [m for m in self.members if m.price is not None]
        if not priced:
            return None
        return min(priced, key=lambda m: m.price)  # type: ignore[arg-type,return-value]

    @property
    def cheapest_price(self) -> float | None:
        best = self.cheapest
        return best.price if best else None

    @property
    def retailers(self) -> list[Retailer]:
        seen: list[Retailer] = []
        for member in self.members:
            if member.retailer not in seen:
                seen.append(member.retailer)
        return seen

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "cheapestPrice": self.cheapest_price,
            "retailers": [r.value for r in self.retailers],
            "members": [m.to_dict() for m in self.members],
        }


class ProductMatcher:
    """Single-pass, order-dependent greedy clustering.

    Each result joins the existing group whose key scores highest against
    its normalized title, provided the score beats the threshold; ties go
    to the earlier group.  Otherwise it opens a new group.
    """

    def __init__(self, config: MatcherConfig | None = None) -> None:
        self.config = config or MatcherConfig.from_settings()

    def group(self, results: Iterable[ProviderResult]) -> list[ProductGroup]:
        groups: list[ProductGroup] = []
        for result in results:
            title = normalize_title(result.title)
            best: ProductGroup | None = None
            best_score = 0.0
            for candidate in groups:
                score = similarity(title, candidate.key, self.config)
                if score > best_score:
                    best, best_score = candidate, score
            if best is not None and best_score > self.config.threshold:
                best.members.append(result)
            else:
                groups.append(ProductGroup(key=title, members=[result]))
        logger.debug("Grouped results into %d groups", len(groups))
        return groups

    def group_map(
        self, results: Iterable[ProviderResult],
    ) -> dict[str, list[ProviderResult]]:
        """Groups as a ``key -> members`` mapping, in creation order."""
        return {g.key: g.members for g in self.group(results)}


def cheapest_prices(groups: list[ProductGroup]) -> dict[str, float]:
    """Minimum price per group key, skipping groups with no priced member."""
    return {
        g.key: g.cheapest_price
        for g in groups
        if g.cheapest_price is not None
    }


def sort_by_price(
    results: Iterable[ProviderResult], descending: bool = False,
) -> list[ProviderResult]:
    """Stable price sort; unpriced results always last."""
    items = list(results)
    priced = [r for r in items if r.price is not None]
    unpriced = [r for r in items if r.price is None]
    priced.sort(key=lambda r: r.price, reverse=descending)  # type: ignore[arg-type,return-value]
    return priced + unpriced


def apply_sort(
    results: Iterable[ProviderResult], mode: str = "relevance",
) -> list[ProviderResult]:
    if mode == "relevance":
        return list(results)
    if mode == "price-low":
        return sort_by_price(results)
    if mode == "price-high":
        return sort_by_price(results, descending=True)
    raise ValueError(
        f"Unknown sort mode {mode!r}; expected one of {', '.join(SORT_MODES)}"
    )


def best_deals(groups: list[ProductGroup]) -> list[ProviderResult]:
    """One result per group: its cheapest member, else its first."""
    return [g.cheapest or g.members[0] for g in groups if g.members]


def best_deal_flags(groups: list[ProductGroup]) -> dict[int, bool]:
    """``id(result) -> True`` when its price equals its group's minimum."""
    flags: dict[int, bool] = {}
    for g in groups:
        low = g.cheapest_price
        for member in g.members:
            flags[id(member)] = low is not None and member.price == low
    return flags


def limit_per_retailer(
    results: Iterable[ProviderResult], limit: int,
) -> dict[Retailer, list[ProviderResult]]:
    """Keep at most *limit* rows per retailer, preserving order."""
    shown: dict[Retailer, list[ProviderResult]] = {}
    for result in results:
        rows = shown.setdefault(result.retailer, [])
        if len(rows) < limit:
            rows.append(result)
    return shown


def retailer_counts(
    results: Iterable[ProviderResult],
) -> dict[Retailer, int]:
    counts = {retailer: 0 for retailer in Retailer}
    for result in results:
        counts[result.retailer] += 1
    return counts
