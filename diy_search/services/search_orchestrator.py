# diy_search/services/search_orchestrator.py

"""Fans a search out to the retailers and merges what comes back."""

import asyncio
import importlib
import logging
from dataclasses import dataclass, field
from typing import Any

from diy_search.config.settings import Settings
from diy_search.matching.grouping import ProductGroup, ProductMatcher
from diy_search.models.product import ProviderResult
from diy_search.parsers.values import sanitize_term

logger = logging.getLogger("diy_search.orchestrator")


class UnknownSourceError(LookupError):
    """No retailer is registered under the requested id."""


@dataclass
class SearchResult:
    """Container for a completed search across retailers."""

    query: str
    results: list[ProviderResult] = field(
        default_factory=lambda: list[ProviderResult]()
    )
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )
    sources: list[str] = field(
        default_factory=lambda: list[str]()
    )
    failed_sources: list[str] = field(
        default_factory=lambda: list[str]()
    )
    groups: list[ProductGroup] | None = None

    @property
    def all_failed(self) -> bool:
        """True when every queried retailer failed."""
        return bool(self.sources) and len(self.failed_sources) == len(
            self.sources
        )


def _load_scraper_class(dotted_path: str) -> type[Any]:
    """Dynamically import a scraper class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


def find_source(source_id: str) -> dict[str, str]:
    for src in Settings.AVAILABLE_SOURCES:
        if src["id"] == source_id:
            return src
    raise UnknownSourceError(source_id)


class SearchOrchestrator:
    """Runs the retailer scrapers concurrently and aggregates results.

    Each retailer gets its own deadline; a retailer that raises, times
    out or reports an upstream failure contributes no results and one
    error message, and never affects the others.
    """

    def __init__(self, matcher: ProductMatcher | None = None) -> None:
        self.settings = Settings()
        self.matcher = matcher or ProductMatcher()

    async def _run_one(
        self, src: dict[str, str], query: str, limit: int,
    ) -> list[ProviderResult]:
        scraper_cls = _load_scraper_class(src["scraper"])
        scraper = scraper_cls()
        timeout = src.get("timeout")
        if timeout is not None:
            scraper._request_timeout = int(timeout)
        deadline = (
            float(timeout or self.settings.REQUEST_TIMEOUT)
            * self.settings.SOURCE_DEADLINE_MULTIPLIER
        )
        results: list[ProviderResult] = await asyncio.wait_for(
            asyncio.to_thread(scraper.search, query, limit),
            timeout=deadline,
        )
        last_error = getattr(scraper, "last_error", None)
        if last_error:
            raise RuntimeError(last_error)
        return results

    async def _run_scrapers(
        self,
        query: str,
        sources: list[dict[str, str]],
        limit: int,
        result: SearchResult,
    ) -> None:
        batches = await asyncio.gather(
            *(self._run_one(src, query, limit) for src in sources),
            return_exceptions=True,
        )
        for src, batch in zip(sources, batches):
            result.sources.append(src["id"])
            if isinstance(batch, list):
                result.results.extend(batch)
                continue
            result.failed_sources.append(src["id"])
            if isinstance(batch, asyncio.TimeoutError):
                message = f"{src['label']}: timed out"
            else:
                message = f"{src['label']}: {batch}"
            result.errors.append(message)
            logger.error(
                "Retailer %s failed for query '%s': %s",
                src["id"],
                query,
                batch,
                exc_info=batch if isinstance(batch, Exception) else None,
            )

    async def search(
        self,
        query: str,
        sources: list[dict[str, str]] | None = None,
        limit: int | None = None,
        group: bool = False,
    ) -> SearchResult:
        """Search every source in *sources* (default: all retailers).

        Raises :class:`InvalidSearchTermError` before any network call
        when *query* is empty.  Results keep source order.
        """
        term = sanitize_term(query)
        if sources is None:
            sources = self.settings.AVAILABLE_SOURCES
        if limit is None:
            limit = self.settings.DEFAULT_RESULT_LIMIT

        result = SearchResult(query=term)
        if sources:
            await self._run_scrapers(term, sources, limit, result)
        if group:
            result.groups = self.matcher.group(result.results)
        logger.info(
            "Search '%s': %d results, %d/%d retailers failed",
            term,
            len(result.results),
            len(result.failed_sources),
            len(result.sources),
        )
        return result

    async def search_single(
        self, source_id: str, query: str, limit: int | None = None,
    ) -> SearchResult:
        """Search one retailer by id with the same fail-soft contract."""
        src = find_source(source_id)
        return await self.search(query, [src], limit)
