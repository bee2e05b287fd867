# diy_search/web/api.py

"""HTTP API for the meta-search: search endpoints and the image proxy."""

import logging

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from diy_search.matching.grouping import SORT_MODES, apply_sort, best_deals
from diy_search.parsers.values import InvalidSearchTermError
from diy_search.services.image_proxy import ImageProxy
from diy_search.services.search_orchestrator import (
    SearchOrchestrator,
    SearchResult,
    UnknownSourceError,
)

logger = logging.getLogger("diy_search.api")

app = FastAPI(
    title="DIY Search API",
    description="Price comparison across B&Q, Screwfix and Toolstation.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


def get_orchestrator() -> SearchOrchestrator:
    return SearchOrchestrator()


def get_image_proxy() -> ImageProxy:
    return ImageProxy()


def _envelope(result: SearchResult) -> dict:
    return {"response": {"docs": [r.to_dict() for r in result.results]}}


@app.get("/health", tags=["health"])
def health_check():
    return {"status": "healthy", "service": "DIY Search API"}


@app.get("/api/search", tags=["search"])
async def search_all(
    term: str | None = Query(None),
    limit: int | None = Query(None, ge=1, le=200),
    group: bool = False,
    sort: str = Query("relevance"),
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
):
    """Search every retailer.

    With ``group=true`` the docs are the best deal per equivalence group
    and the groups themselves are returned under ``groups``.
    """
    if sort not in SORT_MODES:
        raise HTTPException(status_code=400, detail=f"Unknown sort '{sort}'")
    try:
        result = await orchestrator.search(term or "", limit=limit, group=group)
    except InvalidSearchTermError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if result.all_failed:
        logger.warning(
            "All retailers failed for '%s': %s", result.query, result.errors
        )
        raise HTTPException(
            status_code=502,
            detail={"message": "All retailers failed", "errors": result.errors},
        )

    docs = best_deals(result.groups) if result.groups is not None else result.results
    body: dict = {
        "response": {"docs": [r.to_dict() for r in apply_sort(docs, sort)]},
        "errors": result.errors,
    }
    if result.groups is not None:
        body["groups"] = [g.to_dict() for g in result.groups]
    return body


# Declared before /api/{source_id} so it is not captured as a retailer id
@app.get("/api/image-proxy", tags=["images"])
def image_proxy(
    url: str | None = Query(None),
    proxy: ImageProxy = Depends(get_image_proxy),
):
    proxied = proxy.fetch(url)
    return Response(
        content=proxied.body,
        status_code=proxied.status,
        headers={
            k: v for k, v in proxied.headers.items() if k != "Content-Type"
        },
        media_type=proxied.media_type,
    )


@app.get("/api/{source_id}", tags=["search"])
async def search_retailer(
    source_id: str,
    term: str | None = Query(None),
    limit: int | None = Query(None, ge=1, le=200),
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
):
    """Search one retailer; answers the ``{response: {docs}}`` envelope."""
    try:
        result = await orchestrator.search_single(source_id, term or "", limit)
    except UnknownSourceError as exc:
        raise HTTPException(
            status_code=404, detail=f"Unknown retailer '{source_id}'"
        ) from exc
    except InvalidSearchTermError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if result.all_failed:
        logger.warning("Retailer %s failed: %s", source_id, result.errors)
        raise HTTPException(
            status_code=502,
            detail={"message": "Retailer failed", "errors": result.errors},
        )
    return _envelope(result)
