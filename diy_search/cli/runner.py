# diy_search/cli/runner.py

"""Headless CLI search runner that reuses the async orchestrator."""

import json
import logging
import sys

from rich.console import Console
from rich.table import Table

from diy_search.config.settings import Settings
from diy_search.matching.grouping import (
    apply_sort,
    best_deal_flags,
    best_deals,
    limit_per_retailer,
    retailer_counts,
)
from diy_search.models.product import ProviderResult
from diy_search.parsers.values import InvalidSearchTermError
from diy_search.services.search_orchestrator import (
    SearchOrchestrator,
    SearchResult,
)

logger = logging.getLogger("diy_search.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def resolve_sources(
    source_csv: str | None,
) -> list[dict[str, str]]:
    """Map a comma-separated list of retailer IDs to their config dicts.

    Returns all retailers when *source_csv* is ``None``.
    Raises ``SystemExit`` on unknown IDs.
    """
    available = {
        s["id"]: s for s in Settings.AVAILABLE_SOURCES
    }
    if source_csv is None:
        return Settings.AVAILABLE_SOURCES

    requested = [
        s.strip() for s in source_csv.split(",") if s.strip()
    ]
    unknown = [r for r in requested if r not in available]
    if unknown:
        valid = ", ".join(sorted(available))
        _err.print(
            f"[red]Unknown retailer(s): {', '.join(unknown)}[/red]"
        )
        _err.print(f"[dim]Available: {valid}[/dim]")
        raise SystemExit(1)

    return [available[r] for r in requested]


def build_view(
    result: SearchResult, sort: str,
) -> list[ProviderResult]:
    """Rows to show: best deal per group when grouped, then sorted."""
    rows = (
        best_deals(result.groups)
        if result.groups is not None
        else result.results
    )
    return apply_sort(rows, sort)


def to_json(result: SearchResult, rows: list[ProviderResult]) -> dict:
    body: dict = {
        "query": result.query,
        "response": {"docs": [r.to_dict() for r in rows]},
        "errors": result.errors,
    }
    if result.groups is not None:
        body["groups"] = [g.to_dict() for g in result.groups]
    return body


def _print_table(
    rows: list[ProviderResult], flags: dict[int, bool],
) -> None:
    """Render a Rich table, capped per retailer, to stdout."""
    per_retailer = limit_per_retailer(rows, Settings.DISPLAY_LIMIT)
    shown = {id(r) for group in per_retailer.values() for r in group}

    table = Table(
        title="Search Results",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Retailer", style="magenta")
    table.add_column("Title", max_width=60)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Deal", justify="center")
    table.add_column("URL", overflow="fold", style="dim")

    idx = 0
    for r in rows:
        if id(r) not in shown:
            continue
        idx += 1
        table.add_row(
            str(idx),
            r.retailer.value,
            r.title[:60],
            f"£{r.price:,.2f}" if r.price is not None else "N/A",
            "[bold yellow]BEST DEAL[/bold yellow]" if flags.get(id(r)) else "",
            r.url or "",
        )

    Console().print(table)


async def cli_search(
    query: str,
    source_csv: str | None,
    limit: int | None,
    group: bool,
    sort: str,
    output_format: str,
) -> int:
    """Run a headless search; exit code 0 ok, 1 failed/empty, 2 bad term."""
    sources = resolve_sources(source_csv)
    orchestrator = SearchOrchestrator()

    source_labels = ", ".join(s["label"] for s in sources)
    _err.print(
        f"[bold]Searching:[/bold] {query}  "
        f"[dim]retailers={source_labels}[/dim]"
    )

    try:
        result = await orchestrator.search(
            query, sources, limit=limit, group=group
        )
    except InvalidSearchTermError as exc:
        logger.warning("Rejected search term %r: %s", query, exc)
        _err.print(f"[red]{exc}[/red]")
        return 2

    for error_msg in result.errors:
        _err.print(f"[red]Error: {error_msg}[/red]")

    if result.all_failed or not result.results:
        _err.print("[yellow]No products found.[/yellow]")
        return 1

    counts = retailer_counts(result.results)
    summary = ", ".join(
        f"{retailer.value} {count}"
        for retailer, count in counts.items()
        if count
    )
    _err.print(
        f"[green]✓ {len(result.results)} products ({summary})[/green]"
    )

    rows = build_view(result, sort)
    if output_format == "table":
        flags = best_deal_flags(result.groups) if result.groups else {}
        _print_table(rows, flags)
    else:
        json.dump(
            to_json(result, rows),
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")

    return 0
