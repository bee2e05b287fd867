# diy_search/ui/app.py

"""Terminal UI for the diy_search price comparison engine."""

import logging
import webbrowser
from typing import cast

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import (
    Button,
    Checkbox,
    DataTable,
    Footer,
    Header,
    Input,
    Static,
)

from diy_search.config.settings import Settings
from diy_search.matching.grouping import (
    SORT_MODES,
    apply_sort,
    best_deal_flags,
    best_deals,
    limit_per_retailer,
)
from diy_search.models.product import ProviderResult
from diy_search.parsers.values import InvalidSearchTermError
from diy_search.services.search_orchestrator import (
    SearchOrchestrator,
    SearchResult,
)

logger = logging.getLogger("diy_search.ui")


class DiySearchApp(App[object]):
    """Terminal UI for the diy_search price comparison engine."""

    DEFAULT_CSS = """
    #title { text-style: bold; padding: 0 1; }
    #search_bar { height: auto; }
    #search_input { width: 1fr; }
    #source_toggles { height: auto; }
    #status { padding: 0 1; color: $text-muted; }
    #results_table { height: 1fr; }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("p", "cycle_sort", "Sort"),
        Binding("g", "toggle_group", "Group"),
    ]

    def __init__(self, orchestrator: SearchOrchestrator | None = None) -> None:
        super().__init__()
        self.settings = Settings()
        self.orchestrator = orchestrator or SearchOrchestrator()
        self.result: SearchResult | None = None
        self.rows: list[ProviderResult] = []
        self.sort_mode: str = "relevance"

    def compose(self) -> ComposeResult:
        """Build the widget tree for the TUI."""
        source_checkboxes = [
            Checkbox(
                src["label"], value=True, id=f"check_{src['id']}"
            )
            for src in self.settings.AVAILABLE_SOURCES
        ]
        source_names = ", ".join(
            s["label"] for s in self.settings.AVAILABLE_SOURCES
        )

        yield Header()
        yield Container(
            Static(f"DIY price search ({source_names})", id="title"),
            Horizontal(
                Input(
                    placeholder="Search products...", id="search_input"
                ),
                Button("Search", variant="primary", id="search_btn"),
                id="search_bar",
            ),
            Horizontal(
                *source_checkboxes,
                Checkbox(
                    "Group similar products", value=False, id="group_toggle"
                ),
                id="source_toggles",
            ),
            Static("Ready", id="status"),
            cast(
                DataTable[str | Text],
                DataTable(
                    id="results_table",
                    zebra_stripes=True,
                    cursor_type="row",
                ),
            ),
            id="main_container",
        )
        yield Footer()

    def on_mount(self) -> None:
        """Configure the results table columns on startup."""
        table = cast(
            DataTable[str | Text],
            self.query_one("#results_table", DataTable),
        )
        table.add_columns("Retailer", "Title", "Price", "Deal")

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "search_btn":
            await self.perform_search()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "search_input":
            await self.perform_search()

    def on_checkbox_changed(self, event: Checkbox.Changed) -> None:
        if event.checkbox.id == "group_toggle" and self.result is not None:
            self._regroup()
            self.populate_table()

    @property
    def grouping(self) -> bool:
        return self.query_one("#group_toggle", Checkbox).value

    async def perform_search(self) -> None:
        """Execute a search against the selected retailers."""
        query = self.query_one("#search_input", Input).value.strip()
        if not query:
            self.notify("Please enter a search term", severity="warning")
            return

        selected_sources = [
            src
            for src in self.settings.AVAILABLE_SOURCES
            if self.query_one(f"#check_{src['id']}", Checkbox).value
        ]
        if not selected_sources:
            self.notify("Select at least one retailer!", severity="error")
            return

        status = self.query_one("#status", Static)
        status.update(f"Searching '{query}'...")
        try:
            result = await self.orchestrator.search(
                query, selected_sources, group=self.grouping
            )
        except InvalidSearchTermError as exc:
            self.notify(str(exc), severity="warning")
            status.update("Ready")
            return

        logger.info(
            "TUI search '%s': %d results, %d errors",
            result.query,
            len(result.results),
            len(result.errors),
        )
        self.result = result
        for error_msg in result.errors:
            self.notify(f"Error: {error_msg}", severity="error")

        self.populate_table()
        if not result.results:
            status.update("No products found")
        else:
            status.update(
                f"Found {len(result.results)} products, sort: {self.sort_mode}"
            )

    def _regroup(self) -> None:
        if self.result is None:
            return
        if self.grouping and self.result.groups is None:
            self.result.groups = self.orchestrator.matcher.group(
                self.result.results
            )

    def populate_table(self) -> None:
        """Fill the DataTable with the current view of the results."""
        table = cast(
            DataTable[str | Text],
            self.query_one("#results_table", DataTable),
        )
        table.clear()
        self.rows = []
        if self.result is None:
            return

        groups = self.result.groups if self.grouping else None
        rows = best_deals(groups) if groups is not None else self.result.results
        rows = apply_sort(rows, self.sort_mode)
        per_retailer = limit_per_retailer(rows, self.settings.DISPLAY_LIMIT)
        shown = {id(r) for kept in per_retailer.values() for r in kept}
        flags = best_deal_flags(groups) if groups else {}

        for r in rows:
            if id(r) not in shown:
                continue
            deal = bool(flags.get(id(r)))
            table.add_row(
                r.retailer.value,
                r.title[:60],
                Text(
                    f"£{r.price:,.2f}" if r.price is not None else "N/A",
                    style="bold green" if deal else "",
                ),
                "BEST DEAL" if deal else "",
            )
            self.rows.append(r)

    def on_data_table_row_selected(
        self, event: DataTable.RowSelected
    ) -> None:
        """Open the selected product's URL in the default browser."""
        if 0 <= event.cursor_row < len(self.rows):
            url = self.rows[event.cursor_row].url
            if url:
                webbrowser.open(url)

    def action_cycle_sort(self) -> None:
        """Step through relevance, price low-high and price high-low."""
        idx = SORT_MODES.index(self.sort_mode)
        self.sort_mode = SORT_MODES[(idx + 1) % len(SORT_MODES)]
        self.notify(f"Sort: {self.sort_mode}")
        self.populate_table()

    def action_toggle_group(self) -> None:
        checkbox = self.query_one("#group_toggle", Checkbox)
        checkbox.value = not checkbox.value
