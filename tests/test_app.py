# tests/test_app.py

"""Smoke tests for the TUI application using Textual's Pilot."""

import unittest
from typing import cast
from unittest.mock import AsyncMock, MagicMock

from textual.containers import Horizontal
from textual.widgets import Checkbox, DataTable, Input, Static

from diy_search.matching.grouping import ProductMatcher
from diy_search.models.product import ProviderResult, Retailer
from diy_search.services.search_orchestrator import SearchResult
from diy_search.ui.app import DiySearchApp

DRILL_BQ = ProviderResult(
    Retailer.BQ, "Bosch 18V Combi Drill", 80.0, "https://www.diy.com/p/1"
)
DRILL_SF = ProviderResult(
    Retailer.SCREWFIX, "Bosch 18V Combi Drill - Bare", 75.0, "https://www.screwfix.com/p/2"
)
HAMMER = ProviderResult(Retailer.TOOLSTATION, "Claw Hammer 16oz", None)


def _orchestrator(result: SearchResult | None = None) -> MagicMock:
    orch = MagicMock()
    orch.matcher = ProductMatcher()
    orch.search = AsyncMock(
        return_value=result
        or SearchResult(
            query="drill",
            results=[DRILL_BQ, DRILL_SF, HAMMER],
            sources=["bq", "screwfix", "toolstation"],
        )
    )
    return orch


class TestDiySearchApp(unittest.IsolatedAsyncioTestCase):
    """Smoke tests for the Textual TUI."""

    async def test_app_composes_without_crash(self) -> None:
        """Verify the app starts and renders all widgets."""
        app = DiySearchApp(orchestrator=_orchestrator())
        async with app.run_test() as pilot:
            app.query_one("#search_input", Input)
            app.query_one("#search_btn")
            app.query_one("#results_table", DataTable)
            app.query_one("#status", Static)
            app.query_one("#source_toggles", Horizontal)
            await pilot.pause()

    async def test_all_retailer_checkboxes_present(self) -> None:
        app = DiySearchApp(orchestrator=_orchestrator())
        async with app.run_test() as pilot:
            for src in app.settings.AVAILABLE_SOURCES:
                cb = app.query_one(f"#check_{src['id']}", Checkbox)
                self.assertTrue(cb.value)
            self.assertFalse(app.query_one("#group_toggle", Checkbox).value)
            await pilot.pause()

    async def test_empty_query_does_not_search(self) -> None:
        orch = _orchestrator()
        app = DiySearchApp(orchestrator=orch)
        async with app.run_test(notifications=True) as pilot:
            await pilot.click("#search_btn")
            await pilot.pause()
            orch.search.assert_not_awaited()
            self.assertIsNone(app.result)

    async def test_no_retailer_selected_does_not_search(self) -> None:
        orch = _orchestrator()
        app = DiySearchApp(orchestrator=orch)
        async with app.run_test(notifications=True) as pilot:
            for src in app.settings.AVAILABLE_SOURCES:
                app.query_one(f"#check_{src['id']}", Checkbox).value = False
            app.query_one("#search_input", Input).value = "drill"
            await pilot.click("#search_btn")
            await pilot.pause()
            orch.search.assert_not_awaited()

    async def test_search_populates_table(self) -> None:
        orch = _orchestrator()
        app = DiySearchApp(orchestrator=orch)
        async with app.run_test() as pilot:
            app.query_one("#search_input", Input).value = "drill"
            await pilot.click("#search_btn")
            await pilot.pause()
            await pilot.pause()

            table = cast(
                DataTable[str],
                app.query_one("#results_table", DataTable),
            )
            self.assertEqual(table.row_count, 3)
            self.assertEqual(app.rows, [DRILL_BQ, DRILL_SF, HAMMER])

    async def test_unchecked_retailer_is_skipped(self) -> None:
        orch = _orchestrator()
        app = DiySearchApp(orchestrator=orch)
        async with app.run_test() as pilot:
            app.query_one("#check_toolstation", Checkbox).value = False
            app.query_one("#search_input", Input).value = "drill"
            await pilot.click("#search_btn")
            await pilot.pause()

            sources = orch.search.await_args.args[1]
            self.assertEqual([s["id"] for s in sources], ["bq", "screwfix"])

    async def test_sort_cycles_and_reorders(self) -> None:
        app = DiySearchApp(orchestrator=_orchestrator())
        async with app.run_test() as pilot:
            app.query_one("#search_input", Input).value = "drill"
            await pilot.click("#search_btn")
            await pilot.pause()

            app.action_cycle_sort()
            self.assertEqual(app.sort_mode, "price-low")
            self.assertEqual(app.rows, [DRILL_SF, DRILL_BQ, HAMMER])
            app.action_cycle_sort()
            self.assertEqual(app.sort_mode, "price-high")
            self.assertEqual(app.rows, [DRILL_BQ, DRILL_SF, HAMMER])
            app.action_cycle_sort()
            self.assertEqual(app.sort_mode, "relevance")

    async def test_grouping_shows_best_deals(self) -> None:
        app = DiySearchApp(orchestrator=_orchestrator())
        async with app.run_test() as pilot:
            app.query_one("#search_input", Input).value = "drill"
            await pilot.click("#search_btn")
            await pilot.pause()

            app.action_toggle_group()
            await pilot.pause()
            self.assertIsNotNone(app.result.groups)
            self.assertEqual(app.rows, [DRILL_SF, HAMMER])


if __name__ == "__main__":
    unittest.main()
