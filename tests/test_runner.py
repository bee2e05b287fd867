# tests/test_runner.py

"""Tests for the headless CLI runner."""

import io
import json
import unittest
from unittest.mock import AsyncMock, patch

from diy_search.cli.runner import build_view, cli_search, resolve_sources, to_json
from diy_search.config.settings import Settings
from diy_search.matching.grouping import ProductMatcher
from diy_search.models.product import ProviderResult, Retailer
from diy_search.parsers.values import InvalidSearchTermError
from diy_search.services.search_orchestrator import SearchResult

DRILL_BQ = ProviderResult(Retailer.BQ, "Bosch 18V Combi Drill", 80.0)
DRILL_SF = ProviderResult(Retailer.SCREWFIX, "Bosch 18V Combi Drill - Bare", 75.0)
HAMMER = ProviderResult(Retailer.TOOLSTATION, "Claw Hammer 16oz", None)

ORCH_PATH = "diy_search.cli.runner.SearchOrchestrator"


def _result(**kwargs) -> SearchResult:
    values = {
        "query": "drill",
        "results": [DRILL_BQ, DRILL_SF, HAMMER],
        "sources": ["bq", "screwfix", "toolstation"],
    }
    values.update(kwargs)
    return SearchResult(**values)


class TestResolveSources(unittest.TestCase):

    def test_none_returns_all(self) -> None:
        self.assertEqual(resolve_sources(None), Settings.AVAILABLE_SOURCES)

    def test_subset_in_requested_order(self) -> None:
        ids = [s["id"] for s in resolve_sources("toolstation, bq")]
        self.assertEqual(ids, ["toolstation", "bq"])

    def test_unknown_exits(self) -> None:
        with self.assertRaises(SystemExit) as ctx:
            resolve_sources("bq,wickes")
        self.assertEqual(ctx.exception.code, 1)


class TestViews(unittest.TestCase):

    def test_build_view_sorted(self) -> None:
        rows = build_view(_result(), "price-high")
        self.assertEqual(rows, [DRILL_BQ, DRILL_SF, HAMMER])

    def test_build_view_grouped(self) -> None:
        result = _result(groups=ProductMatcher().group([DRILL_BQ, DRILL_SF, HAMMER]))
        self.assertEqual(build_view(result, "relevance"), [DRILL_SF, HAMMER])

    def test_to_json(self) -> None:
        body = to_json(_result(errors=["Toolstation: timed out"]), [DRILL_BQ])
        self.assertEqual(body["query"], "drill")
        self.assertEqual(body["response"]["docs"], [DRILL_BQ.to_dict()])
        self.assertEqual(body["errors"], ["Toolstation: timed out"])
        self.assertNotIn("groups", body)


class TestCliSearch(unittest.IsolatedAsyncioTestCase):
    """cli_search exit codes and output."""

    async def _run(self, orchestrator, **kwargs) -> tuple[int, str]:
        args = {
            "query": "drill",
            "source_csv": None,
            "limit": None,
            "group": False,
            "sort": "relevance",
            "output_format": "json",
        }
        args.update(kwargs)
        with patch(ORCH_PATH) as orch_cls, patch(
            "sys.stdout", new_callable=io.StringIO
        ) as out:
            orch_cls.return_value = orchestrator
            code = await cli_search(**args)
        return code, out.getvalue()

    def _orchestrator(self, result=None, error=None):
        orch = AsyncMock()
        if error is not None:
            orch.search.side_effect = error
        else:
            orch.search.return_value = result
        return orch

    async def test_json_output(self) -> None:
        code, out = await self._run(self._orchestrator(_result()))
        self.assertEqual(code, 0)
        body = json.loads(out)
        self.assertEqual(len(body["response"]["docs"]), 3)
        self.assertEqual(body["response"]["docs"][0]["retailer"], "B&Q")

    async def test_passes_sources_limit_group(self) -> None:
        orch = self._orchestrator(_result())
        await self._run(orch, source_csv="screwfix", limit=5, group=True)
        args = orch.search.await_args
        self.assertEqual([s["id"] for s in args.args[1]], ["screwfix"])
        self.assertEqual(args.kwargs, {"limit": 5, "group": True})

    async def test_table_output(self) -> None:
        result = _result(groups=ProductMatcher().group([DRILL_BQ, DRILL_SF, HAMMER]))
        code, out = await self._run(
            self._orchestrator(result), output_format="table"
        )
        self.assertEqual(code, 0)
        self.assertIn("BEST", out)

    async def test_invalid_term_exit_2(self) -> None:
        code, out = await self._run(
            self._orchestrator(error=InvalidSearchTermError("empty")), query=" "
        )
        self.assertEqual(code, 2)
        self.assertEqual(out, "")

    async def test_all_failed_exit_1(self) -> None:
        result = _result(
            results=[],
            failed_sources=["bq", "screwfix", "toolstation"],
            errors=["B&Q: x", "Screwfix: y", "Toolstation: z"],
        )
        code, _out = await self._run(self._orchestrator(result))
        self.assertEqual(code, 1)

    async def test_nothing_found_exit_1(self) -> None:
        code, _out = await self._run(self._orchestrator(_result(results=[])))
        self.assertEqual(code, 1)


if __name__ == "__main__":
    unittest.main()
