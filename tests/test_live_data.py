import tempfile
import unittest
from datetime import date, datetime, timezone
from pathlib import Path

from rateguide.cache_layer import CacheStore
from rateguide.criteria import parse_criteria
from rateguide.errors import UpstreamDataError, UpstreamFetchError
from rateguide.models import SeriesItem, SeriesPoint
from rateguide.providers.common import SeriesBatch, SeriesWindow
from rateguide.services.compare_service import (
    DETERMINISTIC_REASON,
    FRESH_NOTE,
    STALE_NOTE,
    build_live_compare,
    recommend,
)
from rateguide.services.container import build_container
from rateguide.services.live_data import MORTGAGE_CODES, get_live_products, history_months

from upstream_fakes import FakeUpstreams, fake_settings, recent_months


class StubAdapter:
    def __init__(self, batch=None, error=None):
        self.batch = batch
        self.error = error

    async def series(self, codes, window=None, skip_cache=False):
        if self.error:
            raise self.error
        return self.batch

    async def cpih_yoy(self, window=None, skip_cache=False):
        return self.batch


def _item(code, values):
    months = recent_months(len(values))
    return SeriesItem(
        code=code, label=code, as_of="2026-01-01T00:00:00Z",
        points=tuple(SeriesPoint(month=m, value=v) for m, v in zip(months, values)),
    )


class LiveProductsTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.upstreams = FakeUpstreams()
        self.container = build_container(fake_settings(), client=self.upstreams.client())

    async def asyncTearDown(self):
        await self.container.aclose()

    async def test_mortgages_trimmed_to_requested_months(self):
        snapshot = await get_live_products(self.container, "mortgages", months=3)
        self.assertEqual(snapshot.category, "mortgages")
        self.assertFalse(snapshot.stale)
        codes = [s.code for s in snapshot.series]
        self.assertEqual(codes, ["IUMBV34", "IUMBV42", "IUMTLMV", "IUMBEDR"])
        for s in snapshot.series:
            self.assertEqual([p.month for p in s.points], recent_months(3))
        params = self.upstreams.requests[0].url.params
        self.assertEqual(params["SeriesCodes"], ",".join(MORTGAGE_CODES))

    async def test_explicit_range_keeps_every_month(self):
        await self.container.aclose()
        self.container = build_container(fake_settings(DEFAULT_HISTORY_MONTHS=3), client=self.upstreams.client())
        months = recent_months(6)
        start = date(int(months[0][:4]), int(months[0][5:]), 1)
        window = SeriesWindow(from_date=start, to_date=datetime.now(timezone.utc).date())
        snapshot = await get_live_products(self.container, "mortgages", window)
        for s in snapshot.series:
            self.assertEqual([p.month for p in s.points], months)

    async def test_explicit_range_clips_older_months(self):
        months = recent_months(6)
        start = date(int(months[2][:4]), int(months[2][5:]), 1)
        window = SeriesWindow(from_date=start, to_date=datetime.now(timezone.utc).date())
        snapshot = await get_live_products(self.container, "mortgages", window, months=1)
        for s in snapshot.series:
            self.assertEqual([p.month for p in s.points], months[2:])

    async def test_savings_combines_boe_and_ons(self):
        snapshot = await get_live_products(self.container, "savings", months=6)
        self.assertEqual([s.code for s in snapshot.series], ["CFMHSCV", "CPIH_YOY"])
        self.assertEqual(len(snapshot.series[1].points), 6)
        self.assertEqual(self.upstreams.calls, {"boe.test": 1, "ons.test": 1})

    async def test_credit_cards_need_no_upstream(self):
        snapshot = await get_live_products(self.container, "credit-cards")
        self.assertEqual(snapshot.series, ())
        self.assertEqual(self.upstreams.requests, [])

    async def test_upstream_failure_without_cache_propagates(self):
        self.upstreams.boe_status = 503
        with self.assertRaises(UpstreamFetchError):
            await get_live_products(self.container, "mortgages")

    async def test_stale_flag_is_or_of_sources(self):
        self.container.boe = StubAdapter(SeriesBatch(series=(_item("CFMHSCV", [3.0]),), stale=False))
        self.container.ons = StubAdapter(SeriesBatch(series=(_item("CPIH_YOY", [2.0]),), stale=True))
        snapshot = await get_live_products(self.container, "savings")
        self.assertTrue(snapshot.stale)

    async def test_missing_savings_series(self):
        self.container.boe = StubAdapter(SeriesBatch(series=()))
        self.container.ons = StubAdapter(SeriesBatch(series=(_item("CPIH_YOY", [2.0]),)))
        with self.assertRaises(UpstreamDataError) as ctx:
            await get_live_products(self.container, "savings")
        self.assertEqual(ctx.exception.code, "boe_missing_savings_series")

    def test_history_months(self):
        self.assertEqual(history_months(None, 12), 12)
        self.assertEqual(history_months("24", 12), 24)
        self.assertEqual(history_months(1000, 12), 360)
        self.assertEqual(history_months(0, 12), 1)


class CachedLiveProductsTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.upstreams = FakeUpstreams()
        cache = CacheStore(str(Path(self.tmp.name) / "cache.sqlite3"))
        self.container = build_container(fake_settings(), client=self.upstreams.client(), cache=cache)

    async def asyncTearDown(self):
        await self.container.aclose()
        self.tmp.cleanup()

    async def test_second_request_served_from_cache(self):
        await get_live_products(self.container, "mortgages", months=3)
        self.upstreams.boe_status = 500
        again = await get_live_products(self.container, "mortgages", months=3)
        self.assertFalse(again.stale)
        self.assertEqual(self.upstreams.calls["boe.test"], 1)

    async def test_skip_cache_refetches(self):
        await get_live_products(self.container, "mortgages", months=3)
        await get_live_products(self.container, "mortgages", months=3, skip_cache=True)
        self.assertEqual(self.upstreams.calls["boe.test"], 2)


class CompareServiceTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.upstreams = FakeUpstreams()
        self.container = build_container(fake_settings(), client=self.upstreams.client())

    async def asyncTearDown(self):
        await self.container.aclose()

    async def test_deterministic_recommendation(self):
        criteria = parse_criteria("mortgages", {"horizonMonths": 6})
        result = await recommend(self.container, "mortgages", criteria, use_ai=False)
        self.assertEqual(result.ai.reason, DETERMINISTIC_REASON)
        self.assertFalse(result.ai.used)
        self.assertTrue(result.ai.fallback)
        self.assertEqual(result.data_freshness_note, FRESH_NOTE)
        self.assertEqual(result.disclaimer, "Educational, not financial advice.")
        self.assertIn(result.recommendation.primary_choice, [o.label for o in result.compare.options])

    async def test_ai_without_key_falls_back(self):
        criteria = parse_criteria("credit-cards", {"payInFullMonthly": False})
        result = await recommend(self.container, "credit-cards", criteria)
        self.assertEqual(result.ai.reason, "ai_not_configured")
        self.assertEqual(result.recommendation.primary_choice, "Balance Transfer")

    async def test_stale_compare_changes_freshness_note(self):
        self.container.boe = StubAdapter(SeriesBatch(series=(_item("IUMBV34", [5.0]),), stale=True))
        criteria = parse_criteria("mortgages", {})
        compare = await build_live_compare(self.container, "mortgages", criteria)
        self.assertTrue(compare.stale)
        result = await recommend(self.container, "mortgages", criteria, use_ai=False)
        self.assertEqual(result.data_freshness_note, STALE_NOTE)


if __name__ == "__main__":
    unittest.main()
