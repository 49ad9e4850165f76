"""Per-category upstream fetch: which series a category needs and from where."""
from __future__ import annotations

import structlog

from ..errors import UpstreamDataError
from ..models import ProductsSnapshot
from ..providers.common import SeriesWindow, take_last_months
from .container import ServiceContainer

log = structlog.get_logger()

MORTGAGE_CODES = ["IUMBV34", "IUMBV37", "IUMBV42", "IUMTLMV", "IUMBEDR"]
SAVINGS_CODES = ["CFMHSCV"]

# Extra months fetched so trailing gaps don't shorten the trimmed window.
FETCH_PADDING_MONTHS = 3


def history_months(horizon_months=None, default: int = 12) -> int:
    try:
        months = int(round(float(horizon_months)))
    except (TypeError, ValueError):
        months = default
    return max(1, min(360, months))


async def get_live_products(
    container: ServiceContainer,
    category: str,
    window: SeriesWindow | None = None,
    months: int | None = None,
    skip_cache: bool = False,
) -> ProductsSnapshot:
    window = window or SeriesWindow()
    months = max(1, int(months or window.months or container.cfg.default_history_months))
    if window.from_date:
        # explicit range: adapters already clip to from..to
        fetch_window = window
        trim = None
    else:
        fetch_window = SeriesWindow(None, window.to_date, months + FETCH_PADDING_MONTHS)
        trim = months

    def _trimmed(item):
        if trim is None:
            return item
        return item.with_points(take_last_months(item.points, trim))

    if category == "mortgages":
        batch = await container.boe.series(MORTGAGE_CODES, fetch_window, skip_cache=skip_cache)
        series = tuple(_trimmed(s) for s in batch.series)
        log.info("live_products", category=category, series=len(series), stale=batch.stale)
        return ProductsSnapshot(category=category, series=series, stale=batch.stale)

    if category == "savings":
        boe = await container.boe.series(SAVINGS_CODES, fetch_window, skip_cache=skip_cache)
        ons = await container.ons.cpih_yoy(fetch_window, skip_cache=skip_cache)
        if not boe.series:
            raise UpstreamDataError("boe_missing_savings_series")
        savings, inflation = boe.series[0], ons.series[0]
        stale = boe.stale or ons.stale
        log.info("live_products", category=category, series=2, stale=stale)
        return ProductsSnapshot(
            category=category,
            series=(
                _trimmed(savings),
                _trimmed(inflation),
            ),
            stale=stale,
        )

    # credit cards are scored from criteria alone
    return ProductsSnapshot(category=category, series=(), stale=False)
