"""ONS CPIH adapter (structured JSON upstream) producing a YoY inflation series."""
from __future__ import annotations

import httpx
import pandas as pd
import structlog

from ..cache_layer import CacheStore, cached_fetch
from ..config import settings
from ..errors import UpstreamDataError, UpstreamFetchError
from ..logging import DiagnosticSink
from ..models import SeriesItem
from ..utils import fetch_with_retry, now_utc_iso
from .common import SeriesBatch, SeriesWindow, frame_to_points, parse_month_id, prev_year_month, window_points

log = structlog.get_logger()

CPIH_CODE = "CPIH_YOY"
CPIH_LABEL = "CPIH YoY"


def parse_ons_observations(payload: dict, as_of: str) -> SeriesItem:
    """Turn ONS index observations into a year-over-year percentage series.

    A month without the same month of the prior year is left out.
    """
    observations = (payload or {}).get("observations") if isinstance(payload, dict) else None
    if not isinstance(observations, list) or not observations:
        raise UpstreamDataError("ons_empty_response")

    index_by_month: dict[str, float] = {}
    for obs in observations:
        if not isinstance(obs, dict):
            continue
        time_id = ((obs.get("dimensions") or {}).get("Time") or {}).get("id")
        month = parse_month_id(time_id) if isinstance(time_id, str) else None
        if not month:
            continue
        value = pd.to_numeric(str(obs.get("observation", "")), errors="coerce")
        if pd.isna(value):
            continue
        index_by_month[month] = float(value)

    rows = []
    for month in sorted(index_by_month):
        prev = index_by_month.get(prev_year_month(month))
        if prev is None or prev == 0:
            continue
        rows.append({"month": month, "value": (index_by_month[month] / prev - 1) * 100})

    df = pd.DataFrame(rows, columns=["month", "value"])
    return SeriesItem(code=CPIH_CODE, label=CPIH_LABEL, unit="percent", as_of=as_of, points=frame_to_points(df))


class OnsAdapter:
    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: CacheStore | None = None,
        sink: DiagnosticSink | None = None,
        base_url: str | None = None,
        version: str | None = None,
        ttl_seconds: int | None = None,
        retries: int | None = None,
        base_delay_ms: int | None = None,
        default_months: int | None = None,
    ):
        self.client = client
        self.cache = cache
        self.sink = sink or DiagnosticSink()
        self.base_url = (base_url or settings.ons_base_url).rstrip("/")
        self.version = version or settings.ons_cpih_version
        self.ttl_seconds = ttl_seconds or settings.ons_cache_ttl_seconds
        self.retries = settings.http_retry_attempts if retries is None else retries
        self.base_delay_ms = base_delay_ms or settings.http_retry_base_delay_ms
        self.default_months = default_months or settings.default_history_months

    def build_url(self) -> str:
        return (
            f"{self.base_url}/datasets/cpih01/editions/time-series/versions/{self.version}/observations"
            "?time=*&geography=K02000001&aggregate=CP00"
        )

    async def cpih_yoy(self, window: SeriesWindow | None = None, skip_cache: bool = False) -> SeriesBatch:
        window = window or SeriesWindow()
        url = self.build_url()

        async def _fetch_fresh():
            res = await fetch_with_retry(
                self.client,
                "GET",
                url,
                retries=self.retries,
                base_delay_ms=self.base_delay_ms,
                request_name="ons_cpih_fetch",
            )
            if res.status_code < 200 or res.status_code >= 300:
                raise UpstreamFetchError(f"ons_fetch_failed:{res.status_code}", status=res.status_code)
            try:
                payload = res.json()
            except ValueError as exc:
                raise UpstreamDataError("ons_invalid_json") from exc
            as_of = now_utc_iso()
            item = parse_ons_observations(payload, as_of)
            log.info("ons_cpih_fetched", points=len(item.points))
            return {"asOf": as_of, "series": item.model_dump(mode="json", by_alias=True)}

        cached = await cached_fetch(
            self.cache,
            f"ons:{url}",
            self.ttl_seconds,
            _fetch_fresh,
            skip_cache=skip_cache,
            sink=self.sink,
        )
        item = SeriesItem.model_validate(cached.value["series"])
        from_month, to_month = window.month_bounds(self.default_months)
        item = item.with_points(window_points(item.points, from_month, to_month))
        return SeriesBatch(series=(item,), stale=cached.stale)
