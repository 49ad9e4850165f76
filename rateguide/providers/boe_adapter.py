"""Bank of England IADB adapter (delimited-text upstream)."""
from __future__ import annotations

import urllib.parse
from datetime import datetime

import httpx
import numpy as np
import pandas as pd
import structlog

from ..cache_layer import CacheStore, cached_fetch
from ..config import settings
from ..errors import UpstreamDataError, UpstreamFetchError
from ..logging import DiagnosticSink
from ..models import SeriesItem
from ..utils import fetch_with_retry, now_utc_iso
from .common import (
    SeriesBatch,
    SeriesWindow,
    format_day_month_year,
    frame_to_points,
    month_key,
    parse_day_month_year,
    window_points,
)

log = structlog.get_logger()

BOE_LABELS = {
    "IUMBV34": "2y fixed",
    "IUMBV37": "3y fixed",
    "IUMBV42": "5y fixed",
    "IUMTLMV": "revert-to-rate",
    "IUMBEDR": "base rate",
    "CFMHSCV": "household sight deposits rate",
}


def _tokenize(text: str) -> list[list[str]]:
    lines = [line.strip() for line in (text or "").splitlines()]
    return [[c.strip() for c in line.split(",")] for line in lines if line]


def parse_boe_csv(text: str, codes: list[str], as_of: str) -> list[SeriesItem]:
    """Parse an IADB CSV into one monthly series per requested code.

    Within a calendar month the chronologically latest row wins; on equal
    timestamps the first row seen is kept. Rows with an unparseable date or a
    non-numeric value are skipped.
    """
    rows = _tokenize(text)
    if len(rows) < 2:
        raise UpstreamDataError("boe_empty_response")

    header = rows[0]
    upper = [h.upper() for h in header]
    if "DATE" not in upper:
        raise UpstreamDataError("boe_invalid_header")
    date_col = upper.index("DATE")

    wanted = [(code, header.index(code)) for code in codes if code in header]
    if not wanted:
        raise UpstreamDataError("boe_missing_series_columns")

    records = []
    for order, row in enumerate(rows[1:]):
        d = parse_day_month_year(row[date_col] if date_col < len(row) else "")
        if d is None:
            continue
        rec = {
            "order": order,
            "at": datetime(d.year, d.month, d.day).isoformat(),
            "month": month_key(d),
        }
        for code, idx in wanted:
            rec[code] = row[idx] if idx < len(row) else None
        records.append(rec)

    columns = ["order", "at", "month"] + [code for code, _ in wanted]
    df = pd.DataFrame.from_records(records, columns=columns)

    out = []
    for code, _ in wanted:
        d = df[["order", "at", "month"]].copy()
        d["value"] = pd.to_numeric(df[code], errors="coerce")
        d = d[np.isfinite(d["value"])]
        if d.empty:
            raise UpstreamDataError("boe_no_observations", f"no valid rows for {code}")
        d = d.sort_values(["month", "at", "order"], ascending=[True, True, False])
        latest = d.groupby("month", sort=True).tail(1)
        out.append(
            SeriesItem(
                code=code,
                label=BOE_LABELS.get(code, code),
                unit="percent",
                as_of=as_of,
                points=frame_to_points(latest),
            )
        )
    return out


class BoeAdapter:
    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: CacheStore | None = None,
        sink: DiagnosticSink | None = None,
        base_url: str | None = None,
        ttl_seconds: int | None = None,
        retries: int | None = None,
        base_delay_ms: int | None = None,
        default_months: int | None = None,
    ):
        self.client = client
        self.cache = cache
        self.sink = sink or DiagnosticSink()
        self.base_url = base_url or settings.boe_base_url
        self.ttl_seconds = ttl_seconds or settings.boe_cache_ttl_seconds
        self.retries = settings.http_retry_attempts if retries is None else retries
        self.base_delay_ms = base_delay_ms or settings.http_retry_base_delay_ms
        self.default_months = default_months or settings.default_history_months

    def build_url(self, codes: list[str], window: SeriesWindow) -> str:
        from_date, to_date = window.resolve(self.default_months)
        params = {
            "csv.x": "yes",
            "Datefrom": format_day_month_year(from_date),
            "Dateto": format_day_month_year(to_date),
            "SeriesCodes": ",".join(codes),
            "CSVF": "TN",
            "UsingCodes": "Y",
            "VPD": "Y",
            "VFD": "N",
        }
        return f"{self.base_url}?{urllib.parse.urlencode(params)}"

    async def series(self, codes: list[str], window: SeriesWindow | None = None, skip_cache: bool = False) -> SeriesBatch:
        window = window or SeriesWindow()
        url = self.build_url(codes, window)

        async def _fetch_fresh():
            res = await fetch_with_retry(
                self.client,
                "GET",
                url,
                retries=self.retries,
                base_delay_ms=self.base_delay_ms,
                request_name="boe_series_fetch",
            )
            if res.status_code < 200 or res.status_code >= 300:
                raise UpstreamFetchError(f"boe_fetch_failed:{res.status_code}", status=res.status_code)
            as_of = now_utc_iso()
            items = parse_boe_csv(res.text, codes, as_of)
            log.info("boe_series_fetched", codes=[s.code for s in items], points=sum(len(s.points) for s in items))
            return {"asOf": as_of, "series": [s.model_dump(mode="json", by_alias=True) for s in items]}

        cached = await cached_fetch(
            self.cache,
            f"boe:{url}",
            self.ttl_seconds,
            _fetch_fresh,
            skip_cache=skip_cache,
            sink=self.sink,
        )
        from_month, to_month = window.month_bounds(self.default_months)
        items = []
        for raw in cached.value.get("series") or []:
            item = SeriesItem.model_validate(raw)
            items.append(item.with_points(window_points(item.points, from_month, to_month)))
        return SeriesBatch(series=tuple(items), stale=cached.stale)
