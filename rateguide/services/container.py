"""Process-wide shared resources: HTTP client, cache store, upstream adapters."""
from __future__ import annotations

from dataclasses import dataclass

import httpx
import structlog

from ..cache_layer import CacheStore
from ..config import Settings, settings
from ..logging import DiagnosticSink
from ..providers.boe_adapter import BoeAdapter
from ..providers.ons_adapter import OnsAdapter

log = structlog.get_logger()


@dataclass
class ServiceContainer:
    client: httpx.AsyncClient
    cache: CacheStore | None
    sink: DiagnosticSink
    boe: BoeAdapter
    ons: OnsAdapter
    cfg: Settings

    async def aclose(self):
        await self.client.aclose()


def build_container(
    cfg: Settings | None = None,
    client: httpx.AsyncClient | None = None,
    cache: CacheStore | None = None,
) -> ServiceContainer:
    """Wire adapters from settings. ``client``/``cache`` may be injected (tests)."""
    cfg = cfg or settings
    client = client or httpx.AsyncClient(timeout=cfg.http_timeout_seconds, follow_redirects=True)
    if cache is None and cfg.cache_enabled:
        cache = CacheStore(cfg.cache_db_path)
    sink = DiagnosticSink()

    common = dict(
        cache=cache,
        sink=sink,
        retries=cfg.http_retry_attempts,
        base_delay_ms=cfg.http_retry_base_delay_ms,
        default_months=cfg.default_history_months,
    )
    boe = BoeAdapter(client, base_url=cfg.boe_base_url, ttl_seconds=cfg.boe_cache_ttl_seconds, **common)
    ons = OnsAdapter(
        client,
        base_url=cfg.ons_base_url,
        version=cfg.ons_cpih_version,
        ttl_seconds=cfg.ons_cache_ttl_seconds,
        **common,
    )
    log.info("container_ready", cache_enabled=cache is not None, cache_db_path=cfg.cache_db_path if cache else None)
    return ServiceContainer(client=client, cache=cache, sink=sink, boe=boe, ons=ons, cfg=cfg)
