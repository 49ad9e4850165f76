import asyncio
import json
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable

import structlog

from .logging import DiagnosticSink
from .utils import now_epoch, now_utc_iso

log = structlog.get_logger()


@dataclass(frozen=True)
class CacheRecord:
    key: str
    value_json: str
    created_at: str
    ttl_epoch: int

    def value(self):
        return json.loads(self.value_json)

    def expired(self, at_epoch: int | None = None) -> bool:
        return (at_epoch if at_epoch is not None else now_epoch()) >= self.ttl_epoch


@dataclass(frozen=True)
class CachedValue:
    value: Any
    stale: bool


class CacheStore:
    """
    Single-table key/value cache for upstream payloads.
    - One row per cache key, overwritten on every successful refresh
    - Rows are never expired on read; ttl_epoch only marks freshness
    - sqlite calls run in a worker thread so the event loop never blocks
    """
    def __init__(self, db_path: str = "./data/cache.sqlite3"):
        self.db_path = db_path
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _conn(self):
        return sqlite3.connect(self.db_path, isolation_level=None)

    def _init_db(self):
        conn = self._conn()
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("""
        CREATE TABLE IF NOT EXISTS cache_records(
            cache_key TEXT PRIMARY KEY,
            value_json TEXT NOT NULL,
            created_at TEXT NOT NULL,
            ttl_epoch INTEGER NOT NULL
        )
        """)
        conn.close()

    def get_sync(self, cache_key: str) -> CacheRecord | None:
        conn = self._conn()
        try:
            row = conn.execute(
                "SELECT cache_key, value_json, created_at, ttl_epoch FROM cache_records WHERE cache_key=?",
                (cache_key,),
            ).fetchone()
        finally:
            conn.close()
        if not row or not isinstance(row[1], str):
            return None
        return CacheRecord(key=row[0], value_json=row[1], created_at=row[2], ttl_epoch=int(row[3]))

    def put_sync(self, cache_key: str, value, ttl_seconds: int) -> CacheRecord:
        record = CacheRecord(
            key=cache_key,
            value_json=json.dumps(value, ensure_ascii=False),
            created_at=now_utc_iso(),
            ttl_epoch=now_epoch() + max(1, int(ttl_seconds)),
        )
        conn = self._conn()
        try:
            conn.execute("""
            INSERT INTO cache_records(cache_key, value_json, created_at, ttl_epoch)
            VALUES(?,?,?,?)
            ON CONFLICT(cache_key) DO UPDATE SET value_json=excluded.value_json,
                created_at=excluded.created_at, ttl_epoch=excluded.ttl_epoch
            """, (record.key, record.value_json, record.created_at, record.ttl_epoch))
        finally:
            conn.close()
        return record

    def invalidate_all_sync(self) -> int:
        conn = self._conn()
        try:
            cur = conn.execute("DELETE FROM cache_records")
            return cur.rowcount
        finally:
            conn.close()

    async def get(self, cache_key: str) -> CacheRecord | None:
        return await asyncio.to_thread(self.get_sync, cache_key)

    async def put(self, cache_key: str, value, ttl_seconds: int) -> CacheRecord:
        return await asyncio.to_thread(self.put_sync, cache_key, value, ttl_seconds)

    async def invalidate_all(self) -> int:
        return await asyncio.to_thread(self.invalidate_all_sync)


async def _read(store: CacheStore, cache_key: str, sink: DiagnosticSink):
    """Returns (hit, value). Any read or decode failure counts as a miss."""
    try:
        record = await store.get(cache_key)
        if record is None:
            return False, None
        return True, record.value()
    except Exception as exc:
        sink.warn_once("cache_read_failed", cache_key=cache_key, err=str(exc))
        return False, None


async def cached_fetch(
    store: CacheStore | None,
    cache_key: str,
    ttl_seconds: int,
    fetch_fresh: Callable[[], Awaitable[Any]],
    *,
    skip_cache: bool = False,
    sink: DiagnosticSink | None = None,
) -> CachedValue:
    """Serve from cache, refresh on miss, fall back to an expired record on refresh failure.

    ``store=None`` disables caching entirely. ``skip_cache`` bypasses both
    cache reads (the lookup and the stale fallback) for this call only; a
    successful refresh is still written.
    """
    sink = sink or DiagnosticSink()
    use_reads = store is not None and not skip_cache

    if use_reads:
        hit, value = await _read(store, cache_key, sink)
        if hit:
            return CachedValue(value=value, stale=False)

    try:
        fresh = await fetch_fresh()
    except Exception as exc:
        if not use_reads:
            raise
        hit, value = await _read(store, cache_key, sink)
        if hit:
            log.warning("cache_stale_fallback", cache_key=cache_key, err=str(exc))
            return CachedValue(value=value, stale=True)
        raise

    if store is not None:
        try:
            await store.put(cache_key, fresh, ttl_seconds)
        except Exception as exc:
            sink.warn_once("cache_write_failed", cache_key=cache_key, err=str(exc))
    return CachedValue(value=fresh, stale=False)
