import asyncio
import time as time_module
from datetime import datetime, timezone

import httpx
import structlog

log = structlog.get_logger()

MAX_RETRIES = 2
MIN_BASE_DELAY_MS = 50
MAX_BASE_DELAY_MS = 2000

def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

def now_epoch() -> int:
    return int(time_module.time())

def round2(value: float) -> float:
    return round(float(value), 2)

def should_retry_status(status: int) -> bool:
    return status == 429 or status >= 500

def backoff_delay_ms(base_delay_ms: int, attempt: int) -> int:
    return base_delay_ms * (2 ** attempt)

async def fetch_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    retries: int = MAX_RETRIES,
    base_delay_ms: int = 250,
    request_name: str = "upstream_request",
    sleep=asyncio.sleep,
    **request_kwargs,
) -> httpx.Response:
    """Issue a request, retrying 429/5xx responses and transport errors.

    A failing status that survives every attempt is returned, not raised;
    only a transport error on the final attempt propagates.
    """
    retries = max(0, min(MAX_RETRIES, int(retries)))
    base_delay_ms = max(MIN_BASE_DELAY_MS, min(MAX_BASE_DELAY_MS, int(base_delay_ms)))

    for attempt in range(retries + 1):
        next_delay = backoff_delay_ms(base_delay_ms, attempt)
        try:
            response = await client.request(method, url, **request_kwargs)
        except httpx.TransportError as exc:
            if attempt == retries:
                raise
            log.warning(
                "upstream_retry",
                request_name=request_name,
                attempt=attempt + 1,
                error=str(exc) or exc.__class__.__name__,
                next_delay_ms=next_delay,
            )
        else:
            retryable = should_retry_status(response.status_code)
            if not retryable or attempt == retries:
                if attempt > 0 and not retryable:
                    log.info(
                        "upstream_retry_recovered",
                        request_name=request_name,
                        attempts=attempt + 1,
                        status=response.status_code,
                    )
                return response
            log.warning(
                "upstream_retry",
                request_name=request_name,
                attempt=attempt + 1,
                status=response.status_code,
                next_delay_ms=next_delay,
            )
            await response.aclose()
        await sleep(next_delay / 1000.0)

    raise RuntimeError("fetch_retry_exhausted")
