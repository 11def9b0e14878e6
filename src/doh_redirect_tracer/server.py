"""HTTP API exposing the redirect tracer."""
import asyncio
import time
from contextlib import asynccontextmanager
from typing import List, Optional
from fastapi import FastAPI, HTTPException
import httpx
from .config import (
    logger, LISTEN_HOST, LISTEN_PORT, LOG_LEVEL, REDIRECT_DOH, MAX_HOPS, USER_AGENT,
    REQUEST_TIMEOUT, TRACE_TIMEOUT, BOOTSTRAP_DNS, STATS_INTERVAL,
)
from .errors import ChainError, InputError, ResolutionError
from .metrics import TraceMetrics
from .models import Hop
from .resolver import create_doh_client, resolve_doh
from .tracer import RedirectTracer, TraceSettings, hostname_of, parse_target_url

trace_metrics = TraceMetrics()


def build_settings() -> TraceSettings:
    """Trace settings from the process configuration."""
    return TraceSettings(
        max_hops=MAX_HOPS,
        user_agent=USER_AGENT,
        redirect_doh=REDIRECT_DOH,
        timeout=REQUEST_TIMEOUT,
    )


async def stats_task(metrics: TraceMetrics, interval: float):
    """
    Periodically logs trace metrics.

    Args:
        metrics: Metrics tracker shared by request handlers
        interval: Seconds between log lines
    """
    while True:
        await asyncio.sleep(interval)
        metrics.log_stats()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Serving /api/redirect (max hops {MAX_HOPS}, redirect DoH {REDIRECT_DOH or 'caller-supplied'}, "
        f"bootstrap DNS {BOOTSTRAP_DNS or 'system'})"
    )
    task = asyncio.create_task(stats_task(trace_metrics, STATS_INTERVAL))
    try:
        yield
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


app = FastAPI(title="doh-redirect-tracer", lifespan=lifespan)


async def trace_with_deadline(tracer: RedirectTracer, url: httpx.URL, ip: str, doh_url: str) -> List[Hop]:
    """Run a trace, cancelling it once TRACE_TIMEOUT elapses."""
    try:
        return await asyncio.wait_for(tracer.trace(url, ip, doh_url=doh_url), timeout=TRACE_TIMEOUT)
    except asyncio.TimeoutError as e:
        raise ChainError(f"trace did not finish within {TRACE_TIMEOUT}s") from e


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/api/redirect")
async def redirect_chain(doh: Optional[str] = None, url: Optional[str] = None) -> List[dict]:
    if not doh or not url:
        raise HTTPException(status_code=400, detail="Missing 'doh' or 'url' parameters")

    try:
        target = parse_target_url(url)
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    start_time = time.time()
    async with create_doh_client(BOOTSTRAP_DNS, REQUEST_TIMEOUT) as doh_client:
        try:
            resolved = await resolve_doh(doh_client, doh, hostname_of(target))
        except ResolutionError as e:
            trace_metrics.record_failure()
            logger.warning(f"DoH resolution of {target.host} via {doh} failed: {e}")
            raise HTTPException(status_code=502, detail=f"DoH resolution failed: {e}") from e

        tracer = RedirectTracer(doh_client, build_settings())
        try:
            chain = await trace_with_deadline(tracer, target, resolved.ip, doh)
        except ChainError as e:
            trace_metrics.record_failure()
            logger.warning(f"Tracing {target} failed: {e}")
            raise HTTPException(status_code=502, detail=f"Failed to follow redirects: {e}") from e

    trace_metrics.record_success(len(chain), time.time() - start_time)
    logger.info(f"[TRACE] {target} -> {len(chain)} hop(s), final status {chain[-1].status if chain else '-'}")
    return [hop.to_dict() for hop in chain]


def main(port: Optional[int] = None):
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        app,
        host=LISTEN_HOST,
        port=port or LISTEN_PORT,
        log_level=LOG_LEVEL.lower(),
        log_config=None,
    )
