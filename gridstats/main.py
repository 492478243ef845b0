# gridstats/main.py
from __future__ import annotations

import logging
import math
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from gridstats.core import config, db
from gridstats.core.errors import RateLimitExceeded
from gridstats.core.tenant_limits import TenantLimits
from gridstats.routers import analytics_routes
from gridstats.services.stack_cache import StackCache

# ------------ Logging ------------
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("gridstats")


@asynccontextmanager
async def lifespan(_: FastAPI):
    await db.init_engine()
    try:
        yield
    finally:
        await db.close_engine()


# ------------ App ------------
app = FastAPI(
    title="Gridstats Analytics API",
    version="1.0.0",
    docs_url="/docs",
    redoc_url=None,
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Per-process state; swap these out in tests.
app.state.stack_cache = StackCache(max_tenants=config.CACHE_MAX_TENANTS)
app.state.tenant_limits = TenantLimits()


# ------------ Access log middleware ------------
class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        t0 = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            dt = (time.perf_counter() - t0) * 1000
            logger.info(
                "ACCESS %s %s q=%s -> %s in %.1fms",
                request.method,
                request.url.path,
                request.url.query,
                status,
                dt,
            )


app.add_middleware(AccessLogMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------ Error handlers ------------
@app.exception_handler(RateLimitExceeded)
async def _rate_limited(request: Request, exc: RateLimitExceeded):
    wait_s = max(1, math.ceil((exc.retry_at - time.time() * 1000.0) / 1000.0))
    return JSONResponse(
        status_code=exc.status,
        content={"error": "rate_limit_exceeded", "retryAt": exc.retry_at},
        headers={"Retry-After": str(wait_s)},
    )


@app.exception_handler(Exception)
async def _unhandled(request: Request, exc: Exception):
    logger.exception("UNHANDLED ERROR: %s %s", request.method, request.url)
    return JSONResponse(status_code=500, content={"error": "internal_error"})


# ------------ Health & status ------------
@app.get("/health")
async def health():
    return {"ok": True}


@app.get("/status")
async def status():
    return {
        "ok": True,
        "has_database": config.database_configured(),
        "db_connected": db.engine_ready(),
        "cached_tenants": len(app.state.stack_cache),
    }


# ------------ Mount routers ------------
app.include_router(analytics_routes.router, prefix="/api/analytics")
