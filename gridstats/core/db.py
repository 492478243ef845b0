# gridstats/core/db.py
import logging
import os
from typing import Any, Dict, List
from urllib.parse import urlparse, urlunparse, parse_qsl, urlencode

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy import text

logger = logging.getLogger("gridstats.db")

_engine: AsyncEngine | None = None

_SCHEME_PREFIXES = ("postgres://", "postgresql://", "postgresql+psycopg2://", "postgresql+asyncpg://")

def normalize_database_url(url: str) -> str:
    """
    Any postgres URL -> postgresql+asyncpg://..., keeping the query string.
    asyncpg takes `ssl`, not libpq's `sslmode`; default to ssl=require.
    """
    if not url:
        return url
    for prefix in _SCHEME_PREFIXES:
        if url.startswith(prefix):
            url = "postgresql+asyncpg://" + url[len(prefix):]
            break

    parsed = urlparse(url)
    q = dict(parse_qsl(parsed.query))
    if "sslmode" in q:
        q.setdefault("ssl", q.pop("sslmode"))
    q.setdefault("ssl", "require")
    return urlunparse(parsed._replace(query=urlencode(q)))

def get_database_url() -> str | None:
    raw = os.getenv("DATABASE_URL")
    if not raw:
        logger.info("DATABASE_URL not set; storage layer disabled")
        return None
    url = normalize_database_url(raw)
    parsed = urlparse(url)
    # host/port only, never credentials
    logger.info("DB using asyncpg host=%s port=%s", parsed.hostname or "?", parsed.port or "?")
    return url

async def init_engine() -> AsyncEngine | None:
    global _engine
    if _engine is not None:
        return _engine
    url = get_database_url()
    if not url:
        return None
    _engine = create_async_engine(url, pool_pre_ping=True)
    return _engine

async def close_engine():
    global _engine
    if _engine:
        await _engine.dispose()
        _engine = None

def engine_ready() -> bool:
    return _engine is not None

async def fetch_all(sql: str, params: Dict[str, Any] | None = None) -> List[Dict[str, Any]]:
    if not _engine:
        return []
    async with _engine.connect() as conn:
        result = await conn.execute(text(sql), params or {})
        return [dict(row) for row in result.mappings().all()]
