# gridstats/core/config.py
import os

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CACHE_MAX_TENANTS = int(os.getenv("GRIDSTATS_CACHE_MAX_TENANTS", "50"))
CORS_ORIGINS = [o.strip() for o in os.getenv("GRIDSTATS_CORS_ORIGINS", "*").split(",") if o.strip()]

def database_configured() -> bool:
    return bool(os.getenv("DATABASE_URL"))
