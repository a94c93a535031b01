"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import threading
from functools import lru_cache
from zoneinfo import ZoneInfo

from ptlog.backends import build_engine, select_backend
from ptlog.config import get_settings
from ptlog.db import DbClient, SqlDbClient
from ptlog.schema import bootstrap_schema

_db_client: DbClient | None = None
_db_client_lock = threading.Lock()


def get_db_client() -> DbClient:
    """
    Return a singleton DB client; the first call builds the pool and
    bootstraps the schema.
    """
    global _db_client
    if _db_client:
        return _db_client

    with _db_client_lock:
        if _db_client:
            return _db_client
        settings = get_settings()
        profile = select_backend(settings)
        engine = build_engine(settings, profile)
        state = bootstrap_schema(
            engine, auto_init=profile.auto_init, backend_name=profile.name
        )
        _db_client = SqlDbClient(engine, schema_state=state)
    return _db_client


@lru_cache(maxsize=1)
def get_timezone() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)
