"""
Backend selection for Oracle (production) and embedded SQLite (fallback).

Both backends are exposed as a single pooled SQLAlchemy ``Engine`` so the
repository code runs unmodified against either of them.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from sqlalchemy import create_engine, event, exc
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.pool import QueuePool

from ptlog.config import Settings
from ptlog.errors import ConfigurationError

logger = logging.getLogger(__name__)

ORACLE = "oracle"
EMBEDDED = "embedded"
EMBEDDED_SUFFIX = ".db"


@dataclass(frozen=True)
class BackendProfile:
    """Connection profile for exactly one backend."""

    name: str
    url: URL
    auto_init: bool
    connect_args: dict[str, Any] = field(default_factory=dict)

    @property
    def masked_url(self) -> str:
        return self.url.render_as_string(hide_password=True)


def select_backend(settings: Settings) -> BackendProfile:
    """Build the profile named by ``settings.db_type``."""
    if settings.db_type == EMBEDDED:
        return _embedded_profile(settings)
    return _oracle_profile(settings)


def _oracle_profile(settings: Settings) -> BackendProfile:
    if not settings.oracle_url:
        raise ConfigurationError("oracle_url is required when db_type is oracle")
    try:
        url = make_url(settings.oracle_url)
    except exc.ArgumentError as err:
        raise ConfigurationError(f"Invalid oracle_url: {err}") from err
    if settings.oracle_username:
        url = url.set(username=settings.oracle_username)
    if settings.oracle_password is not None:
        url = url.set(password=settings.oracle_password.get_secret_value())
    return BackendProfile(
        name=ORACLE,
        url=url,
        auto_init=settings.oracle_auto_init,
        connect_args={"stmtcachesize": settings.statement_cache_size},
    )


def _embedded_profile(settings: Settings) -> BackendProfile:
    path = Path(settings.embedded_file_path)
    if path.suffix != EMBEDDED_SUFFIX:
        path = path.with_name(path.name + EMBEDDED_SUFFIX)
    return BackendProfile(
        name=EMBEDDED,
        url=URL.create("sqlite+pysqlite", database=str(path)),
        auto_init=settings.embedded_auto_init,
        connect_args={
            "check_same_thread": False,
            "timeout": settings.connection_timeout_seconds,
            "cached_statements": settings.statement_cache_size,
        },
    )


def _ensure_parent_dir(database: Optional[str]) -> None:
    if not database or database == ":memory:":
        return
    try:
        Path(database).parent.mkdir(parents=True, exist_ok=True)
    except OSError as err:
        raise ConfigurationError(
            f"Cannot create directory for embedded database {database}: {err}"
        ) from err


def _install_idle_timeout(engine: Engine, idle_timeout: float) -> None:
    """Discard pooled connections that sat idle longer than ``idle_timeout``."""
    if idle_timeout <= 0:
        return

    @event.listens_for(engine, "checkin")
    def _stamp_checkin(dbapi_connection, connection_record):
        connection_record.info["checked_in_at"] = time.monotonic()

    @event.listens_for(engine, "checkout")
    def _expire_idle(dbapi_connection, connection_record, connection_proxy):
        checked_in_at = connection_record.info.pop("checked_in_at", None)
        if checked_in_at is not None and time.monotonic() - checked_in_at > idle_timeout:
            # The pool invalidates this connection and retries with a fresh one.
            raise exc.DisconnectionError("connection exceeded idle timeout")


def _install_sqlite_write_lock(engine: Engine) -> None:
    """
    Start every SQLite transaction with BEGIN IMMEDIATE.

    pysqlite otherwise defers BEGIN until the first write, which lets two
    connections read the same row count before either of them writes.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(
    settings: Settings, profile: Optional[BackendProfile] = None
) -> Engine:
    """
    Create the pooled engine for the configured backend and verify it answers.

    Raises ConfigurationError when the backend is misconfigured or unreachable.
    """
    profile = profile or select_backend(settings)
    if profile.name == EMBEDDED:
        _ensure_parent_dir(profile.url.database)

    # QueuePool treats pool_size=0 as unbounded.
    pool_size = max(settings.min_idle, 1)
    try:
        engine = create_engine(
            profile.url,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max(settings.max_pool_size - pool_size, 0),
            pool_timeout=settings.connection_timeout_seconds,
            pool_recycle=settings.max_lifetime_seconds,
            pool_pre_ping=True,
            connect_args=profile.connect_args,
        )
    except (exc.SQLAlchemyError, ImportError) as err:
        raise ConfigurationError(
            f"Cannot configure {profile.name} backend at {profile.masked_url}: {err}"
        ) from err

    _install_idle_timeout(engine, settings.idle_timeout_seconds)
    if profile.name == EMBEDDED:
        _install_sqlite_write_lock(engine)

    try:
        with engine.connect():
            pass
    except exc.SQLAlchemyError as err:
        engine.dispose()
        raise ConfigurationError(
            f"Cannot reach {profile.name} backend at {profile.masked_url}: {err}"
        ) from err

    logger.info("Configured %s database at %s", profile.name, profile.masked_url)
    return engine


def describe(engine: Engine) -> dict:
    return {
        "dialect": engine.dialect.name,
        "driver": engine.dialect.driver,
        "url": engine.url.render_as_string(hide_password=True),
    }


def pool_status(engine: Engine) -> dict:
    """Read-only snapshot of the connection pool."""
    pool = engine.pool
    if not isinstance(pool, QueuePool):
        return {"status": pool.status()}
    return {
        "size": pool.size(),
        "checked_in": pool.checkedin(),
        "checked_out": pool.checkedout(),
        "overflow": pool.overflow(),
        "timeout": pool.timeout(),
        "status": pool.status(),
    }
