"""
Table definitions and the idempotent schema bootstrapper.
"""

from __future__ import annotations

import enum
import logging

from sqlalchemy import Boolean, Column, DateTime, String, Text, exc, false, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from ptlog.errors import ConfigurationError

logger = logging.getLogger(__name__)

Base = declarative_base()


class ProjectRow(Base):
    __tablename__ = "ptlog_projekt"

    name = Column("namn", String(200), primary_key=True)
    archived = Column(
        "arkiverad", Boolean, nullable=False, default=False, server_default=false()
    )


class LogRow(Base):
    __tablename__ = "ptlog"

    # Test names are unique per project.
    project = Column("projekt", String(200), primary_key=True)
    name = Column("testnamn", String(400), primary_key=True)
    timestamp = Column("datum", DateTime, nullable=False, index=True)
    type = Column("typ", String(100), nullable=False)
    purpose = Column("syfte", String(4000), nullable=False)
    analysis = Column("analys", Text, nullable=True)
    tester = Column("testare", String(200), nullable=True)


class SchemaState(str, enum.Enum):
    UNKNOWN = "unknown"
    READY = "ready"


PROBE_TABLE = ProjectRow.__tablename__


def schema_exists(engine: Engine) -> bool:
    return inspect(engine).has_table(PROBE_TABLE)


def apply_schema(engine: Engine) -> None:
    """Create both tables using the DDL dialect of ``engine``."""
    with engine.begin() as connection:
        Base.metadata.create_all(connection, checkfirst=False)


def bootstrap_schema(engine: Engine, *, auto_init: bool, backend_name: str) -> SchemaState:
    """
    Make sure the schema exists before the repository accepts calls.

    An existing schema is left untouched. A missing schema is created only
    when ``auto_init`` is set; otherwise the state stays UNKNOWN and later
    repository calls fail with backend errors.
    """
    try:
        present = schema_exists(engine)
    except exc.SQLAlchemyError as err:
        raise ConfigurationError(
            f"Could not inspect {backend_name} schema: {err}"
        ) from err

    if present:
        logger.info("%s schema already exists, skipping initialization", backend_name)
        return SchemaState.READY

    if not auto_init:
        logger.warning(
            "%s schema is missing and auto-init is disabled", backend_name
        )
        return SchemaState.UNKNOWN

    logger.info("Initializing %s database schema", backend_name)
    try:
        apply_schema(engine)
    except exc.SQLAlchemyError as err:
        raise ConfigurationError(
            f"Failed to initialize {backend_name} schema: {err}"
        ) from err
    logger.info("%s schema initialized", backend_name)
    return SchemaState.READY
