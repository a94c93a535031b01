"""
Log repository over the configured SQL backend.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional, Protocol

from sqlalchemy import delete, func, select, update
from sqlalchemy import exc
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ptlog import backends, naming
from ptlog.errors import (
    ConstraintViolationError,
    NotFoundError,
    PersistenceError,
    PoolExhaustedError,
)
from ptlog.naming import LogDraft
from ptlog.schema import LogRow, ProjectRow, SchemaState


class DbClient(Protocol):
    """Interface for test-log persistence."""

    schema_state: SchemaState

    def count_for_project(self, project: str) -> int:
        ...

    def insert_log(self, draft: LogDraft) -> str:
        ...

    def query_logs(self, project: str) -> list["LogRecord"]:
        ...

    def update_analysis(self, project: str, test_name: str, analysis: str) -> int:
        ...

    def delete_log(self, project: str, test_name: str) -> int:
        ...

    def create_project(self, name: str) -> None:
        ...

    def list_projects(self, archived: bool = False) -> list[str]:
        ...

    def set_archived(self, name: str, archived: bool) -> int:
        ...

    def delete_project(self, name: str) -> "ProjectDeletion":
        ...

    def describe(self) -> dict:
        ...

    def pool_status(self) -> dict:
        ...


@dataclass
class LogRecord:
    timestamp: datetime
    type: str
    name: str
    purpose: str
    analysis: Optional[str]
    project: str
    tester: Optional[str]


@dataclass
class ProjectDeletion:
    logs_deleted: int
    project_deleted: bool


class SqlDbClient:
    """
    SQLAlchemy-backed implementation used for both Oracle and embedded SQLite.

    Name reservation relies on the backend locking a project for the length
    of the insert transaction: a row lock (SELECT ... FOR UPDATE) on Oracle,
    the database write lock taken by BEGIN IMMEDIATE on SQLite.
    """

    def __init__(self, engine: Engine, schema_state: SchemaState = SchemaState.READY):
        self.engine = engine
        self.schema_state = schema_state
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Open a session and translate driver failures into PersistenceError."""
        try:
            with self.Session() as session:
                yield session
        except exc.TimeoutError as err:
            raise PoolExhaustedError(f"Connection pool exhausted: {err}") from err
        except exc.IntegrityError as err:
            raise ConstraintViolationError(f"Constraint violation: {err.orig}") from err
        except exc.SQLAlchemyError as err:
            raise PersistenceError(f"Database error: {err}") from err

    @staticmethod
    def _count(session: Session, project: str) -> int:
        stmt = select(func.count()).select_from(LogRow).where(LogRow.project == project)
        return session.execute(stmt).scalar_one()

    @staticmethod
    def _lock_project(session: Session, name: str) -> Optional[str]:
        stmt = select(ProjectRow.name).where(ProjectRow.name == name).with_for_update()
        return session.execute(stmt).scalar_one_or_none()

    def count_for_project(self, project: str) -> int:
        with self._session() as session:
            return self._count(session, project)

    def insert_log(self, draft: LogDraft) -> str:
        """
        Reserve the next ordinal for ``draft.project`` and write the row.

        Returns the assigned test name. Raises NotFoundError when the project
        does not exist. New entries start without an analysis.

        The ordinal is the current row count plus one, so after a log has been
        deleted the next name can match one that is still stored. The primary
        key rejects that insert with ConstraintViolationError (HTTP 409).
        """
        with self._session() as session:
            if self._lock_project(session, draft.project) is None:
                raise NotFoundError(f"Project not found: {draft.project}")
            ordinal = self._count(session, draft.project) + 1
            name = naming.compose_name(ordinal, draft.prefix, draft.suffix)
            session.add(
                LogRow(
                    project=draft.project,
                    name=name,
                    timestamp=draft.timestamp,
                    type=draft.type,
                    purpose=draft.purpose,
                    tester=draft.tester,
                )
            )
            session.commit()
            return name

    def query_logs(self, project: str) -> list[LogRecord]:
        with self._session() as session:
            rows = (
                session.execute(
                    select(LogRow)
                    .where(LogRow.project == project)
                    .order_by(
                        LogRow.timestamp.desc(),
                        func.length(LogRow.name).desc(),
                        LogRow.name.desc(),
                    )
                )
                .scalars()
                .all()
            )
            return [
                LogRecord(
                    timestamp=row.timestamp,
                    type=row.type,
                    name=row.name,
                    purpose=row.purpose,
                    analysis=row.analysis,
                    project=row.project,
                    tester=row.tester,
                )
                for row in rows
            ]

    def update_analysis(self, project: str, test_name: str, analysis: str) -> int:
        with self._session() as session:
            result = session.execute(
                update(LogRow)
                .where(LogRow.project == project, LogRow.name == test_name)
                .values(analysis=analysis)
            )
            session.commit()
            return result.rowcount or 0

    def delete_log(self, project: str, test_name: str) -> int:
        with self._session() as session:
            result = session.execute(
                delete(LogRow).where(
                    LogRow.project == project, LogRow.name == test_name
                )
            )
            session.commit()
            return result.rowcount or 0

    def create_project(self, name: str) -> None:
        with self._session() as session:
            session.add(ProjectRow(name=name.strip(), archived=False))
            session.commit()

    def list_projects(self, archived: bool = False) -> list[str]:
        with self._session() as session:
            stmt = (
                select(ProjectRow.name)
                .where(ProjectRow.archived == archived)
                .distinct()
                .order_by(ProjectRow.name)
            )
            return list(session.execute(stmt).scalars().all())

    def set_archived(self, name: str, archived: bool) -> int:
        with self._session() as session:
            result = session.execute(
                update(ProjectRow)
                .where(ProjectRow.name == name)
                .values(archived=archived)
            )
            session.commit()
            return result.rowcount or 0

    def delete_project(self, name: str) -> ProjectDeletion:
        """Delete a project and all of its logs in one transaction."""
        with self._session() as session:
            if self._lock_project(session, name) is None:
                session.commit()
                return ProjectDeletion(logs_deleted=0, project_deleted=False)
            logs = session.execute(delete(LogRow).where(LogRow.project == name))
            projects = session.execute(
                delete(ProjectRow).where(ProjectRow.name == name)
            )
            session.commit()
            return ProjectDeletion(
                logs_deleted=logs.rowcount or 0,
                project_deleted=bool(projects.rowcount),
            )

    def describe(self) -> dict:
        info = backends.describe(self.engine)
        info["schema_state"] = self.schema_state.value
        return info

    def pool_status(self) -> dict:
        return backends.pool_status(self.engine)
