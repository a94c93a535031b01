"""
HTTP routes for the PT-Log API.
"""

from __future__ import annotations

import logging
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query

from ptlog import naming
from ptlog.db import DbClient, LogRecord
from ptlog.dependencies import get_db_client, get_timezone
from ptlog.errors import NotFoundError
from ptlog.schemas import (
    HealthResponse,
    InsertConfigRequest,
    InsertLogRequest,
    InsertLogResponse,
    InsertPacingRequest,
    LogEntryResponse,
    ProjectPayload,
    RowsResponse,
    UpdateAnalysisRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

DISPLAY_FORMAT = "%Y-%m-%d %H:%M"


def _to_response(record: LogRecord) -> LogEntryResponse:
    return LogEntryResponse(
        Datum=record.timestamp.strftime(DISPLAY_FORMAT),
        Typ=record.type,
        Testnamn=record.name,
        Syfte=record.purpose,
        Analys=record.analysis,
        Projekt=record.project,
        Testare=record.tester,
    )


@router.get("/healthcheck", response_model=HealthResponse)
def healthcheck():
    return HealthResponse(status="ok", service="API Health Check")


@router.get("/getData", response_model=list[LogEntryResponse])
def get_data(
    projekt: str = Query(..., min_length=1),
    db: DbClient = Depends(get_db_client),
):
    """All logs for a project, newest first."""
    return [_to_response(record) for record in db.query_logs(projekt)]


@router.get("/populate", response_model=list[str])
def populate(
    archived: bool = Query(False),
    db: DbClient = Depends(get_db_client),
):
    return db.list_projects(archived=archived)


@router.post("/createProject", response_model=RowsResponse)
def create_project(payload: ProjectPayload, db: DbClient = Depends(get_db_client)):
    db.create_project(payload.project)
    return RowsResponse(message=f"Inserted project: {payload.project}", rows=1)


@router.put("/archiveProject", response_model=RowsResponse)
def archive_project(payload: ProjectPayload, db: DbClient = Depends(get_db_client)):
    rows = db.set_archived(payload.project, True)
    return RowsResponse(message=f"Archived project: {payload.project}", rows=rows)


@router.put("/restoreProject", response_model=RowsResponse)
def restore_project(payload: ProjectPayload, db: DbClient = Depends(get_db_client)):
    rows = db.set_archived(payload.project, False)
    return RowsResponse(message=f"Restored project: {payload.project}", rows=rows)


@router.delete("/deleteProject", response_model=RowsResponse)
def delete_project(
    projekt: str = Query(..., min_length=1),
    db: DbClient = Depends(get_db_client),
):
    result = db.delete_project(projekt)
    if not result.project_deleted:
        raise NotFoundError(f"Project not found: {projekt}")
    return RowsResponse(
        message=f"Deleted project {projekt} and {result.logs_deleted} log(s)",
        rows=result.logs_deleted,
    )


@router.post("/insert", response_model=InsertLogResponse)
def insert_log(
    payload: InsertLogRequest,
    db: DbClient = Depends(get_db_client),
    tz: ZoneInfo = Depends(get_timezone),
):
    draft = naming.draft_test_log(
        project=payload.project,
        test_type=payload.type,
        test_name=payload.test_name,
        purpose=payload.purpose,
        tester=payload.tester,
        timestamp=payload.timestamp,
        tz=tz,
    )
    name = db.insert_log(draft)
    return InsertLogResponse(message=f"Inserted 1 row(s) with testnamn: {name}", testnamn=name)


@router.post("/insertPacing", response_model=InsertLogResponse)
def insert_pacing(
    payload: InsertPacingRequest,
    db: DbClient = Depends(get_db_client),
    tz: ZoneInfo = Depends(get_timezone),
):
    draft = naming.draft_pacing_config(
        project=payload.project,
        virtual_users=payload.virtual_users,
        pacing=payload.pacing,
        requests_per_hour=payload.requests_per_hour,
        requests_per_iteration=payload.requests_per_iteration,
        script=payload.script,
        label=payload.label,
        tester=payload.tester,
        tz=tz,
    )
    name = db.insert_log(draft)
    return InsertLogResponse(message=f"Inserted 1 row(s) with testnamn: {name}", testnamn=name)


@router.post("/insertConfig", response_model=InsertLogResponse)
def insert_config(
    payload: InsertConfigRequest,
    db: DbClient = Depends(get_db_client),
    tz: ZoneInfo = Depends(get_timezone),
):
    draft = naming.draft_general_config(
        project=payload.project,
        description=payload.description,
        label=payload.label,
        tester=payload.tester,
        tz=tz,
    )
    name = db.insert_log(draft)
    return InsertLogResponse(message=f"Inserted 1 row(s) with testnamn: {name}", testnamn=name)


@router.put("/updateAnalys", response_model=RowsResponse)
def update_analysis(
    payload: UpdateAnalysisRequest, db: DbClient = Depends(get_db_client)
):
    rows = db.update_analysis(payload.project, payload.test_name, payload.analysis)
    if rows == 0:
        raise NotFoundError(
            f"No row found with Projekt: {payload.project} "
            f"and Testnamn: {payload.test_name}"
        )
    return RowsResponse(
        message=f"Updated {rows} row(s) for Projekt: {payload.project}, Testnamn: {payload.test_name}",
        rows=rows,
    )


@router.delete("/deleteLog", response_model=RowsResponse)
def delete_log(
    projekt: str = Query(..., min_length=1),
    testnamn: str = Query(..., min_length=1),
    db: DbClient = Depends(get_db_client),
):
    rows = db.delete_log(projekt, testnamn)
    if rows == 0:
        raise NotFoundError(
            f"No row found with Projekt: {projekt} and Testnamn: {testnamn}"
        )
    return RowsResponse(message=f"Deleted {testnamn} from {projekt}", rows=rows)


@router.get("/poolStats")
def pool_stats(db: DbClient = Depends(get_db_client)):
    return db.pool_status()


@router.get("/dbInfo")
def db_info(db: DbClient = Depends(get_db_client)):
    return db.describe()
