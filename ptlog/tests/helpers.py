"""
Shared fixtures for tests that run against a temporary embedded database.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from ptlog.backends import build_engine, select_backend
from ptlog.config import Settings
from ptlog.db import SqlDbClient
from ptlog.naming import LogDraft, draft_test_log
from ptlog.schema import bootstrap_schema

TZ = ZoneInfo("Europe/Stockholm")


def embedded_settings(directory: str, **overrides) -> Settings:
    values = {
        "db_type": "embedded",
        "embedded_file_path": str(Path(directory) / "ptlog"),
    }
    values.update(overrides)
    return Settings(**values)


def make_db_client(directory: str, **overrides) -> SqlDbClient:
    settings = embedded_settings(directory, **overrides)
    profile = select_backend(settings)
    engine = build_engine(settings, profile)
    state = bootstrap_schema(
        engine, auto_init=profile.auto_init, backend_name=profile.name
    )
    return SqlDbClient(engine, schema_state=state)


def sample_draft(
    project: str,
    *,
    test_type: str = "Referenstest",
    test_name: str = "Baseline",
    when: Optional[datetime] = None,
    purpose: str = "Baseline before release",
    tester: str = "Kim",
) -> LogDraft:
    return draft_test_log(
        project=project,
        test_type=test_type,
        test_name=test_name,
        purpose=purpose,
        tester=tester,
        timestamp=when or datetime(2024, 3, 1, 9, 0),
        tz=TZ,
    )
