"""
Sequence naming for test-log entries.

Every entry gets a project-scoped name ``<NN>_<PREFIX>_<suffix>`` where NN is
the project's row count plus one. The ordinal itself is reserved by the
repository inside the insert transaction; this module only knows how to
build the pieces around it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "REF"

# Accepted type strings, canonical short form and descriptive form.
TYPE_PREFIXES = {
    "reference": "REF",
    "referenstest": "REF",
    "verification": "VER",
    "verifikationstest": "VER",
    "load": "BEL",
    "belastningstest": "BEL",
    "endurance": "UTM",
    "utmattningstest": "UTM",
    "max": "MAX",
    "maxtest": "MAX",
    "create": "SKA",
    "skapa": "SKA",
}

CONFIG_TYPE = "Konfiguration"
PACING_PREFIX = "PAC"
PACING_SUFFIX = "PACING"
GENERAL_PREFIX = "GEN"
GENERAL_SUFFIX = "Konfig"

SECONDS_PER_HOUR = 3600


@dataclass
class LogDraft:
    """A log entry that is ready to be written, minus its ordinal."""

    project: str
    type: str
    prefix: str
    suffix: str
    purpose: str
    timestamp: datetime
    tester: Optional[str] = None


def resolve_prefix(test_type: str) -> str:
    """Map a test type (any case, short or descriptive form) to its prefix."""
    prefix = TYPE_PREFIXES.get(test_type.strip().lower())
    if prefix is None:
        logger.warning(
            "Unrecognized test type %r, using prefix %s", test_type, DEFAULT_PREFIX
        )
        return DEFAULT_PREFIX
    return prefix


def format_ordinal(ordinal: int) -> str:
    return f"{ordinal:02d}"


def compose_name(ordinal: int, prefix: str, suffix: str) -> str:
    return f"{format_ordinal(ordinal)}_{prefix}_{suffix}"


def to_local(timestamp: datetime, tz: ZoneInfo) -> datetime:
    """
    Express ``timestamp`` as naive local time in ``tz``.

    Naive input is taken to already be local to ``tz``.
    """
    if timestamp.tzinfo is None:
        return timestamp
    return timestamp.astimezone(tz).replace(tzinfo=None)


def now_local(tz: ZoneInfo) -> datetime:
    return datetime.now(tz).replace(tzinfo=None, microsecond=0)


def compute_pacing(
    virtual_users: int,
    requests_per_hour: float,
    requests_per_iteration: int = 1,
) -> float:
    """Seconds between iterations for each virtual user to hit the target rate."""
    if requests_per_hour <= 0:
        raise ValueError("requests_per_hour must be positive")
    return virtual_users * SECONDS_PER_HOUR * requests_per_iteration / requests_per_hour


def draft_test_log(
    *,
    project: str,
    test_type: str,
    test_name: str,
    purpose: str,
    tester: str,
    timestamp: datetime,
    tz: ZoneInfo,
) -> LogDraft:
    return LogDraft(
        project=project,
        type=test_type,
        prefix=resolve_prefix(test_type),
        suffix=test_name,
        purpose=purpose,
        timestamp=to_local(timestamp, tz),
        tester=tester,
    )


def draft_pacing_config(
    *,
    project: str,
    virtual_users: int,
    tz: ZoneInfo,
    pacing: Optional[float] = None,
    requests_per_hour: Optional[float] = None,
    requests_per_iteration: int = 1,
    script: Optional[str] = None,
    label: Optional[str] = None,
    tester: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> LogDraft:
    if pacing is None:
        if requests_per_hour is None:
            raise ValueError("either pacing or requests_per_hour is required")
        pacing = compute_pacing(virtual_users, requests_per_hour, requests_per_iteration)

    parts = [f"Pacing: {pacing:.1f} s", f"VU: {virtual_users}"]
    if requests_per_hour is not None:
        parts.append(f"Mål: {requests_per_hour:g} req/h")
    if requests_per_iteration != 1:
        parts.append(f"Req/iteration: {requests_per_iteration}")
    if script:
        parts.append(f"Skript: {script}")

    return LogDraft(
        project=project,
        type=CONFIG_TYPE,
        prefix=PACING_PREFIX,
        suffix=label or PACING_SUFFIX,
        purpose=" | ".join(parts),
        timestamp=to_local(timestamp, tz) if timestamp else now_local(tz),
        tester=tester,
    )


def draft_general_config(
    *,
    project: str,
    description: str,
    tz: ZoneInfo,
    label: Optional[str] = None,
    tester: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> LogDraft:
    return LogDraft(
        project=project,
        type=CONFIG_TYPE,
        prefix=GENERAL_PREFIX,
        suffix=label or GENERAL_SUFFIX,
        purpose=description,
        timestamp=to_local(timestamp, tz) if timestamp else now_local(tz),
        tester=tester,
    )
