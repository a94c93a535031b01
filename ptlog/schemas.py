"""
Pydantic schemas for the PT-Log HTTP API.

Field aliases keep the legacy JSON field names (``Projekt``, ``Testnamn`` ...).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class ProjectPayload(_Payload):
    project: str = Field(..., alias="Projekt", min_length=1, max_length=200)


class InsertLogRequest(_Payload):
    timestamp: datetime = Field(..., alias="Datum")
    type: str = Field(..., alias="Typ", min_length=1, max_length=100)
    test_name: str = Field(..., alias="Testnamn", min_length=1, max_length=300)
    purpose: str = Field(..., alias="Syfte", min_length=1, max_length=4000)
    project: str = Field(..., alias="Projekt", min_length=1, max_length=200)
    tester: str = Field(..., alias="Testare", min_length=1, max_length=200)


class InsertPacingRequest(_Payload):
    project: str = Field(..., alias="Projekt", min_length=1, max_length=200)
    label: Optional[str] = Field(default=None, alias="Testnamn", max_length=300)
    requests_per_hour: Optional[float] = Field(default=None, alias="RequestsPerHour", gt=0)
    requests_per_iteration: int = Field(default=1, alias="RequestsPerIteration", ge=1)
    virtual_users: int = Field(..., alias="VirtualUsers", ge=1)
    pacing: Optional[float] = Field(default=None, alias="Pacing", gt=0)
    script: Optional[str] = Field(default=None, alias="Script", max_length=500)
    tester: Optional[str] = Field(default=None, alias="Testare", max_length=200)

    @model_validator(mode="after")
    def require_pacing_or_target(self) -> "InsertPacingRequest":
        if self.pacing is None and self.requests_per_hour is None:
            raise ValueError("Pacing or RequestsPerHour is required")
        return self


class InsertConfigRequest(_Payload):
    project: str = Field(..., alias="Projekt", min_length=1, max_length=200)
    description: str = Field(..., alias="Beskrivning", min_length=1, max_length=4000)
    label: Optional[str] = Field(default=None, alias="Testnamn", max_length=300)
    tester: Optional[str] = Field(default=None, alias="Testare", max_length=200)


class UpdateAnalysisRequest(_Payload):
    project: str = Field(..., alias="Projekt", min_length=1)
    test_name: str = Field(..., alias="Testnamn", min_length=1)
    analysis: str = Field(..., alias="Analys")


class LogEntryResponse(BaseModel):
    Datum: str
    Typ: str
    Testnamn: str
    Syfte: str
    Analys: Optional[str] = None
    Projekt: str
    Testare: Optional[str] = None


class InsertLogResponse(BaseModel):
    message: str
    testnamn: str


class RowsResponse(BaseModel):
    message: str
    rows: int


class HealthResponse(BaseModel):
    status: str
    service: str
