"""Scan Schemas — Pydantic models for the /scans request and response bodies.

Invariants:
    - ScanCreate accepts only `url`; any other field is rejected (extra="forbid")
    - ScanCreate is strict: a non-string url is a type mismatch, never coerced
    - ScanResponse mirrors the stored record field-for-field, id as 24-char hex

Design Decisions:
    - json_report aliased to "json": a field literally named json shadows BaseModel.json
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from speedster.models.scan import Scan


class ScanCreate(BaseModel):
    """Client-settable part of a scan."""
    model_config = ConfigDict(extra="forbid", strict=True)

    url: str = ""


class ScanResponse(BaseModel):
    """Public form of a stored scan."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    url: str
    json_report: str = Field(alias="json")
    html: str
    created_at: datetime

    @classmethod
    def from_scan(cls, scan: Scan) -> "ScanResponse":
        return cls(
            id=str(scan.id),
            url=scan.url,
            json_report=scan.json,
            html=scan.html,
            created_at=scan.created_at,
        )
