"""Route Dependencies — hand the shared database handle and auditor to each request.

Invariants:
    - The DatabaseManager is read from app.state (set by the lifespan), never a global
    - A fresh LighthouseAuditor per request, configured from Settings

Design Decisions:
    - FastAPI Depends over implicit imports: tests swap implementations via
      app.dependency_overrides
"""

from fastapi import Depends, Request

from speedster.config import Settings, get_settings
from speedster.infrastructure.database import DatabaseManager, ScanRepository
from speedster.infrastructure.lighthouse import LighthouseAuditor


def get_database(request: Request) -> DatabaseManager:
    manager = getattr(request.app.state, "db", None)
    if manager is None:
        raise RuntimeError("Database not initialized")
    return manager


def get_scan_repository(
    db: DatabaseManager = Depends(get_database),
) -> ScanRepository:
    return db.scans()


def get_auditor(settings: Settings = Depends(get_settings)) -> LighthouseAuditor:
    return LighthouseAuditor(
        reports_dir=settings.reports_dir,
        binary=settings.lighthouse_binary,
        chrome_flags=settings.lighthouse_chrome_flags,
        timeout_seconds=settings.lighthouse_timeout_seconds,
    )
