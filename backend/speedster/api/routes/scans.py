"""Scan Routes — list, create, fetch and delete audit records under /scans.

Invariants:
    - Handlers are stateless; every failure surfaces as a SpeedsterError
    - id and created_at are assigned before the audit runs; the id names the
      report files, so concurrent creations never collide
    - The blocking Lighthouse run happens in the thread pool, not on the event loop
    - Request body read incrementally, never more than max_body_bytes + 1 bytes

Design Decisions:
    - Body decoded by core/decode_request instead of a FastAPI body parameter:
      the error classification (413 vs 400 kinds) is part of the API contract
    - Failed audits still persisted with empty reports unless
      persist_failed_audits is off
"""

import logging

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from speedster.api.dependencies import get_auditor, get_scan_repository
from speedster.config import Settings, get_settings
from speedster.core.decode_request import body_too_large, decode_json_body
from speedster.core.domain_types import ScanId
from speedster.core.errors import ErrorContext
from speedster.infrastructure.database import ScanRepository
from speedster.infrastructure.lighthouse import LighthouseAuditor
from speedster.models.scan import Scan
from speedster.schemas.scan import ScanCreate, ScanResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/scans", tags=["scans"])


async def read_limited_body(request: Request, max_bytes: int) -> bytes:
    """Read at most max_bytes + 1 bytes; anything longer is oversized anyway."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise body_too_large(max_bytes)
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            break
    return bytes(body)


@router.get("", response_model=list[ScanResponse])
async def list_scans(repo: ScanRepository = Depends(get_scan_repository)):
    """List every stored scan."""
    scans = await repo.list_all()
    return [ScanResponse.from_scan(scan) for scan in scans]


@router.post("", response_model=ScanResponse)
async def create_scan(
    request: Request,
    repo: ScanRepository = Depends(get_scan_repository),
    auditor: LighthouseAuditor = Depends(get_auditor),
    settings: Settings = Depends(get_settings),
):
    """Audit a URL with Lighthouse and store both reports."""
    body = await read_limited_body(request, settings.max_body_bytes)
    payload = decode_json_body(body, ScanCreate, settings.max_body_bytes)

    scan = Scan.new(payload.url)
    scan_id = ScanId(str(scan.id))
    logger.info(
        "Decoded json from HTTP body", extra={"scan_id": scan_id, "url": scan.url},
    )

    outcome = await run_in_threadpool(
        auditor.run, scan.url, auditor.output_prefix(scan_id),
    )
    if not settings.persist_failed_audits:
        outcome.raise_for_failure(ErrorContext(scan_id=scan_id, url=scan.url))
    scan.json = outcome.json
    scan.html = outcome.html

    logger.info("Inserting scan", extra={"scan_id": scan_id, "url": scan.url})
    await repo.insert(scan)
    return ScanResponse.from_scan(scan)


@router.get("/{scan_id}", response_model=ScanResponse)
async def get_scan(
    scan_id: str, repo: ScanRepository = Depends(get_scan_repository),
):
    """Fetch one scan by id."""
    scan = await repo.find_by_id(scan_id)
    return ScanResponse.from_scan(scan)


@router.delete("/{scan_id}", response_model=ScanResponse)
async def delete_scan(
    scan_id: str, repo: ScanRepository = Depends(get_scan_repository),
):
    """Delete one scan by id; responds with an empty scan."""
    await repo.delete_by_id(scan_id)
    logger.info("Deleted scan", extra={"scan_id": scan_id})
    return ScanResponse.from_scan(Scan.empty())
