"""API test fixtures — FastAPI client wired to FakeCollection and a scripted auditor.

Invariants:
    - get_scan_repository overridden with a real ScanRepository over FakeCollection
    - get_auditor overridden: no lighthouse process is ever spawned
    - Lifespan not run (httpx ASGITransport), so no mongod connection is attempted

Design Decisions:
    - Override dependencies rather than patch modules: the routes run unchanged
"""

import pytest
from httpx import ASGITransport, AsyncClient

from speedster.api.dependencies import get_auditor, get_scan_repository
from speedster.infrastructure.database import ScanRepository
from speedster.infrastructure.lighthouse import AuditOutcome, LighthouseAuditor
from speedster.main import app

JSON_REPORT = '{"lighthouseVersion": "12.0.0", "categories": {"performance": {"score": 0.93}}}'
HTML_REPORT = "<!doctype html><html><body>Lighthouse Report</body></html>"


class ScriptedAuditor(LighthouseAuditor):
    """Returns `outcome` for every run and records (url, output_prefix)."""

    def __init__(self):
        super().__init__(reports_dir="/tmp/speedster-test-reports")
        self.outcome = AuditOutcome(json=JSON_REPORT, html=HTML_REPORT)
        self.runs: list[tuple[str, str]] = []

    def run(self, url: str, output_prefix: str) -> AuditOutcome:
        self.runs.append((url, output_prefix))
        return self.outcome


@pytest.fixture
def auditor():
    return ScriptedAuditor()


@pytest.fixture
async def client(fake_collection, auditor):
    repo = ScanRepository(fake_collection)
    app.dependency_overrides[get_scan_repository] = lambda: repo
    app.dependency_overrides[get_auditor] = lambda: auditor

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
