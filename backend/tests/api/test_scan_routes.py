"""Scan Routes — end-to-end behavior of /scans through FastAPI.

Invariants:
    - POST assigns a fresh id per call and returns the stored record
    - GET after POST returns the identical record
    - DELETE then GET yields not-found; DELETE answers with the empty scan
    - Every failure is 400 (413 for oversized bodies) with a plain-text body
    - Every response has a JSON content type
"""

import asyncio

from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from speedster.config import Settings, get_settings
from speedster.core.domain_types import AuditFailure
from speedster.infrastructure.lighthouse import AuditOutcome
from speedster.main import app

URL = "https://example.com"


async def _create(client, url=URL):
    res = await client.post("/scans", json={"url": url})
    assert res.status_code == 200, res.text
    return res.json()


# -- list ----------------------------------------------------------------------

async def test_list_empty_returns_empty_array(client):
    res = await client.get("/scans")
    assert res.status_code == 200
    assert res.json() == []
    assert res.headers["content-type"] == "application/json"


async def test_list_returns_created_scans(client):
    a = await _create(client, "https://a.example")
    b = await _create(client, "https://b.example")

    res = await client.get("/scans")

    assert res.json() == [a, b]


async def test_list_driver_failure_is_400(client, fake_collection):
    fake_collection.fail_with = ServerSelectionTimeoutError("connection refused")
    res = await client.get("/scans")
    assert res.status_code == 400
    assert "connection refused" in res.text


# -- create --------------------------------------------------------------------

async def test_create_returns_record_with_reports(client, auditor):
    scan = await _create(client)

    assert set(scan) == {"id", "url", "json", "html", "created_at"}
    assert scan["url"] == URL
    assert scan["json"] == auditor.outcome.json
    assert scan["html"] == auditor.outcome.html
    assert ObjectId.is_valid(scan["id"])


async def test_create_generates_unique_ids(client):
    ids = {(await _create(client))["id"] for _ in range(5)}
    assert len(ids) == 5


async def test_create_uses_per_scan_report_path(client, auditor):
    first = await _create(client)
    second = await _create(client)

    prefixes = [prefix for _, prefix in auditor.runs]
    assert prefixes[0].endswith(first["id"])
    assert prefixes[1].endswith(second["id"])
    assert auditor.runs[0][0] == URL


async def test_create_persists_record(client, fake_collection):
    scan = await _create(client)
    assert ObjectId(scan["id"]) in fake_collection.docs


async def test_create_with_empty_body_is_400(client, auditor):
    res = await client.post("/scans", content=b"")
    assert res.status_code == 400
    assert res.text == "Request body must not be empty"
    assert res.headers["content-type"] == "application/json"
    assert auditor.runs == []


async def test_create_with_unknown_field_is_400(client, fake_collection):
    res = await client.post("/scans", content=b'{"url": "x", "extra": 1}')
    assert res.status_code == 400
    assert res.text == 'Request body contains unknown field "extra"'
    assert fake_collection.docs == {}


async def test_create_with_malformed_json_is_400(client):
    res = await client.post("/scans", content=b'{"url": }')
    assert res.status_code == 400
    assert res.text.startswith("Request body contains badly-formed JSON")


async def test_create_with_wrong_type_is_400(client):
    res = await client.post("/scans", content=b'{"url": 42}')
    assert res.status_code == 400
    assert '"url" field' in res.text


async def test_create_with_two_objects_is_400(client):
    res = await client.post("/scans", content=b'{"url": "a"} {"url": "b"}')
    assert res.status_code == 400
    assert res.text == "Request body must only contain a single JSON object"


async def test_create_with_oversized_body_is_413(client, auditor):
    body = b'{"url": "' + b"a" * 1_048_576 + b'"}'
    res = await client.post("/scans", content=body)
    assert res.status_code == 413
    assert res.text == "Request body must not be larger than 1MB"
    assert auditor.runs == []


async def test_create_with_oversized_chunked_body_is_413(client):
    async def chunks():
        yield b'{"url": "'
        for _ in range(17):
            yield b"a" * 65_536
        yield b'"}'

    res = await client.post("/scans", content=chunks())
    assert res.status_code == 413


async def test_failed_audit_is_persisted_with_empty_reports(client, auditor, fake_collection):
    auditor.outcome = AuditOutcome.failed(AuditFailure.PROCESS_FAILED, "exit status 1")

    scan = await _create(client)

    assert scan["json"] == ""
    assert scan["html"] == ""
    assert ObjectId(scan["id"]) in fake_collection.docs


async def test_failed_audit_rejected_when_not_persisting(client, auditor, fake_collection):
    auditor.outcome = AuditOutcome.failed(AuditFailure.ARTIFACT_MISSING, "/tmp/x.report.html")
    app.dependency_overrides[get_settings] = lambda: Settings(persist_failed_audits=False)

    res = await client.post("/scans", json={"url": URL})

    assert res.status_code == 400
    assert res.text == "Lighthouse report missing: /tmp/x.report.html"
    assert fake_collection.docs == {}


async def test_insert_failure_is_400(client, fake_collection):
    fake_collection.fail_with = ServerSelectionTimeoutError("no primary available")
    res = await client.post("/scans", json={"url": URL})
    assert res.status_code == 400
    assert res.text.startswith("Database insert failed:")


# -- get -----------------------------------------------------------------------

async def test_get_after_post_returns_identical_record(client):
    created = await _create(client)

    res = await client.get(f"/scans/{created['id']}")

    assert res.status_code == 200
    assert res.json() == created


async def test_get_unknown_id_is_400(client):
    missing = str(ObjectId())
    res = await client.get(f"/scans/{missing}")
    assert res.status_code == 400
    assert res.text == f"Scan with id {missing} did not exist"
    assert res.headers["content-type"] == "application/json"


async def test_get_malformed_id_is_400(client, fake_collection):
    res = await client.get("/scans/not-an-id")
    assert res.status_code == 400
    assert res.text == "Invalid id: not-an-id"
    assert fake_collection.calls == []


# -- delete --------------------------------------------------------------------

async def test_delete_returns_empty_scan(client):
    created = await _create(client)

    res = await client.delete(f"/scans/{created['id']}")

    assert res.status_code == 200
    body = res.json()
    assert body["id"] == "000000000000000000000000"
    assert (body["url"], body["json"], body["html"]) == ("", "", "")
    assert body["created_at"].startswith("0001-01-01T00:00:00")


async def test_delete_then_get_is_not_found(client):
    created = await _create(client)
    await client.delete(f"/scans/{created['id']}")

    res = await client.get(f"/scans/{created['id']}")

    assert res.status_code == 400
    assert "did not exist" in res.text


async def test_delete_malformed_id_skips_database(client, fake_collection):
    res = await client.delete("/scans/12345")
    assert res.status_code == 400
    assert res.text == "Invalid id: 12345"
    assert fake_collection.calls == []


async def test_delete_unknown_id_is_400(client):
    missing = str(ObjectId())
    res = await client.delete(f"/scans/{missing}")
    assert res.status_code == 400
    assert res.text == f"Scan with id {missing} did not exist"


async def test_delete_removing_many_is_400(client, fake_collection):
    created = await _create(client)
    fake_collection.delete_count_override = 3

    res = await client.delete(f"/scans/{created['id']}")

    assert res.status_code == 400
    assert res.text == "Multiple scans were deleted. Contact support."


async def test_concurrent_deletes_exactly_one_succeeds(client):
    created = await _create(client)

    first, second = await asyncio.gather(
        client.delete(f"/scans/{created['id']}"),
        client.delete(f"/scans/{created['id']}"),
    )

    assert sorted([first.status_code, second.status_code]) == [200, 400]
