"""Root conftest — shared test configuration and an in-memory scans collection.

Invariants:
    - Tests never reach a real mongod or a real lighthouse binary
    - FakeCollection mirrors the motor calls ScanRepository makes, in insertion order
"""

import os

import pytest
from pymongo.errors import DuplicateKeyError

os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("LOG_FORMAT", "text")


class _FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    async def to_list(self, length=None):
        return list(self._docs)


class _DeleteResult:
    def __init__(self, deleted_count):
        self.deleted_count = deleted_count


class FakeCollection:
    """Stand-in for AsyncIOMotorCollection.

    - calls: names of every driver method invoked
    - fail_with: exception raised by the next and all later driver calls
    - delete_count_override: forces delete_one's deleted_count
    """

    def __init__(self):
        self.docs: dict = {}
        self.calls: list[str] = []
        self.fail_with: Exception | None = None
        self.delete_count_override: int | None = None

    def _record(self, name):
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    def find(self, query):
        self._record("find")
        return _FakeCursor([dict(doc) for doc in self.docs.values()])

    async def insert_one(self, doc):
        self._record("insert_one")
        if doc["_id"] in self.docs:
            raise DuplicateKeyError("E11000 duplicate key error collection: speedster.scans")
        self.docs[doc["_id"]] = dict(doc)

    async def find_one(self, query):
        self._record("find_one")
        doc = self.docs.get(query["_id"])
        return dict(doc) if doc is not None else None

    async def delete_one(self, query):
        self._record("delete_one")
        removed = self.docs.pop(query["_id"], None)
        if self.delete_count_override is not None:
            return _DeleteResult(self.delete_count_override)
        return _DeleteResult(0 if removed is None else 1)


@pytest.fixture
def fake_collection():
    return FakeCollection()
