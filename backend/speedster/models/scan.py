"""Scan Record — one Lighthouse audit as stored in MongoDB.

Invariants:
    - id is a server-generated ObjectId, stored as _id, never changes
    - created_at is timezone-aware UTC, truncated to milliseconds (BSON datetime precision)
    - Records are never updated after insert: only read or deleted

Design Decisions:
    - Plain dataclass over an ODM: one collection, four operations, no schema migrations
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from bson import ObjectId

# Zero value of a scan, returned by a successful delete
_ZERO_OBJECT_ID = ObjectId("0" * 24)
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def _now_millis() -> datetime:
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond - now.microsecond % 1000)


@dataclass
class Scan:
    """A persisted audit of one URL, with raw report payloads."""
    id: ObjectId = field(default_factory=ObjectId)
    url: str = ""
    json: str = ""
    html: str = ""
    created_at: datetime = field(default_factory=_now_millis)

    @classmethod
    def new(cls, url: str) -> "Scan":
        """Fresh scan with server-assigned id and timestamp, reports still empty."""
        return cls(url=url)

    @classmethod
    def empty(cls) -> "Scan":
        return cls(id=_ZERO_OBJECT_ID, created_at=_ZERO_TIME)

    def to_document(self) -> dict:
        return {
            "_id": self.id,
            "url": self.url,
            "json": self.json,
            "html": self.html,
            "created_at": self.created_at,
        }

    @classmethod
    def from_document(cls, doc: dict) -> "Scan":
        created_at = doc.get("created_at") or _ZERO_TIME
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            id=doc["_id"],
            url=doc.get("url", ""),
            json=doc.get("json", ""),
            html=doc.get("html", ""),
            created_at=created_at,
        )
