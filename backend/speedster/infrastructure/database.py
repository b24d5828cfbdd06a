"""Database Gateway — MongoDB connection manager and the scans collection repository.

Invariants:
    - All driver exceptions mapped to DatabaseError (core/errors.py)
    - Malformed ids rejected before any database round-trip
    - list_all() never returns None; empty collection yields []
    - A delete removes at most one document; more than one is reported, never ignored
    - Initial connect verified with a ping; failure aborts startup

Design Decisions:
    - motor (async pymongo) so handlers stay on the event loop during queries
    - DatabaseManager lives on app.state, handed to routes via a dependency,
      no module-level singleton
    - tz_aware client: stored datetimes come back as UTC-aware, equal to what was inserted
"""

import asyncio
import logging

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from speedster.core.errors import (
    DatabaseError,
    DuplicateDeleteError,
    ErrorContext,
    InvalidScanIdError,
    ScanNotFoundError,
)
from speedster.models.scan import Scan

logger = logging.getLogger(__name__)


def parse_scan_id(raw_id: str) -> ObjectId:
    """24 hex chars → ObjectId, else InvalidScanIdError."""
    try:
        return ObjectId(raw_id)
    except (InvalidId, TypeError):
        raise InvalidScanIdError(raw_id)


class ScanRepository:
    """find-all / find-by-id / insert / delete-by-id over one collection."""

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        insert_timeout_seconds: float | None = 5.0,
    ):
        self._collection = collection
        self.insert_timeout_seconds = insert_timeout_seconds

    async def list_all(self) -> list[Scan]:
        try:
            docs = await self._collection.find({}).to_list(length=None)
        except PyMongoError as e:
            logger.error(f"DB find error: {e}")
            raise DatabaseError(str(e), "find")
        return [Scan.from_document(doc) for doc in docs]

    async def insert(self, scan: Scan) -> None:
        ctx = ErrorContext(scan_id=str(scan.id), url=scan.url)
        try:
            await asyncio.wait_for(
                self._collection.insert_one(scan.to_document()),
                timeout=self.insert_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                "DB insert timed out", extra={"scan_id": str(scan.id)},
            )
            raise DatabaseError(
                f"timed out after {self.insert_timeout_seconds}s", "insert", ctx,
            )
        except PyMongoError as e:
            logger.error(f"DB insert error: {e}", extra={"scan_id": str(scan.id)})
            raise DatabaseError(str(e), "insert", ctx)

    async def find_by_id(self, raw_id: str) -> Scan:
        oid = parse_scan_id(raw_id)
        try:
            doc = await self._collection.find_one({"_id": oid})
        except PyMongoError as e:
            logger.error(f"DB find_one error: {e}", extra={"scan_id": raw_id})
            raise DatabaseError(str(e), "find")
        if doc is None:
            raise ScanNotFoundError(raw_id)
        return Scan.from_document(doc)

    async def delete_by_id(self, raw_id: str) -> None:
        oid = parse_scan_id(raw_id)
        try:
            result = await self._collection.delete_one({"_id": oid})
        except PyMongoError as e:
            logger.error(f"DB delete error: {e}", extra={"scan_id": raw_id})
            raise DatabaseError(str(e), "delete")
        if result.deleted_count == 1:
            return
        if result.deleted_count == 0:
            raise ScanNotFoundError(raw_id)
        logger.critical(
            f"Delete by id removed {result.deleted_count} documents",
            extra={"scan_id": raw_id},
        )
        raise DuplicateDeleteError(result.deleted_count)


class DatabaseManager:
    """Owns the motor client for the lifetime of the process."""

    def __init__(
        self,
        client: AsyncIOMotorClient,
        database: str,
        collection: str,
        insert_timeout_seconds: float | None = 5.0,
    ):
        self.client = client
        self.database = database
        self.collection = collection
        self.insert_timeout_seconds = insert_timeout_seconds

    @classmethod
    async def connect(
        cls,
        uri: str,
        database: str = "speedster",
        collection: str = "scans",
        connect_timeout_seconds: float = 20.0,
        insert_timeout_seconds: float | None = 5.0,
    ) -> "DatabaseManager":
        """Create the client and verify the server answers a ping."""
        client = None
        try:
            client = AsyncIOMotorClient(
                uri,
                tz_aware=True,
                serverSelectionTimeoutMS=int(connect_timeout_seconds * 1000),
            )
            await asyncio.wait_for(
                client.admin.command("ping"), timeout=connect_timeout_seconds,
            )
        except asyncio.TimeoutError:
            if client is not None:
                client.close()
            logger.error("MongoDB connect timed out")
            raise DatabaseError(
                f"timed out after {connect_timeout_seconds}s", "connect",
            )
        except PyMongoError as e:
            if client is not None:
                client.close()
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise DatabaseError(str(e), "connect")
        logger.info(f"Connected to MongoDB database: {database}")
        return cls(client, database, collection, insert_timeout_seconds)

    def scans(self) -> ScanRepository:
        return ScanRepository(
            self.client[self.database][self.collection],
            insert_timeout_seconds=self.insert_timeout_seconds,
        )

    async def health_check(self) -> bool:
        """Check database connectivity (for readiness probes)."""
        try:
            await self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"DB health check failed: {e}")
            return False

    def close(self) -> None:
        self.client.close()
        logger.info("Disconnected from MongoDB")
