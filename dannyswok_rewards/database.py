"""SQLite-backed document store for dannyswok-rewards.

Each public method is async and wraps a synchronous inner function via
asyncio.run_in_executor(None, _sync). A new connection is created per call
(WAL mode, 30s busy timeout, Row factory). Documents are stored as JSON in a
single table keyed by (collection, _id), and each collection exposes a small
Mongo-like surface: find_one, insert_one, insert_if_absent, update_one and find.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import sqlite3
import uuid
import weakref
from typing import Any, Callable


def _matches(doc: dict, filter_: dict | None) -> bool:
    """Top-level equality match. ``_id`` values are compared as strings."""
    if not filter_:
        return True
    for key, expected in filter_.items():
        if key == "_id":
            if str(doc.get("_id")) != str(expected):
                return False
        elif doc.get(key) != expected:
            return False
    return True


class DocumentCollection:
    """A named collection of JSON documents."""

    def __init__(self, store: DocumentStore, name: str) -> None:
        self._store = store
        self.name = name

    async def find_one(self, filter_: dict) -> dict | None:
        """Return the first document matching *filter_*, or None."""
        loop = asyncio.get_running_loop()

        def _sync() -> dict | None:
            conn = self._store._get_connection()
            try:
                return self._find_one_sync(conn, filter_)
            finally:
                conn.close()

        return await loop.run_in_executor(None, _sync)

    async def insert_one(self, doc: dict) -> str:
        """Insert *doc*, assigning an ``_id`` when absent. Returns the id.

        Inserting over an existing id replaces the stored document.
        """
        loop = asyncio.get_running_loop()
        record = dict(doc)
        record.setdefault("_id", uuid.uuid4().hex)
        doc_id = str(record["_id"])

        def _sync() -> str:
            conn = self._store._get_connection()
            try:
                conn.execute(
                    "INSERT OR REPLACE INTO documents (collection, id, body) VALUES (?, ?, ?)",
                    (self.name, doc_id, json.dumps(record)),
                )
                conn.commit()
                return doc_id
            finally:
                conn.close()

        result = await loop.run_in_executor(None, _sync)
        self._store._logger.debug("Inserted %s/%s", self.name, doc_id)
        return result

    async def insert_if_absent(self, doc: dict) -> tuple[dict, bool]:
        """Insert *doc* unless its ``_id`` already exists.

        Returns ``(stored_doc, created)``. The stored document is read back
        on the same connection, so a concurrent writer's version is never
        replaced.
        """
        loop = asyncio.get_running_loop()
        record = dict(doc)
        record.setdefault("_id", uuid.uuid4().hex)
        doc_id = str(record["_id"])

        def _sync() -> tuple[dict, bool]:
            conn = self._store._get_connection()
            try:
                cursor = conn.execute(
                    "INSERT OR IGNORE INTO documents (collection, id, body) VALUES (?, ?, ?)",
                    (self.name, doc_id, json.dumps(record)),
                )
                conn.commit()
                if cursor.rowcount == 1:
                    return record, True
                row = conn.execute(
                    "SELECT body FROM documents WHERE collection = ? AND id = ?",
                    (self.name, doc_id),
                ).fetchone()
                return json.loads(row["body"]), False
            finally:
                conn.close()

        return await loop.run_in_executor(None, _sync)

    async def update_one(self, filter_: dict, update: dict) -> int:
        """Apply a ``$set`` update to the first matching document.

        Returns the number of modified documents (0 or 1).
        """
        loop = asyncio.get_running_loop()
        changes = update.get("$set") or {}

        def _sync() -> int:
            conn = self._store._get_connection()
            try:
                doc = self._find_one_sync(conn, filter_)
                if doc is None:
                    return 0
                merged = {**doc, **changes, "_id": doc["_id"]}
                conn.execute(
                    "UPDATE documents SET body = ? WHERE collection = ? AND id = ?",
                    (json.dumps(merged), self.name, str(doc["_id"])),
                )
                conn.commit()
                return 1
            finally:
                conn.close()

        return await loop.run_in_executor(None, _sync)

    async def find(self, filter_: dict | None = None) -> list[dict]:
        """Return every document matching *filter_*, in insertion order."""
        loop = asyncio.get_running_loop()

        def _sync() -> list[dict]:
            conn = self._store._get_connection()
            try:
                rows = conn.execute(
                    "SELECT body FROM documents WHERE collection = ? ORDER BY rowid",
                    (self.name,),
                ).fetchall()
                docs = [json.loads(row["body"]) for row in rows]
                return [d for d in docs if _matches(d, filter_)]
            finally:
                conn.close()

        return await loop.run_in_executor(None, _sync)

    def _find_one_sync(self, conn: sqlite3.Connection, filter_: dict) -> dict | None:
        if "_id" in filter_:
            row = conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND id = ?",
                (self.name, str(filter_["_id"])),
            ).fetchone()
            if row is None:
                return None
            doc = json.loads(row["body"])
            return doc if _matches(doc, filter_) else None

        for row in conn.execute(
            "SELECT body FROM documents WHERE collection = ? ORDER BY rowid",
            (self.name,),
        ):
            doc = json.loads(row["body"])
            if _matches(doc, filter_):
                return doc
        return None


class DocumentStore:
    """SQLite-backed persistence for the rewards service."""

    def __init__(self, db_path: str, logger: logging.Logger) -> None:
        self._db_path = db_path
        self._logger = logger
        self._collections: dict[str, DocumentCollection] = {}
        # {(collection, id): lock}; entries vanish once no coroutine holds the lock
        self._locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _get_connection(self) -> sqlite3.Connection:
        """Create a new SQLite connection with standard settings."""
        conn = sqlite3.connect(self._db_path, timeout=30)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=30000")
        conn.row_factory = sqlite3.Row
        return conn

    # ══════════════════════════════════════════════════════════
    #  Initialization
    # ══════════════════════════════════════════════════════════

    async def initialize(self) -> None:
        """Create the documents table. Idempotent."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._create_tables)

    def _create_tables(self) -> None:
        conn = self._get_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    body TEXT NOT NULL,
                    PRIMARY KEY (collection, id)
                )
            """)
            conn.commit()
        finally:
            conn.close()

    # ══════════════════════════════════════════════════════════
    #  Collections
    # ══════════════════════════════════════════════════════════

    def get_collection(self, name: str) -> DocumentCollection:
        if name not in self._collections:
            self._collections[name] = DocumentCollection(self, name)
        return self._collections[name]

    def lock(self, collection: str, doc_id: str) -> asyncio.Lock:
        """Return the in-process lock guarding one document."""
        key = (collection, str(doc_id))
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def ensure_document(
        self,
        collection_name: str,
        doc_id: str,
        defaults_factory: Callable[[], dict[str, Any]],
    ) -> tuple[DocumentCollection, dict]:
        """Return ``(collection, doc)``, inserting the defaults if missing."""
        collection = self.get_collection(collection_name)
        doc = await collection.find_one({"_id": doc_id})
        if doc is None:
            doc, created = await collection.insert_if_absent(
                {"_id": doc_id, **copy.deepcopy(defaults_factory())},
            )
            if created:
                self._logger.info("Created %s/%s from defaults", collection_name, doc_id)
        return collection, doc
