from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

LOGGER = logging.getLogger(__name__)


class DocumentStore:
    """Collections of JSON documents keyed by (collection, doc_id), kept in SQLite."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = db_path
        if isinstance(db_path, Path):
            db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = sqlite3.connect(str(db_path), check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self._connection.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                doc_id TEXT NOT NULL,
                payload TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (collection, doc_id)
            )
            """
        )
        self._connection.commit()

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        cursor = self._connection.execute(
            """
            SELECT payload
            FROM documents
            WHERE collection = ? AND doc_id = ?
            """,
            (collection, doc_id),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return self._decode(collection, doc_id, row["payload"])

    def set(self, collection: str, doc_id: str, payload: dict[str, Any]) -> None:
        encoded = json.dumps(payload, ensure_ascii=False)
        now = datetime.now(timezone.utc).isoformat()
        self._connection.execute(
            """
            INSERT INTO documents (collection, doc_id, payload, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(collection, doc_id) DO UPDATE SET
                payload = excluded.payload,
                updated_at = excluded.updated_at
            """,
            (collection, doc_id, encoded, now),
        )
        self._connection.commit()

    def delete(self, collection: str, doc_id: str) -> bool:
        cursor = self._connection.execute(
            "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
            (collection, doc_id),
        )
        self._connection.commit()
        return cursor.rowcount > 0

    def list(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        cursor = self._connection.execute(
            """
            SELECT doc_id, payload
            FROM documents
            WHERE collection = ?
            ORDER BY doc_id
            """,
            (collection,),
        )
        documents: list[tuple[str, dict[str, Any]]] = []
        for row in cursor.fetchall():
            payload = self._decode(collection, row["doc_id"], row["payload"])
            if payload is not None:
                documents.append((row["doc_id"], payload))
        return documents

    def close(self) -> None:
        try:
            self._connection.close()
        except sqlite3.Error:
            LOGGER.exception("Failed to close document database connection")

    @staticmethod
    def _decode(collection: str, doc_id: str, raw: str) -> dict[str, Any] | None:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("Document payload is not valid JSON: collection=%s doc_id=%s", collection, doc_id)
            return None
        if not isinstance(payload, dict):
            return None
        return payload
