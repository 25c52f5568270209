"""SQLite store for version markers and ingested documents."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from confsync.models import RepositoryDocument


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


class SQLiteDocumentStore:
    """Persistence layer standing in for the host crawl database.

    Keeps one row per document id with its opaque version marker and the last
    ingested record, plus a history of processing activity.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    id INTEGER PRIMARY KEY,
                    doc_id TEXT NOT NULL UNIQUE,
                    version TEXT NOT NULL,
                    uri TEXT,
                    title TEXT,
                    space TEXT,
                    mime_type TEXT,
                    metadata TEXT,
                    acl TEXT,
                    deny_acl TEXT,
                    body BLOB,
                    size INTEGER NOT NULL DEFAULT 0,
                    indexed_at TEXT,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TRIGGER IF NOT EXISTS documents_updated
                AFTER UPDATE ON documents
                BEGIN
                    UPDATE documents SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.id;
                END;
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS activity (
                    id INTEGER PRIMARY KEY,
                    doc_id TEXT NOT NULL,
                    activity TEXT NOT NULL,
                    result TEXT NOT NULL,
                    size INTEGER,
                    started_at REAL NOT NULL,
                    recorded_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_activity_doc_id
                    ON activity(doc_id)
                """
            )

    def versions(self, doc_ids: Iterable[str]) -> Dict[str, Optional[str]]:
        """Return the stored version marker for each id (``None`` if unknown)."""
        ids = list(doc_ids)
        found: Dict[str, Optional[str]] = dict.fromkeys(ids)
        for start in range(0, len(ids), 500):
            batch = ids[start : start + 500]
            placeholders = ",".join("?" * len(batch))
            rows = self._conn.execute(
                f"SELECT doc_id, version FROM documents WHERE doc_id IN ({placeholders})",
                batch,
            ).fetchall()
            for row in rows:
                found[row["doc_id"]] = row["version"]
        return found

    def upsert_document(
        self, doc_id: str, version: str, uri: str, record: RepositoryDocument
    ) -> str:
        """Store ``record`` under ``doc_id``.

        Returns 'inserted' for a new document, 'updated' otherwise.
        """
        with self.transaction() as conn:
            existing = conn.execute(
                "SELECT id FROM documents WHERE doc_id = ?", (doc_id,)
            ).fetchone()
            values = (
                version,
                uri,
                record.metadata.get("title", ""),
                record.metadata.get("space", ""),
                record.mime_type,
                json.dumps(record.metadata, ensure_ascii=True, sort_keys=True),
                json.dumps(list(record.acl)),
                json.dumps(list(record.deny_acl)),
                sqlite3.Binary(record.binary),
                record.length,
                _isoformat(record.indexed_at),
            )
            if existing:
                conn.execute(
                    """
                    UPDATE documents
                    SET version = ?, uri = ?, title = ?, space = ?, mime_type = ?,
                        metadata = ?, acl = ?, deny_acl = ?, body = ?, size = ?, indexed_at = ?
                    WHERE doc_id = ?
                    """,
                    (*values, doc_id),
                )
                return "updated"
            conn.execute(
                """
                INSERT INTO documents(
                    version, uri, title, space, mime_type,
                    metadata, acl, deny_acl, body, size, indexed_at, doc_id
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (*values, doc_id),
            )
            return "inserted"

    # ProcessActivity callbacks

    def ingest(self, doc_id: str, version: str, uri: str, record: RepositoryDocument) -> None:
        self.upsert_document(doc_id, version, uri, record)

    def retain(self, doc_id: str) -> None:
        """Nothing changed; the stored row is kept as is."""

    def delete(self, doc_id: str) -> None:
        self.delete_document(doc_id)

    def record_activity(
        self, doc_id: str, activity: str, result: str, size: Optional[int], started_at: float
    ) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO activity(doc_id, activity, result, size, started_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (doc_id, activity, result, size, started_at),
            )

    def delete_document(self, doc_id: str) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM documents WHERE doc_id = ?", (doc_id,))
        return cursor.rowcount > 0

    def remove_unseen(self, seen_ids: Iterable[str], space: Optional[str] = None) -> int:
        """Remove documents that are not in ``seen_ids``.

        With ``space`` set, only documents of that space are candidates.
        """
        with self.transaction() as conn:
            conn.execute("CREATE TEMP TABLE IF NOT EXISTS seen (doc_id TEXT PRIMARY KEY)")
            conn.execute("DELETE FROM seen")
            conn.executemany(
                "INSERT OR IGNORE INTO seen(doc_id) VALUES (?)",
                ((doc_id,) for doc_id in seen_ids),
            )
            if space is None:
                cursor = conn.execute(
                    "DELETE FROM documents WHERE doc_id NOT IN (SELECT doc_id FROM seen)"
                )
            else:
                cursor = conn.execute(
                    """
                    DELETE FROM documents
                    WHERE space = ? AND doc_id NOT IN (SELECT doc_id FROM seen)
                    """,
                    (space,),
                )
            conn.execute("DELETE FROM seen")
        return cursor.rowcount

    def get_document(self, doc_id: str) -> Optional[Dict[str, Any]]:
        row = self._conn.execute(
            "SELECT * FROM documents WHERE doc_id = ?", (doc_id,)
        ).fetchone()
        return self._row_to_document(row) if row else None

    def iter_documents(self) -> Iterator[Dict[str, Any]]:
        for row in self._conn.execute("SELECT * FROM documents ORDER BY doc_id"):
            yield self._row_to_document(row)

    def list_documents(self) -> List[Dict[str, Any]]:
        rows = self._conn.execute(
            """
            SELECT doc_id, title, space, uri, version, mime_type, size, indexed_at
            FROM documents
            ORDER BY doc_id
            """
        ).fetchall()
        return [dict(row) for row in rows]

    def get_stats(self) -> Dict[str, int]:
        row = self._conn.execute(
            """
            SELECT COUNT(*) AS document_count,
                   COUNT(DISTINCT space) AS space_count,
                   COALESCE(SUM(size), 0) AS total_size_bytes
            FROM documents
            """
        ).fetchone()
        return dict(row)

    @staticmethod
    def _row_to_document(row: sqlite3.Row) -> Dict[str, Any]:
        return {
            "doc_id": row["doc_id"],
            "version": row["version"],
            "uri": row["uri"],
            "title": row["title"],
            "space": row["space"],
            "mime_type": row["mime_type"],
            "metadata": json.loads(row["metadata"]) if row["metadata"] else {},
            "acl": json.loads(row["acl"]) if row["acl"] else [],
            "deny_acl": json.loads(row["deny_acl"]) if row["deny_acl"] else [],
            "body": bytes(row["body"]) if row["body"] is not None else b"",
            "size": row["size"],
            "indexed_at": row["indexed_at"],
        }
