"""Tests for SQLiteDocumentStore."""

from datetime import datetime, timezone

import pytest

from confsync.index.storage import SQLiteDocumentStore
from confsync.models import RepositoryDocument


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary database for testing."""
    store = SQLiteDocumentStore(tmp_path / "test.db")
    yield store
    store.close()


def make_record(title="Release notes", space="DOC", body=b"<p>Hello</p>"):
    return RepositoryDocument(
        mime_type="text/html",
        binary=body,
        metadata={"title": title, "space": space},
        acl=(space,),
        deny_acl=("DEAD_AUTHORITY",),
        indexed_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class TestSchema:
    """Test store initialization and schema."""

    def test_init_creates_database(self, tmp_path):
        db_path = tmp_path / "new.db"
        assert not db_path.exists()

        store = SQLiteDocumentStore(db_path)

        assert db_path.exists()
        assert store.db_path == db_path
        store.close()

    def test_tables_exist(self, temp_db):
        names = {
            row["name"]
            for row in temp_db.connection.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }

        assert {"documents", "activity"} <= names

    def test_wal_mode(self, temp_db):
        mode = temp_db.connection.execute("PRAGMA journal_mode").fetchone()[0]

        assert mode.lower() == "wal"


class TestDocuments:
    """Test document upsert, lookup and removal."""

    def test_insert_then_update(self, temp_db):
        assert temp_db.upsert_document("42", "v1", "http://wiki/42", make_record()) == "inserted"
        assert temp_db.upsert_document("42", "v2", "http://wiki/42", make_record(title="New")) == "updated"

        document = temp_db.get_document("42")
        assert document["version"] == "v2"
        assert document["title"] == "New"
        assert document["acl"] == ["DOC"]
        assert document["deny_acl"] == ["DEAD_AUTHORITY"]
        assert document["body"] == b"<p>Hello</p>"

    def test_versions(self, temp_db):
        temp_db.upsert_document("42", "2020-01-01T00:00:00Z", "u", make_record())

        assert temp_db.versions(["42", "43"]) == {"42": "2020-01-01T00:00:00Z", "43": None}

    def test_versions_empty(self, temp_db):
        assert temp_db.versions([]) == {}

    def test_delete_document(self, temp_db):
        temp_db.upsert_document("42", "v1", "u", make_record())

        assert temp_db.delete_document("42")
        assert not temp_db.delete_document("42")
        assert temp_db.get_document("42") is None

    def test_remove_unseen(self, temp_db):
        for doc_id in ("1", "2", "3"):
            temp_db.upsert_document(doc_id, "v1", "u", make_record())

        removed = temp_db.remove_unseen(["1", "3"])

        assert removed == 1
        assert [doc["doc_id"] for doc in temp_db.list_documents()] == ["1", "3"]

    def test_remove_unseen_within_space(self, temp_db):
        temp_db.upsert_document("a1", "v1", "u", make_record(space="A"))
        temp_db.upsert_document("b1", "v1", "u", make_record(space="B"))
        temp_db.upsert_document("b2", "v1", "u", make_record(space="B"))

        removed = temp_db.remove_unseen(["b1"], space="B")

        assert removed == 1
        assert [doc["doc_id"] for doc in temp_db.list_documents()] == ["a1", "b1"]

    def test_stats(self, temp_db):
        temp_db.upsert_document("1", "v1", "u", make_record(space="DOC", body=b"abc"))
        temp_db.upsert_document("2", "v1", "u", make_record(space="ENG", body=b"de"))

        assert temp_db.get_stats() == {"document_count": 2, "space_count": 2, "total_size_bytes": 5}

    def test_stats_empty(self, temp_db):
        assert temp_db.get_stats() == {"document_count": 0, "space_count": 0, "total_size_bytes": 0}


class TestActivityCallbacks:
    """Test the processing callbacks the connector reports to."""

    def test_ingest_and_delete(self, temp_db):
        temp_db.ingest("42", "v1", "u", make_record())
        assert temp_db.get_document("42") is not None

        temp_db.delete("42")
        assert temp_db.get_document("42") is None

    def test_retain_keeps_row(self, temp_db):
        temp_db.ingest("42", "v1", "u", make_record())

        temp_db.retain("42")

        assert temp_db.get_document("42")["version"] == "v1"

    def test_record_activity(self, temp_db):
        temp_db.record_activity("42", "read document", "OK", 12, 1700000000.0)

        row = temp_db.connection.execute("SELECT * FROM activity").fetchone()
        assert row["doc_id"] == "42"
        assert row["result"] == "OK"
        assert row["size"] == 12
