"""
Unit tests for the SQLite-backed document store.
"""

import pytest

from database.nosql_adapter import NoSQLAdapter
from tests.consts import TEST_TABLE_NAME


def make_record(record_id="rec-1", **overrides):
    record = {
        "id": record_id,
        "imagePath": [f"http://localhost:5000/bucket/{record_id}.png"],
        "storageKeys": [f"{record_id}.png"],
        "uploadedAt": "2024-01-01T00:00:00.000Z",
    }
    record.update(overrides)
    return record


@pytest.fixture
def adapter(tmp_path):
    adapter = NoSQLAdapter(str(tmp_path / "nested" / "uploads.db"))
    adapter.init_collections([TEST_TABLE_NAME])
    yield adapter
    adapter.close()


class TestNoSQLAdapter:
    """CRUD behaviour of the SQLite document store"""

    def test_init_collections(self, adapter):
        assert adapter.list_documents(TEST_TABLE_NAME) == []

        # initializing again keeps existing documents
        adapter.create_document(TEST_TABLE_NAME, make_record())
        adapter.init_collections([TEST_TABLE_NAME])
        assert len(adapter.list_documents(TEST_TABLE_NAME)) == 1

    def test_document_crud_operations(self, adapter):
        record = make_record()

        assert adapter.create_document(TEST_TABLE_NAME, record) == "rec-1"
        assert adapter.get_document(TEST_TABLE_NAME, "rec-1") == record

        assert adapter.update_document(TEST_TABLE_NAME, "rec-1", {"storageKeys": ["other.png"]}) is True
        updated = adapter.get_document(TEST_TABLE_NAME, "rec-1")
        assert updated["storageKeys"] == ["other.png"]
        assert updated["imagePath"] == record["imagePath"]

        assert adapter.delete_document(TEST_TABLE_NAME, "rec-1") is True
        assert adapter.get_document(TEST_TABLE_NAME, "rec-1") is None

    def test_missing_documents(self, adapter):
        assert adapter.get_document(TEST_TABLE_NAME, "missing") is None
        assert adapter.update_document(TEST_TABLE_NAME, "missing", {"uploadedAt": "x"}) is False
        assert adapter.delete_document(TEST_TABLE_NAME, "missing") is False

    def test_list_documents_in_insertion_order(self, adapter):
        for record_id in ("first", "second", "third"):
            adapter.create_document(TEST_TABLE_NAME, make_record(record_id))

        listed = adapter.list_documents(TEST_TABLE_NAME)
        assert [doc["id"] for doc in listed] == ["first", "second", "third"]

    def test_duplicate_id_rejected(self, adapter):
        adapter.create_document(TEST_TABLE_NAME, make_record())
        with pytest.raises(Exception):
            adapter.create_document(TEST_TABLE_NAME, make_record())
        assert len(adapter.list_documents(TEST_TABLE_NAME)) == 1

    def test_validation(self, adapter):
        with pytest.raises(ValueError, match="Document validation failed"):
            adapter.create_document(TEST_TABLE_NAME, make_record(imagePath=[]))

        adapter.create_document(TEST_TABLE_NAME, make_record())
        with pytest.raises(ValueError, match="Document validation failed"):
            adapter.update_document(TEST_TABLE_NAME, "rec-1", {"imagePath": []})
        assert adapter.get_document(TEST_TABLE_NAME, "rec-1") == make_record()

    def test_id_cannot_change(self, adapter):
        adapter.create_document(TEST_TABLE_NAME, make_record())
        with pytest.raises(ValueError):
            adapter.update_document(TEST_TABLE_NAME, "rec-1", {"id": "rec-2"})

    def test_unvalidated_collection(self, tmp_path):
        adapter = NoSQLAdapter(str(tmp_path / "free.db"), validators={})
        adapter.init_collections(["scratch"])
        adapter.create_document("scratch", {"id": "anything", "value": 1})
        assert adapter.get_document("scratch", "anything") == {"id": "anything", "value": 1}

    def test_rejects_unsafe_collection_names(self, adapter):
        with pytest.raises(ValueError, match="Invalid collection name"):
            adapter.list_documents("files; DROP TABLE x")

    def test_ping(self, adapter):
        adapter.ping()
