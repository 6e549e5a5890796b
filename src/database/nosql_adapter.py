"""
Unified NoSQL adapter for document-based operations.
Stores JSON documents in SQLite, one table per collection, keyed by document id.
Shares its interface with DynamoDBAdapter so the two are interchangeable.
"""

import json
import logging
import re
import sqlite3
from contextlib import closing
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .schemas import DOCUMENT_VALIDATORS

logger = logging.getLogger(__name__)

_COLLECTION_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class NoSQLAdapter:
    """Document store backed by a local SQLite file"""

    def __init__(
        self,
        db_path: str = "uploads.db",
        validators: Optional[Mapping[str, Callable[[Dict[str, Any]], None]]] = None,
    ):
        self.db_path = db_path
        self.validators = dict(DOCUMENT_VALIDATORS if validators is None else validators)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection; callers close it"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _table(collection: str) -> str:
        # Collection names end up in SQL, so only plain identifiers are allowed
        if not _COLLECTION_NAME.match(collection):
            raise ValueError(f"Invalid collection name: {collection!r}")
        return f"{collection}_docs"

    def _validate_document(self, collection: str, document: Dict[str, Any]) -> None:
        """Validate document against schema"""
        if collection in self.validators:
            try:
                self.validators[collection](document)
            except Exception as e:
                logger.error(f"Document validation failed for {collection}: {e}")
                raise ValueError(f"Document validation failed: {e}")

    def _serialize_document(self, document: Dict[str, Any]) -> str:
        """Serialize document to JSON string"""
        def json_serializer(obj):
            if isinstance(obj, datetime):
                return obj.isoformat()
            raise TypeError(f"Object of type {type(obj)} is not JSON serializable")

        return json.dumps(document, default=json_serializer)

    def _deserialize_document(self, json_str: str) -> Dict[str, Any]:
        """Deserialize JSON string to document"""
        return json.loads(json_str)

    def init_collections(self, collections: Iterable[str]) -> None:
        """Initialize document collections (tables)"""
        parent = Path(self.db_path).parent
        parent.mkdir(parents=True, exist_ok=True)

        with closing(self._get_connection()) as conn:
            try:
                for collection in collections:
                    conn.execute(f'''
                        CREATE TABLE IF NOT EXISTS {self._table(collection)} (
                            doc_id TEXT PRIMARY KEY,
                            document TEXT NOT NULL,
                            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                        )
                    ''')
                conn.commit()
                logger.info(f"NoSQL collections initialized in {self.db_path}")
            except Exception as e:
                logger.error(f"Error initializing collections: {e}")
                raise

    def create_document(self, collection: str, document: Dict[str, Any]) -> str:
        """Insert a new document; its `id` must not exist yet"""
        self._validate_document(collection, document)
        doc_id = document["id"]

        with closing(self._get_connection()) as conn:
            try:
                conn.execute(
                    f"INSERT INTO {self._table(collection)} (doc_id, document) VALUES (?, ?)",
                    (doc_id, self._serialize_document(document)),
                )
                conn.commit()
                logger.info(f"Created document in {collection} with ID: {doc_id}")
                return doc_id
            except Exception as e:
                logger.error(f"Error creating document in {collection}: {e}")
                raise

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Get a document by ID"""
        with closing(self._get_connection()) as conn:
            try:
                row = conn.execute(
                    f"SELECT document FROM {self._table(collection)} WHERE doc_id = ?",
                    (doc_id,),
                ).fetchone()
                if row:
                    return self._deserialize_document(row["document"])
                return None
            except Exception as e:
                logger.error(f"Error getting document from {collection}: {e}")
                raise

    def list_documents(self, collection: str) -> List[Dict[str, Any]]:
        """Return every document in the collection, oldest first"""
        with closing(self._get_connection()) as conn:
            try:
                rows = conn.execute(
                    f"SELECT document FROM {self._table(collection)} ORDER BY created_at, rowid"
                ).fetchall()
                return [self._deserialize_document(row["document"]) for row in rows]
            except Exception as e:
                logger.error(f"Error listing documents from {collection}: {e}")
                raise

    def update_document(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> bool:
        """Merge `patch` into an existing document. Returns False if there is none."""
        if "id" in patch and patch["id"] != doc_id:
            raise ValueError("Document id cannot be changed")

        with closing(self._get_connection()) as conn:
            try:
                row = conn.execute(
                    f"SELECT document FROM {self._table(collection)} WHERE doc_id = ?",
                    (doc_id,),
                ).fetchone()
                if not row:
                    logger.warning(f"No document found to update in {collection} with ID: {doc_id}")
                    return False

                document = self._deserialize_document(row["document"])
                document.update(patch)
                self._validate_document(collection, document)

                conn.execute(
                    f'''
                    UPDATE {self._table(collection)}
                    SET document = ?, updated_at = CURRENT_TIMESTAMP
                    WHERE doc_id = ?
                    ''',
                    (self._serialize_document(document), doc_id),
                )
                conn.commit()
                logger.info(f"Updated document in {collection} with ID: {doc_id}")
                return True
            except Exception as e:
                logger.error(f"Error updating document in {collection}: {e}")
                raise

    def delete_document(self, collection: str, doc_id: str) -> bool:
        """Delete a document by ID. Returns False if it did not exist."""
        with closing(self._get_connection()) as conn:
            try:
                cursor = conn.execute(
                    f"DELETE FROM {self._table(collection)} WHERE doc_id = ?",
                    (doc_id,),
                )
                success = cursor.rowcount > 0
                conn.commit()

                if success:
                    logger.info(f"Deleted document from {collection} with ID: {doc_id}")
                else:
                    logger.warning(f"No document found to delete in {collection} with ID: {doc_id}")

                return success
            except Exception as e:
                logger.error(f"Error deleting document from {collection}: {e}")
                raise

    def ping(self) -> None:
        with closing(self._get_connection()) as conn:
            conn.execute("SELECT 1").fetchone()

    def close(self) -> None:
        """Connections are opened per operation, so there is nothing to release"""
