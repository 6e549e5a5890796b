"""
Upload service for the Uploads API.
Orchestrates object storage, the metadata store and the event topic for each request.
Every step runs sequentially; a step only starts once the previous one succeeded.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from uploads_api.adapters import Adapters
from uploads_api.config.settings import Settings
from uploads_api.errors import ClientInputError, NotFoundError, dependency_errors
from uploads_api.schemas import UploadRecord
from uploads_api.utils.decorators import log_execution_time, retry
from uploads_api.utils.keys import generate_object_key, utc_now_iso

logger = logging.getLogger(__name__)

UPLOADED_EVENT = "uploaded"
DELETED_EVENT = "deleted"


@dataclass
class IncomingFile:
    """One file part of an upload request."""
    filename: str
    content: bytes
    content_type: Optional[str] = None


class UploadService:
    """Service behind the upload, query and delete endpoints"""

    def __init__(self, adapters: Adapters, settings: Settings):
        self.storage = adapters.storage
        self.metadata = adapters.metadata
        self.events = adapters.events
        self.table_name = settings.metadata_table_name
        self.topic_name = settings.pubsub_topic_name
        self.presigned_url_expiry = settings.presigned_url_expiry_seconds
        self._retry_deletes = retry(
            max_attempts=settings.delete_retry_attempts,
            delay=settings.delete_retry_delay_seconds,
            logger_name=__name__,
        )

    @log_execution_time
    def upload_files(self, files: List[IncomingFile]) -> UploadRecord:
        """
        Store every file, then persist one record for the batch, then announce it.

        If storing a later file or persisting the record fails, the objects
        already written by this call are removed again on a best-effort basis.
        A failed publish leaves the record in place.
        """
        if not files:
            raise ClientInputError("No files uploaded")

        keys: List[str] = []
        locations: List[str] = []
        try:
            with dependency_errors("Failed to upload files"):
                for incoming in files:
                    key = generate_object_key(incoming.filename)
                    location = self.storage.put_object(key, incoming.content, incoming.content_type)
                    keys.append(key)
                    locations.append(location)
        except Exception:
            self._discard_objects(keys)
            raise

        record = UploadRecord(
            id=str(uuid.uuid4()),
            image_path=locations,
            storage_keys=keys,
            uploaded_at=utc_now_iso(),
        )

        try:
            with dependency_errors("Failed to upload files"):
                self.metadata.create_document(self.table_name, record.to_document())
        except Exception:
            self._discard_objects(keys)
            raise

        with dependency_errors("Failed to upload files"):
            self.events.publish_event(self.topic_name, {
                "event": UPLOADED_EVENT,
                "fileId": record.id,
                "s3Keys": keys,
                "uploadedAt": record.uploaded_at,
            })

        logger.info(f"Stored {len(keys)} file(s) as record {record.id}")
        return record

    def _discard_objects(self, keys: List[str]) -> None:
        for key in keys:
            try:
                self.storage.delete_object(key)
            except Exception as e:
                logger.error(f"Could not remove orphaned object {key}: {str(e)}")

    def list_records(self) -> List[Dict[str, Any]]:
        """Every stored record, exactly as it was persisted."""
        with dependency_errors("Failed to fetch files metadata"):
            return self.metadata.list_documents(self.table_name)

    def get_record(self, record_id: str) -> Dict[str, Any]:
        """The stored record for `record_id`, exactly as it was persisted."""
        with dependency_errors("Failed to fetch file metadata"):
            document = self.metadata.get_document(self.table_name, record_id)
        if not document:
            raise NotFoundError("File not found")
        return document

    def _get_stored_files(self, record_id: str) -> Tuple[Dict[str, Any], List[str]]:
        """
        Load a record together with the keys of its stored objects.

        Records whose `imagePath` is missing or empty, or whose paths yield
        no key, count as not found.
        """
        document = self.get_record(record_id)
        if not document.get("imagePath"):
            raise NotFoundError("File not found")

        with dependency_errors("Failed to fetch file metadata"):
            keys = UploadRecord.model_validate(document).object_keys()
        if not keys:
            raise NotFoundError("File not found")
        return document, keys

    def get_presigned_url(self, record_id: str) -> str:
        """Time-limited download link for the first file of a record. Never persisted."""
        _, keys = self._get_stored_files(record_id)

        with dependency_errors("Failed to generate presigned URL"):
            return self.storage.generate_presigned_url(keys[0], expires_in=self.presigned_url_expiry)

    @log_execution_time
    def delete_record(self, record_id: str) -> Dict[str, Any]:
        """
        Delete the stored objects, then the record, then announce the deletion.

        Object and record deletes are idempotent, so transient failures are
        retried. There is no compensation if a later step still fails.
        """
        document, keys = self._get_stored_files(record_id)

        with dependency_errors("Failed to delete file"):
            delete_object = self._retry_deletes(self.storage.delete_object)
            for key in keys:
                delete_object(key)

            self._retry_deletes(self.metadata.delete_document)(self.table_name, record_id)

            self.events.publish_event(self.topic_name, {
                "event": DELETED_EVENT,
                "fileId": record_id,
                "s3Key": keys[0],
                "s3Keys": keys,
                "deletedAt": utc_now_iso(),
                "metadata": document,
            })

        logger.info(f"Deleted record {record_id} and {len(keys)} object(s)")
        return document
