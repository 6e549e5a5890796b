"""
Schemas for NoSQL document validation.
Documents are validated on insert and update before they reach a backend.
"""

from typing import Any, Callable, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class UploadRecordDocument(BaseModel):
    """Schema for upload record documents"""
    id: str = Field(..., min_length=1, description="Record identifier")
    imagePath: List[str] = Field(..., min_length=1, description="Stored file locations")
    storageKeys: List[str] = Field(default_factory=list, description="Stored object keys")
    uploadedAt: str = Field(..., min_length=1, description="ISO-8601 upload timestamp")

    model_config = ConfigDict(extra="allow")


def validate_upload_record(document: Dict[str, Any]) -> None:
    UploadRecordDocument.model_validate(document)


DEFAULT_UPLOADS_COLLECTION = "s3_image_info"

DOCUMENT_VALIDATORS: Dict[str, Callable[[Dict[str, Any]], None]] = {
    DEFAULT_UPLOADS_COLLECTION: validate_upload_record,
}
