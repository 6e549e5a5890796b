####################################
# --- Request/response schemas --- #
####################################

from typing import Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from uploads_api.utils.keys import key_from_location

EXAMPLE_RECORD_ID = "4f9c2a1e-8d3b-4c7a-9e21-6b5d0f3a7c11"
EXAMPLE_URLS = [
    "https://uploads-bucket.s3.us-east-1.amazonaws.com/0b6f7c3e-2a44-4d1e-9c2b-5f1a8e7d6c10.png",
    "https://uploads-bucket.s3.us-east-1.amazonaws.com/9d2e4f61-7b3a-4c58-8e0f-1a2b3c4d5e6f.jpg",
]


class UploadRecord(BaseModel):
    """Metadata persisted for one upload request."""
    id: str = Field(description="Identifier generated at upload time.")
    image_path: List[str] = Field(
        default_factory=list,
        alias="imagePath",
        description="Locations of the stored files, in upload order.",
    )
    storage_keys: List[str] = Field(
        default_factory=list,
        alias="storageKeys",
        description="Object keys parallel to `imagePath`.",
    )
    uploaded_at: Optional[str] = Field(
        default=None,
        alias="uploadedAt",
        description="ISO-8601 creation timestamp.",
    )
    created_at: Optional[str] = Field(
        default=None,
        alias="createdAt",
        description="Creation timestamp used by records written under the older field name.",
    )

    # Stored records are read as they are; unknown fields are carried along.
    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        json_schema_extra={
            "example": {
                "id": EXAMPLE_RECORD_ID,
                "imagePath": EXAMPLE_URLS,
                "storageKeys": [url.rsplit("/", 1)[-1] for url in EXAMPLE_URLS],
                "uploadedAt": "2024-01-01T00:00:00.000Z",
            }
        },
    )

    @field_validator("image_path", "storage_keys", mode="before")
    @classmethod
    def null_as_empty(cls, v):
        return [] if v is None else v

    def object_keys(self) -> List[str]:
        """Keys of every stored object, derived from `imagePath` for older records."""
        if self.storage_keys:
            return list(self.storage_keys)
        keys = [key_from_location(path) for path in self.image_path]
        return [key for key in keys if key]

    def primary_key(self) -> Optional[str]:
        """Key of the first stored file, or None when no key can be determined."""
        keys = self.object_keys()
        return keys[0] if keys else None

    def to_document(self) -> Dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class UploadFilesResponse(BaseModel):
    """Response model for `POST /upload`."""
    message: str = Field(description="A message about the operation.")
    file_id: str = Field(alias="fileId", description="Identifier of the created record.")
    urls: List[str] = Field(description="Locations of the stored files.")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "message": "Files uploaded successfully",
                "fileId": EXAMPLE_RECORD_ID,
                "urls": EXAMPLE_URLS,
            }
        },
    )


class PresignedUrlResponse(BaseModel):
    """Response model for `GET /files/:id/presigned`."""
    presigned_url: str = Field(alias="presignedUrl", description="Time-limited download link.")

    model_config = ConfigDict(populate_by_name=True)


class DeleteFileResponse(BaseModel):
    """Response model for `DELETE /files/:id`."""
    message: str


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    """Response model for `GET /health`."""
    status: str
    deployment_mode: str = Field(alias="deploymentMode")
    components: Dict[str, str]
    ready: bool

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("status")
    @classmethod
    def check_status(cls, v: str) -> str:
        if v not in ("ok", "degraded"):
            raise ValueError("status must be 'ok' or 'degraded'")
        return v
