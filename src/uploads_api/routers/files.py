from typing import Any, Dict, List, Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Path,
    UploadFile,
    status
)

from uploads_api.dependencies import get_upload_service
from uploads_api.errors import ClientInputError
from uploads_api.schemas import (
    DeleteFileResponse,
    ErrorResponse,
    PresignedUrlResponse,
    UploadFilesResponse,
    UploadRecord,
)
from uploads_api.services.uploads import IncomingFile, UploadService

router = APIRouter()

NOT_FOUND_RESPONSE = {
    status.HTTP_404_NOT_FOUND: {
        "description": "No record exists for the given `file_id`.",
        "model": ErrorResponse,
    },
}
SERVER_ERROR_RESPONSE = {
    status.HTTP_500_INTERNAL_SERVER_ERROR: {
        "description": "Object storage, the metadata store or the event topic failed.",
        "model": ErrorResponse,
    },
}


@router.post(
    "/upload",
    response_model=UploadFilesResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"description": "No files were uploaded.", "model": ErrorResponse},
        **SERVER_ERROR_RESPONSE,
    },
)
def upload_files(
    file_data: Optional[List[UploadFile]] = File(
        None,
        alias="fileData",
        description="One or more files to store.",
    ),
    service: UploadService = Depends(get_upload_service),
) -> UploadFilesResponse:
    """
    Upload one or more files.

    Each file is stored under a freshly generated key that keeps the original
    extension. One metadata record is created for the whole request and an
    `uploaded` event is published.
    """
    if not file_data:
        raise ClientInputError("No files uploaded")

    incoming = [
        IncomingFile(
            filename=upload.filename or "",
            content=upload.file.read(),
            content_type=upload.content_type,
        )
        for upload in file_data
    ]
    record = service.upload_files(incoming)

    return UploadFilesResponse(
        message="Files uploaded successfully",
        file_id=record.id,
        urls=record.image_path,
    )


@router.get(
    "/files",
    response_model=None,
    responses={
        status.HTTP_200_OK: {"description": "Every stored record, as persisted.", "model": List[UploadRecord]},
        **SERVER_ERROR_RESPONSE,
    },
)
def list_files(service: UploadService = Depends(get_upload_service)) -> List[Dict[str, Any]]:
    """List the metadata of every upload. Not paginated."""
    return service.list_records()


@router.get(
    "/files/{file_id}",
    response_model=None,
    responses={
        status.HTTP_200_OK: {"description": "The stored record, as persisted.", "model": UploadRecord},
        **NOT_FOUND_RESPONSE,
        **SERVER_ERROR_RESPONSE,
    },
)
def get_file(
    file_id: str = Path(..., description="Identifier returned by `POST /upload`"),
    service: UploadService = Depends(get_upload_service),
) -> Dict[str, Any]:
    """Retrieve the metadata of one upload."""
    return service.get_record(file_id)


@router.get(
    "/files/{file_id}/presigned",
    response_model=PresignedUrlResponse,
    responses={**NOT_FOUND_RESPONSE, **SERVER_ERROR_RESPONSE},
)
def get_presigned_url(
    file_id: str = Path(..., description="Identifier returned by `POST /upload`"),
    service: UploadService = Depends(get_upload_service),
) -> PresignedUrlResponse:
    """Generate a one-hour download link for the first file of an upload."""
    return PresignedUrlResponse(presigned_url=service.get_presigned_url(file_id))


@router.delete(
    "/files/{file_id}",
    response_model=DeleteFileResponse,
    responses={**NOT_FOUND_RESPONSE, **SERVER_ERROR_RESPONSE},
)
def delete_file(
    file_id: str = Path(..., description="Identifier returned by `POST /upload`"),
    service: UploadService = Depends(get_upload_service),
) -> DeleteFileResponse:
    """
    Delete an upload.

    Removes the stored files, then the metadata record, then publishes a
    `deleted` event carrying the removed record.
    """
    service.delete_record(file_id)
    return DeleteFileResponse(message="File deleted successfully")
