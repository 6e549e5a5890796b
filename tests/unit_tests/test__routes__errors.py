import threading
import time

import boto3
import pytest
from botocore.exceptions import ClientError
from fastapi import status
from fastapi.testclient import TestClient

from database.nosql_adapter import NoSQLAdapter
from tests.consts import TEST_BUCKET_NAME, TEST_PNG_CONTENT, TEST_TABLE_NAME
from tests.fixtures.settings import make_settings
from uploads_api.main import create_app


def service_of(client: TestClient):
    return client.app.state.upload_service


def store_raw_document(settings, document):
    """Write a record straight into the metadata store, skipping validation."""
    if settings.deployment_mode == "local-dev":
        NoSQLAdapter(settings.metadata_db_path, validators={}).create_document(
            settings.metadata_table_name, document
        )
    else:
        dynamodb = boto3.resource("dynamodb", region_name=settings.aws_region)
        dynamodb.Table(settings.metadata_table_name).put_item(Item=document)


def client_error(operation: str) -> ClientError:
    return ClientError({"Error": {"Code": "InternalError", "Message": "boom"}}, operation)


def upload_png(client: TestClient):
    return client.post(
        "/upload",
        files=[("fileData", ("a.png", TEST_PNG_CONTENT, "image/png"))],
    )


def test_upload_without_files(client: TestClient, s3_client, event_inbox):
    response = client.post("/upload")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "No files uploaded"}
    assert client.get("/files").json() == []
    assert "Contents" not in s3_client.list_objects_v2(Bucket=TEST_BUCKET_NAME)
    assert event_inbox.messages() == []


def test_upload_with_files_under_another_field(client: TestClient):
    response = client.post(
        "/upload",
        files=[("somethingElse", ("a.png", TEST_PNG_CONTENT, "image/png"))],
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert client.get("/files").json() == []


def test_unknown_id(client: TestClient):
    assert client.get("/files/does-not-exist").status_code == status.HTTP_404_NOT_FOUND
    assert client.get("/files/does-not-exist").json() == {"error": "File not found"}
    assert client.get("/files/does-not-exist/presigned").status_code == status.HTTP_404_NOT_FOUND
    assert client.delete("/files/does-not-exist").status_code == status.HTTP_404_NOT_FOUND


def test_upload__storage_failure(client: TestClient, monkeypatch):
    service = service_of(client)

    def failing_put_object(key, body, content_type=None):
        raise client_error("PutObject")

    monkeypatch.setattr(service.storage, "put_object", failing_put_object)

    response = upload_png(client)
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Failed to upload files"}
    assert client.get("/files").json() == []


def test_upload__metadata_failure_removes_stored_objects(client: TestClient, s3_client, monkeypatch):
    service = service_of(client)

    def failing_create_document(collection, document):
        raise client_error("PutItem")

    monkeypatch.setattr(service.metadata, "create_document", failing_create_document)

    response = upload_png(client)
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Failed to upload files"}
    assert "Contents" not in s3_client.list_objects_v2(Bucket=TEST_BUCKET_NAME)


def test_upload__publish_failure_keeps_record(client: TestClient, monkeypatch):
    service = service_of(client)

    def failing_publish(topic, data):
        raise client_error("Publish")

    monkeypatch.setattr(service.events, "publish", failing_publish)

    response = upload_png(client)
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR

    records = client.get("/files").json()
    assert len(records) == 1
    assert len(records[0]["imagePath"]) == 1


def test_delete__retries_transient_storage_failure(client: TestClient, s3_client, monkeypatch):
    file_id = upload_png(client).json()["fileId"]
    service = service_of(client)
    real_delete_object = service.storage.delete_object
    calls = []

    def flaky_delete_object(key):
        calls.append(key)
        if len(calls) == 1:
            raise client_error("DeleteObject")
        real_delete_object(key)

    monkeypatch.setattr(service.storage, "delete_object", flaky_delete_object)

    response = client.delete(f"/files/{file_id}")
    assert response.status_code == status.HTTP_200_OK
    assert len(calls) == 2
    assert "Contents" not in s3_client.list_objects_v2(Bucket=TEST_BUCKET_NAME)


def test_delete__storage_keeps_failing(client: TestClient, monkeypatch, settings):
    file_id = upload_png(client).json()["fileId"]
    service = service_of(client)
    calls = []

    def failing_delete_object(key):
        calls.append(key)
        raise client_error("DeleteObject")

    monkeypatch.setattr(service.storage, "delete_object", failing_delete_object)

    response = client.delete(f"/files/{file_id}")
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Failed to delete file"}
    assert len(calls) == settings.delete_retry_attempts

    # nothing after the failing step ran
    assert client.get(f"/files/{file_id}").status_code == status.HTTP_200_OK


def test_metadata_store_unavailable(client: TestClient, monkeypatch):
    service = service_of(client)

    def failing_list_documents(collection):
        raise client_error("Scan")

    monkeypatch.setattr(service.metadata, "list_documents", failing_list_documents)

    response = client.get("/files")
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Failed to fetch files metadata"}


def test_record_stored_as_url_only(client: TestClient):
    """Records without storageKeys fall back to the last segment of the stored URL."""
    service = service_of(client)
    service.metadata.create_document(TEST_TABLE_NAME, {
        "id": "legacy-record",
        "imagePath": [f"https://{TEST_BUCKET_NAME}.s3.amazonaws.com/legacy-key.png?versionId=3"],
        "uploadedAt": "2024-01-01T00:00:00.000Z",
    })

    response = client.get("/files/legacy-record/presigned")
    assert response.status_code == status.HTTP_200_OK
    assert "/legacy-key.png?" in response.json()["presignedUrl"]


def test_record_without_usable_path(client: TestClient):
    service = service_of(client)
    service.metadata.create_document(TEST_TABLE_NAME, {
        "id": "pathless-record",
        "imagePath": ["https://example.com/"],
        "uploadedAt": "2024-01-01T00:00:00.000Z",
    })

    assert client.get("/files/pathless-record").status_code == status.HTTP_200_OK
    assert client.get("/files/pathless-record/presigned").status_code == status.HTTP_404_NOT_FOUND
    assert client.delete("/files/pathless-record").status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.parametrize(
    "document",
    [
        {"id": "empty-paths", "imagePath": [], "uploadedAt": "2024-01-01T00:00:00.000Z"},
        {"id": "no-paths", "uploadedAt": "2024-01-01T00:00:00.000Z"},
        {"id": "null-paths", "imagePath": None},
    ],
    ids=["empty", "missing", "null"],
)
def test_record_with_missing_or_empty_paths(client: TestClient, settings, document):
    store_raw_document(settings, document)
    record_id = document["id"]

    response = client.get(f"/files/{record_id}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == document

    assert client.get(f"/files/{record_id}/presigned").status_code == status.HTTP_404_NOT_FOUND
    response = client.delete(f"/files/{record_id}")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "File not found"}

    # the record is untouched and does not break listing
    response = client.get("/files")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == [document]


def test_records_are_returned_as_stored(client: TestClient, settings):
    """Records with `createdAt` or fields of their own are listed and fetched unchanged."""
    document = {
        "id": "created-at-record",
        "imagePath": [f"https://{TEST_BUCKET_NAME}.s3.amazonaws.com/older.png"],
        "createdAt": "2023-06-01T12:00:00.000Z",
        "label": "holiday",
    }
    store_raw_document(settings, document)

    assert client.get("/files/created-at-record").json() == document
    assert client.get("/files").json() == [document]

    response = client.get("/files/created-at-record/presigned")
    assert response.status_code == status.HTTP_200_OK
    assert "/older.png?" in response.json()["presignedUrl"]


def test_upload__later_file_fails_removes_earlier_objects(client: TestClient, s3_client, monkeypatch):
    service = service_of(client)
    real_put_object = service.storage.put_object
    calls = []

    def put_object_failing_second(key, body, content_type=None):
        calls.append(key)
        if len(calls) == 2:
            raise client_error("PutObject")
        return real_put_object(key, body, content_type)

    monkeypatch.setattr(service.storage, "put_object", put_object_failing_second)

    response = client.post(
        "/upload",
        files=[
            ("fileData", ("a.png", TEST_PNG_CONTENT, "image/png")),
            ("fileData", ("b.png", TEST_PNG_CONTENT, "image/png")),
        ],
    )
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Failed to upload files"}
    assert len(calls) == 2
    assert "Contents" not in s3_client.list_objects_v2(Bucket=TEST_BUCKET_NAME)
    assert client.get("/files").json() == []


def test_delete_retry_does_not_block_other_requests(mocked_aws, tmp_path, deployment_mode, monkeypatch):
    settings = make_settings(
        tmp_path,
        deployment_mode,
        delete_retry_attempts=2,
        delete_retry_delay_seconds=1.0,
    )
    with TestClient(create_app(settings)) as client:
        file_id = upload_png(client).json()["fileId"]
        service = service_of(client)
        first_attempt = threading.Event()

        def failing_delete_object(key):
            first_attempt.set()
            raise client_error("DeleteObject")

        monkeypatch.setattr(service.storage, "delete_object", failing_delete_object)

        delete_responses = []
        deleting = threading.Thread(
            target=lambda: delete_responses.append(client.delete(f"/files/{file_id}"))
        )
        deleting.start()
        assert first_attempt.wait(timeout=5)

        # the delete is now waiting between attempts
        started = time.monotonic()
        response = client.get("/files")
        elapsed = time.monotonic() - started

        deleting.join(timeout=10)

    assert response.status_code == status.HTTP_200_OK
    assert elapsed < 0.5
    assert delete_responses[0].status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
