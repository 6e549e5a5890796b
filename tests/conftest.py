import boto3
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

from tests.consts import TEST_REGION
from tests.fixtures.events import EventInbox
from tests.fixtures.settings import make_settings
from uploads_api.config.settings import Settings
from uploads_api.main import create_app


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so nothing can reach a real AWS account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_REGION)
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)
    monkeypatch.delenv("AWS_PROFILE", raising=False)


@pytest.fixture
def mocked_aws(aws_credentials):
    with mock_aws():
        yield


@pytest.fixture(params=["local-dev", "aws-mock"])
def deployment_mode(request) -> str:
    return request.param


@pytest.fixture
def settings(tmp_path, deployment_mode) -> Settings:
    return make_settings(tmp_path, deployment_mode)


@pytest.fixture
def client(mocked_aws, settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def s3_client(mocked_aws):
    return boto3.client("s3", region_name=TEST_REGION)


@pytest.fixture
def event_inbox(mocked_aws, settings) -> EventInbox:
    return EventInbox(settings)
