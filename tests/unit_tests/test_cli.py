import boto3
import pytest
from click.testing import CliRunner

from tests.consts import TEST_BUCKET_NAME, TEST_REGION, TEST_TABLE_NAME, TEST_TOPIC_NAME
from uploads_api.cli import cli
from uploads_api.config.settings import get_settings


@pytest.fixture
def cli_env(monkeypatch, mocked_aws, tmp_path):
    monkeypatch.setenv("DEPLOYMENT_MODE", "aws-prod")
    monkeypatch.setenv("BUCKET_NAME", TEST_BUCKET_NAME)
    monkeypatch.setenv("METADATA_TABLE_NAME", TEST_TABLE_NAME)
    monkeypatch.setenv("PUBSUB_TOPIC_NAME", TEST_TOPIC_NAME)
    monkeypatch.setenv("EVENT_SPOOL_DIR", str(tmp_path / "events"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_show_config(cli_env):
    result = CliRunner().invoke(cli, ["show-config"])

    assert result.exit_code == 0
    assert "Deployment Mode: aws-prod" in result.output
    assert f"S3 Bucket: {TEST_BUCKET_NAME}" in result.output
    assert f"Metadata Table: {TEST_TABLE_NAME}" in result.output


def test_init_resources(cli_env):
    result = CliRunner().invoke(cli, ["init-resources"])
    assert result.exit_code == 0, result.output

    s3 = boto3.client("s3", region_name=TEST_REGION)
    dynamodb = boto3.client("dynamodb", region_name=TEST_REGION)
    sns = boto3.client("sns", region_name=TEST_REGION)
    assert [bucket["Name"] for bucket in s3.list_buckets()["Buckets"]] == [TEST_BUCKET_NAME]
    assert dynamodb.list_tables()["TableNames"] == [TEST_TABLE_NAME]
    assert [topic["TopicArn"].rsplit(":", 1)[-1] for topic in sns.list_topics()["Topics"]] == [TEST_TOPIC_NAME]

    # running it again is harmless
    assert CliRunner().invoke(cli, ["init-resources"]).exit_code == 0


def test_serve(cli_env, monkeypatch):
    calls = []
    monkeypatch.setattr("uvicorn.run", lambda *args, **kwargs: calls.append((args, kwargs)))

    result = CliRunner().invoke(cli, ["serve", "--port", "9000"])
    assert result.exit_code == 0, result.output

    (args, kwargs), = calls
    assert args == ("uploads_api.main:create_app",)
    assert kwargs["factory"] is True
    assert kwargs["port"] == 9000
    assert kwargs["host"] == "0.0.0.0"
