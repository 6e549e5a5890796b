# src/uploads_api/config/settings.py
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self

LOCAL_MODES = ("local-dev", "aws-mock")
VALID_MODES = ("local-dev", "aws-mock", "aws-prod")
DEFAULT_LOCAL_ENDPOINT = "http://localhost:5000"


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from uploads_api.config.settings import get_settings
        settings = get_settings()
        bucket_name = settings.bucket_name
    """

    # Application Settings
    host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP server binds to"
    )

    port: int = Field(
        default=3000,
        description="Port the HTTP server listens on"
    )

    # Deployment Mode
    deployment_mode: str = Field(
        default="local-dev",
        description="Deployment mode: local-dev, aws-mock, or aws-prod"
    )

    # AWS Core Settings
    aws_region: str = Field(
        default="us-east-1",
        alias="AWS_DEFAULT_REGION"
    )

    aws_access_key_id: Optional[str] = Field(
        default=None,
        alias="AWS_ACCESS_KEY_ID"
    )

    aws_secret_access_key: Optional[str] = Field(
        default=None,
        alias="AWS_SECRET_ACCESS_KEY"
    )

    aws_endpoint_url: Optional[str] = Field(
        default=None,
        alias="AWS_ENDPOINT_URL"
    )

    # Object storage
    bucket_name: str = Field(
        default="uploads-bucket",
        description="S3 bucket the uploaded files are written to"
    )

    s3_object_acl: Optional[str] = Field(
        default=None,
        description="Canned ACL applied to uploaded objects, e.g. public-read"
    )

    presigned_url_expiry_seconds: int = Field(
        default=3600,
        gt=0,
        description="Lifetime of generated download links"
    )

    # Metadata store
    metadata_table_name: str = Field(
        default="s3_image_info",
        description="DynamoDB table (or local document collection) holding upload records"
    )

    metadata_db_path: str = Field(
        default="uploads.db",
        description="SQLite file backing the document store in local-dev mode"
    )

    # Events
    pubsub_topic_name: str = Field(
        default="file-events",
        description="Topic that upload and delete events are published to"
    )

    sns_topic_arn: Optional[str] = Field(
        default=None,
        description="Full SNS topic ARN; resolved from the topic name when unset"
    )

    event_spool_dir: str = Field(
        default="storage/events",
        description="Directory the local-dev publisher spools events into"
    )

    # Resilience
    delete_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts made for idempotent delete calls"
    )

    delete_retry_delay_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Initial delay between delete attempts (doubles each retry)"
    )

    create_resources_on_startup: bool = Field(
        default=False,
        description="Create bucket, table and topic when the app starts"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @property
    def is_local(self) -> bool:
        return self.deployment_mode in LOCAL_MODES

    @field_validator("deployment_mode", mode="before")
    @classmethod
    def normalize_deployment_mode(cls, v):
        """Normalize deployment mode values for backwards compatibility."""
        if v:
            mode_mapping = {
                "local": "local-dev",
                "local-mock": "local-dev",
                "cloud": "aws-prod",
            }
            return mode_mapping.get(v, v)
        return v

    @field_validator("deployment_mode")
    @classmethod
    def validate_deployment_mode(cls, v):
        """Validate deployment mode is one of the allowed values."""
        if v not in VALID_MODES:
            raise ValueError(f"Invalid deployment_mode: {v}. Must be one of {list(VALID_MODES)}")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper()

    @model_validator(mode="after")
    def apply_local_mode_defaults(self) -> Self:
        """Point local modes at the mock endpoint with mock credentials unless told otherwise."""
        if not self.is_local:
            return self

        explicitly_set = self.model_fields_set
        if "aws_endpoint_url" not in explicitly_set and self.aws_endpoint_url is None:
            self.aws_endpoint_url = DEFAULT_LOCAL_ENDPOINT
        if self.aws_access_key_id is None:
            self.aws_access_key_id = "mock"
        if self.aws_secret_access_key is None:
            self.aws_secret_access_key = "mock"
        if "create_resources_on_startup" not in explicitly_set:
            self.create_resources_on_startup = True
        return self

    def boto3_client_kwargs(self) -> dict:
        """Keyword arguments shared by every boto3 client/resource the app creates."""
        kwargs = {"region_name": self.aws_region}
        if self.aws_endpoint_url:
            kwargs["endpoint_url"] = self.aws_endpoint_url
        # In production, leave credentials unset to let the IAM role handle auth
        if self.aws_access_key_id:
            kwargs["aws_access_key_id"] = self.aws_access_key_id
        if self.aws_secret_access_key:
            kwargs["aws_secret_access_key"] = self.aws_secret_access_key
        return kwargs

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=(".env", ".env.local-dev", ".env.aws-mock", ".env.aws-prod"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
