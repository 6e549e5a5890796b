"""
Object storage adapter backed by S3.

Every deployment mode talks to S3; local modes point the client at a moto
server through ``AWS_ENDPOINT_URL``.
"""

import logging
from typing import TYPE_CHECKING, Optional
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from uploads_api.config.settings import Settings

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class S3ObjectStorage:
    """Stores blobs in one bucket, hands out presigned links and deletes blobs by key."""

    def __init__(
        self,
        bucket_name: str,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        acl: Optional[str] = None,
        s3_client: Optional["S3Client"] = None,
        **client_kwargs,
    ):
        """
        :param bucket_name: The name of the S3 bucket.
        :param region: AWS region of the bucket, used for location URLs and signing.
        :param endpoint_url: Custom endpoint (moto, localstack, MinIO).
        :param acl: Canned ACL applied to uploaded objects, e.g. "public-read".
        :param s3_client: An optional boto3 S3 client. If not provided, one will be created.
        """
        self.bucket_name = bucket_name
        self.region = region
        self.endpoint_url = endpoint_url
        self.acl = acl
        if s3_client is None:
            extra = {} if endpoint_url is None else {"endpoint_url": endpoint_url}
            s3_client = boto3.client(
                "s3",
                region_name=region,
                # SigV4 so presigned links carry X-Amz-Expires
                config=Config(signature_version="s3v4"),
                **extra,
                **client_kwargs,
            )
        self.s3_client = s3_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ObjectStorage":
        kwargs = settings.boto3_client_kwargs()
        kwargs.pop("region_name", None)
        endpoint_url = kwargs.pop("endpoint_url", None)
        return cls(
            bucket_name=settings.bucket_name,
            region=settings.aws_region,
            endpoint_url=endpoint_url,
            acl=settings.s3_object_acl,
            **kwargs,
        )

    def object_location(self, key: str) -> str:
        """Public URL of an object, in the same form S3 reports for uploads."""
        quoted_key = quote(key)
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{quoted_key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{quoted_key}"

    def put_object(self, key: str, body: bytes, content_type: Optional[str] = None) -> str:
        """
        Upload a blob and return its location.

        :param key: path to the object in the S3 bucket.
        :param body: The content of the file to upload.
        :param content_type: The MIME type of the file, e.g. "text/plain" for a text file.
        """
        params = {
            "Bucket": self.bucket_name,
            "Key": key,
            "Body": body,
            "ContentType": content_type or DEFAULT_CONTENT_TYPE,
        }
        if self.acl:
            params["ACL"] = self.acl
        try:
            self.s3_client.put_object(**params)
        except Exception as e:
            logger.error(f"Error uploading {key} to S3: {str(e)}")
            raise
        logger.info(f"Uploaded {key} to bucket {self.bucket_name}")
        return self.object_location(key)

    def generate_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        """Return a GET link for `key` that expires after `expires_in` seconds."""
        return self.s3_client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket_name, "Key": key},
            ExpiresIn=expires_in,
        )

    def delete_object(self, key: str) -> None:
        """Delete an object. Deleting a missing key succeeds, so the call is idempotent."""
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except Exception as e:
            logger.error(f"Error deleting {key} from S3: {str(e)}")
            raise
        logger.info(f"Deleted {key} from bucket {self.bucket_name}")

    def object_exists(self, key: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] in ("404", "NoSuchKey", "NotFound"):
                return False
            raise

    def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist yet."""
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            return
        except ClientError as e:
            if e.response["Error"]["Code"] not in ("404", "NoSuchBucket", "NotFound"):
                raise

        params = {"Bucket": self.bucket_name}
        # us-east-1 rejects an explicit location constraint
        if self.region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        self.s3_client.create_bucket(**params)
        logger.info(f"Created S3 bucket: {self.bucket_name}")

    def ping(self) -> None:
        self.s3_client.head_bucket(Bucket=self.bucket_name)

    def close(self) -> None:
        self.s3_client.close()
