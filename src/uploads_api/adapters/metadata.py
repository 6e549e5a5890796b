import logging
from typing import Union

from database.dynamo_adapter import DynamoDBAdapter
from database.nosql_adapter import NoSQLAdapter
from database.schemas import validate_upload_record
from uploads_api.config.settings import Settings

logger = logging.getLogger(__name__)

MetadataStore = Union[NoSQLAdapter, DynamoDBAdapter]


class MetadataStoreFactory:
    """Factory to initialize the correct document store based on deployment mode"""

    @staticmethod
    def get_metadata_store(settings: Settings) -> MetadataStore:
        # Validate upload records under whatever collection name is configured
        validators = {settings.metadata_table_name: validate_upload_record}

        deployment_mode = settings.deployment_mode
        logger.info(f"Creating metadata store for mode: {deployment_mode}")

        if deployment_mode == "local-dev":
            return NoSQLAdapter(settings.metadata_db_path, validators=validators)
        if deployment_mode in ("aws-mock", "aws-prod"):
            return DynamoDBAdapter(validators=validators, **settings.boto3_client_kwargs())
        raise ValueError(f"Invalid deployment_mode: {deployment_mode}")
