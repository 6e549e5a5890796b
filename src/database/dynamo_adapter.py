"""
DynamoDB adapter for document-based operations.
Provides the same interface as NoSQLAdapter but stores documents in DynamoDB tables,
one table per collection, with `id` as the partition key.
"""

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional

import boto3
from botocore.exceptions import ClientError

from .schemas import DOCUMENT_VALIDATORS

if TYPE_CHECKING:
    from mypy_boto3_dynamodb import DynamoDBServiceResource

logger = logging.getLogger(__name__)

KEY_ATTRIBUTE = "id"


class DynamoDBAdapter:
    """DynamoDB adapter for document-based database operations"""

    def __init__(
        self,
        dynamodb_resource: Optional["DynamoDBServiceResource"] = None,
        validators: Optional[Mapping[str, Callable[[Dict[str, Any]], None]]] = None,
        **client_kwargs: Any,
    ):
        """
        :param dynamodb_resource: An existing boto3 DynamoDB resource. If not provided,
            one is created from ``client_kwargs`` (region_name, endpoint_url, credentials).
        :param validators: Per-collection document validators.
        """
        self.dynamodb = dynamodb_resource or boto3.resource("dynamodb", **client_kwargs)
        self.validators = dict(DOCUMENT_VALIDATORS if validators is None else validators)

    def _validate_document(self, collection: str, document: Dict[str, Any]) -> None:
        """Validate document against schema"""
        if collection in self.validators:
            try:
                self.validators[collection](document)
            except Exception as e:
                logger.error(f"Document validation failed for {collection}: {e}")
                raise ValueError(f"Document validation failed: {e}")

    def _table(self, collection: str):
        return self.dynamodb.Table(collection)

    def init_collections(self, collections: Iterable[str]) -> None:
        """Create missing tables (on-demand billing) and wait until they are active"""
        client = self.dynamodb.meta.client
        existing = set(client.list_tables().get("TableNames", []))

        for collection in collections:
            if collection in existing:
                continue
            try:
                table = self.dynamodb.create_table(
                    TableName=collection,
                    KeySchema=[{"AttributeName": KEY_ATTRIBUTE, "KeyType": "HASH"}],
                    AttributeDefinitions=[{"AttributeName": KEY_ATTRIBUTE, "AttributeType": "S"}],
                    BillingMode="PAY_PER_REQUEST",
                )
                table.wait_until_exists()
                logger.info(f"Created DynamoDB table: {collection}")
            except ClientError as e:
                if e.response["Error"]["Code"] == "ResourceInUseException":
                    # created concurrently by another process
                    continue
                logger.error(f"Error creating DynamoDB table {collection}: {e}")
                raise

    def create_document(self, collection: str, document: Dict[str, Any]) -> str:
        """Insert a new document; fails if one with the same id exists"""
        self._validate_document(collection, document)
        doc_id = document[KEY_ATTRIBUTE]
        try:
            self._table(collection).put_item(
                Item=document,
                ConditionExpression="attribute_not_exists(#pk)",
                ExpressionAttributeNames={"#pk": KEY_ATTRIBUTE},
            )
            logger.info(f"Created document in {collection} with ID: {doc_id}")
            return doc_id
        except Exception as e:
            logger.error(f"Error creating document in {collection}: {e}")
            raise

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Get a document by ID"""
        try:
            response = self._table(collection).get_item(Key={KEY_ATTRIBUTE: doc_id})
            return response.get("Item")
        except Exception as e:
            logger.error(f"Error getting document from {collection}: {e}")
            raise

    def list_documents(self, collection: str) -> List[Dict[str, Any]]:
        """Scan the whole table, following pagination until it is exhausted"""
        table = self._table(collection)
        documents: List[Dict[str, Any]] = []
        scan_kwargs: Dict[str, Any] = {}
        try:
            while True:
                response = table.scan(**scan_kwargs)
                documents.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key
            return documents
        except Exception as e:
            logger.error(f"Error listing documents from {collection}: {e}")
            raise

    def update_document(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> bool:
        """Set the fields in `patch` on an existing document. Returns False if there is none."""
        fields = {k: v for k, v in patch.items() if k != KEY_ATTRIBUTE}
        if KEY_ATTRIBUTE in patch and patch[KEY_ATTRIBUTE] != doc_id:
            raise ValueError("Document id cannot be changed")
        existing = self.get_document(collection, doc_id)
        if existing is None:
            logger.warning(f"No document found to update in {collection} with ID: {doc_id}")
            return False
        if not fields:
            return True
        self._validate_document(collection, {**existing, **fields})

        names = {"#pk": KEY_ATTRIBUTE}
        values = {}
        assignments = []
        for i, (field, value) in enumerate(fields.items()):
            names[f"#f{i}"] = field
            values[f":v{i}"] = value
            assignments.append(f"#f{i} = :v{i}")

        try:
            self._table(collection).update_item(
                Key={KEY_ATTRIBUTE: doc_id},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression="attribute_exists(#pk)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except ClientError as e:
            # deleted between the read and the write
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                logger.warning(f"No document found to update in {collection} with ID: {doc_id}")
                return False
            logger.error(f"Error updating document in {collection}: {e}")
            raise

        logger.info(f"Updated document in {collection} with ID: {doc_id}")
        return True

    def delete_document(self, collection: str, doc_id: str) -> bool:
        """Delete a document by ID. Returns False if it did not exist."""
        try:
            response = self._table(collection).delete_item(
                Key={KEY_ATTRIBUTE: doc_id},
                ReturnValues="ALL_OLD",
            )
        except Exception as e:
            logger.error(f"Error deleting document from {collection}: {e}")
            raise

        success = "Attributes" in response
        if success:
            logger.info(f"Deleted document from {collection} with ID: {doc_id}")
        else:
            logger.warning(f"No document found to delete in {collection} with ID: {doc_id}")
        return success

    def ping(self) -> None:
        self.dynamodb.meta.client.list_tables(Limit=1)

    def close(self) -> None:
        self.dynamodb.meta.client.close()
