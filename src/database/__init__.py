"""
Document store adapters.

NoSQLAdapter keeps JSON documents in SQLite for local development;
DynamoDBAdapter exposes the same interface on top of DynamoDB.
"""

from .dynamo_adapter import DynamoDBAdapter
from .nosql_adapter import NoSQLAdapter

__all__ = ["DynamoDBAdapter", "NoSQLAdapter"]
