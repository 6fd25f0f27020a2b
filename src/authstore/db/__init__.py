"""
AuthStore - Store clients.

DynamoStoreClient talks to DynamoDB through boto3; MemoryStoreClient is an
in-process mirror with the same expression semantics.
"""

from authstore.db.adapter import StoreClient
from authstore.db.client import DynamoStoreClient
from authstore.db.memory import MemoryStoreClient

__all__ = [
    "DynamoStoreClient",
    "MemoryStoreClient",
    "StoreClient",
]
