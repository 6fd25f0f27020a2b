"""
Pytest configuration and fixtures for AuthStore tests.

All adapter tests run against MemoryStoreClient, which evaluates the same
expression strings DynamoDB would receive.
"""

import os

import pytest

# Keep tests independent of any local .env
os.environ.setdefault("AUTHSTORE_REGION", "us-east-1")

from authstore.adapter import DynamoDBAdapter
from authstore.batch import BatchExecutor
from authstore.db.memory import MemoryStoreClient
from authstore.keys import KeyStrategy


@pytest.fixture
def store():
    """Fresh in-memory store."""
    return MemoryStoreClient()


def make_adapter(store: MemoryStoreClient, single_table: bool, **kwargs) -> DynamoDBAdapter:
    keys = KeyStrategy(single_table=single_table, table_name="auth-store", table_prefix="test_")
    return DynamoDBAdapter(store, keys, batch=BatchExecutor(store), **kwargs)


@pytest.fixture
def multi_adapter(store):
    return make_adapter(store, single_table=False)


@pytest.fixture
def single_adapter(store):
    return make_adapter(store, single_table=True)


@pytest.fixture(params=["multi-table", "single-table"])
def adapter(request, store):
    """The same adapter under both topologies."""
    return make_adapter(store, single_table=request.param == "single-table")


@pytest.fixture
def sample_users():
    """Five users with distinct ages."""
    return [
        {"id": "u1", "name": "Ana", "email": "ana@example.com", "emailVerified": True, "age": 10},
        {"id": "u2", "name": "Bruno", "email": "bruno@example.com", "emailVerified": False, "age": 30},
        {"id": "u3", "name": "Carla", "email": "carla@test.dev", "emailVerified": True, "age": 20},
        {"id": "u4", "name": "Davi", "email": "davi@example.com", "emailVerified": False, "age": 50},
        {"id": "u5", "name": "Elisa", "email": "elisa@test.dev", "emailVerified": True, "age": 40},
    ]
