"""
Store Client Protocol.

The boundary between the CRUD adapter and DynamoDB. Implementations own
transport, retries and authentication; the adapter only composes these
calls. A client is built once and injected into the adapter.

Implementations:
- DynamoStoreClient (db/client.py): boto3, real DynamoDB
- MemoryStoreClient (db/memory.py): in-process mirror for tests and local runs
"""

from typing import Any, Protocol, Sequence, runtime_checkable

from authstore.predicates import CompiledExpression

Item = dict[str, Any]
Key = dict[str, Any]


@runtime_checkable
class StoreClient(Protocol):
    """
    Async primitives the adapter needs from a key-value store.

    Errors are raised as authstore.errors.StoreError subclasses.
    """

    async def put_item(self, table: str, item: Item) -> None:
        """Write an item unconditionally (last write wins)."""
        ...

    async def get_item(self, table: str, key: Key) -> Item | None:
        """Direct primary-key lookup."""
        ...

    async def scan(
        self,
        table: str,
        *,
        expression: CompiledExpression | None = None,
        max_items: int | None = None,
    ) -> list[Item]:
        """
        Return items matching `expression`, in no guaranteed order.

        Pages through the table until `max_items` matches are collected or
        the table is exhausted; `max_items` counts matches, not evaluated items.
        """
        ...

    async def update_item(
        self,
        table: str,
        key: Key,
        update: CompiledExpression,
        condition: CompiledExpression | None = None,
    ) -> Item | None:
        """
        Apply an update expression and return the full new item.

        Returns None when `condition` is not met.
        """
        ...

    async def delete_item(self, table: str, key: Key) -> None:
        ...

    async def batch_delete(self, table: str, keys: Sequence[Key]) -> list[Key]:
        """Delete up to one batch of keys; returns the keys the store left unprocessed."""
        ...

    async def describe_table(self, table: str) -> dict[str, Any] | None:
        """Table metadata, or None when the table does not exist."""
        ...
