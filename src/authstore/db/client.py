"""
DynamoDB Store Client.

boto3-backed StoreClient. boto3 is synchronous, so every call runs in a
worker thread; the low-level client is thread-safe, unlike resources.
Items are (de)serialized with boto3's TypeSerializer/TypeDeserializer.

No retries beyond botocore's own: throttling and availability failures
surface as StoreThrottledError / StoreUnavailableError.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Sequence

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from authstore.errors import StoreError, StoreThrottledError, StoreUnavailableError
from authstore.predicates import CompiledExpression

if TYPE_CHECKING:
    from authstore.config import AdapterSettings

logger = logging.getLogger(__name__)

THROTTLING_CODES = {
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
}
UNAVAILABLE_CODES = {
    "InternalServerError",
    "ServiceUnavailable",
    "ResourceNotFoundException",
}
CONDITION_FAILED = "ConditionalCheckFailedException"


def map_client_error(error: ClientError) -> StoreError:
    """Translate a botocore ClientError into the adapter's store errors."""
    details = error.response.get("Error", {})
    code = details.get("Code")
    message = details.get("Message") or str(error)
    if code in THROTTLING_CODES:
        return StoreThrottledError(message, code=code)
    if code in UNAVAILABLE_CODES:
        return StoreUnavailableError(message, code=code)
    return StoreError(message, code=code)


class DynamoStoreClient:
    """StoreClient implementation over the boto3 DynamoDB client."""

    def __init__(self, client: Any | None = None, *, region: str | None = None, endpoint_url: str | None = None):
        self._client: Any = client or boto3.client(
            "dynamodb", region_name=region, endpoint_url=endpoint_url
        )
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    @classmethod
    def from_settings(cls, settings: AdapterSettings) -> DynamoStoreClient:
        return cls(region=settings.region, endpoint_url=settings.endpoint_url)

    # =========================================================================
    # StoreClient
    # =========================================================================

    async def put_item(self, table: str, item: dict[str, Any]) -> None:
        await self._call("put_item", TableName=table, Item=self._serialize(item))

    async def get_item(self, table: str, key: dict[str, Any]) -> dict[str, Any] | None:
        response = await self._call("get_item", TableName=table, Key=self._serialize(key))
        item = response.get("Item")
        return self._deserialize(item) if item else None

    async def scan(
        self,
        table: str,
        *,
        expression: CompiledExpression | None = None,
        max_items: int | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"TableName": table}
        if expression:
            params["FilterExpression"] = expression.expression
            params.update(self._bindings(expression))

        items: list[dict[str, Any]] = []
        pages = 0
        while True:
            if max_items is not None and expression is None:
                # Without a filter every evaluated item is a match
                params["Limit"] = max_items - len(items)
            response = await self._call("scan", **params)
            pages += 1
            items.extend(self._deserialize(raw) for raw in response.get("Items", []))

            if max_items is not None and len(items) >= max_items:
                items = items[:max_items]
                break
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            params["ExclusiveStartKey"] = last_key

        logger.debug(f"Scan {table}: {len(items)} items in {pages} page(s)")
        return items

    async def update_item(
        self,
        table: str,
        key: dict[str, Any],
        update: CompiledExpression,
        condition: CompiledExpression | None = None,
    ) -> dict[str, Any] | None:
        names = dict(update.names)
        values = dict(update.values)
        params: dict[str, Any] = {
            "TableName": table,
            "Key": self._serialize(key),
            "UpdateExpression": update.expression,
            "ReturnValues": "ALL_NEW",
        }
        if condition:
            params["ConditionExpression"] = condition.expression
            names.update(condition.names)
            values.update(condition.values)
        params.update(self._bindings(CompiledExpression("", names, values)))

        try:
            response = await self._call("update_item", **params)
        except StoreError as e:
            if e.code == CONDITION_FAILED:
                return None
            raise
        return self._deserialize(response.get("Attributes", {}))

    async def delete_item(self, table: str, key: dict[str, Any]) -> None:
        await self._call("delete_item", TableName=table, Key=self._serialize(key))

    async def batch_delete(self, table: str, keys: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
        requests = [{"DeleteRequest": {"Key": self._serialize(key)}} for key in keys]
        response = await self._call("batch_write_item", RequestItems={table: requests})
        unprocessed = response.get("UnprocessedItems", {}).get(table, [])
        return [self._deserialize(request["DeleteRequest"]["Key"]) for request in unprocessed]

    async def describe_table(self, table: str) -> dict[str, Any] | None:
        try:
            response = await self._call("describe_table", TableName=table)
        except StoreError as e:
            if e.code == "ResourceNotFoundException":
                return None
            raise
        return response.get("Table")

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _call(self, operation: str, **params: Any) -> dict[str, Any]:
        method = getattr(self._client, operation)
        try:
            return await asyncio.to_thread(method, **params)
        except ClientError as e:
            raise map_client_error(e) from e
        except BotoCoreError as e:
            raise StoreUnavailableError(str(e)) from e

    def _bindings(self, expression: CompiledExpression) -> dict[str, Any]:
        # DynamoDB rejects empty attribute maps
        params: dict[str, Any] = {}
        if expression.names:
            params["ExpressionAttributeNames"] = expression.names
        if expression.values:
            params["ExpressionAttributeValues"] = self._serialize(expression.values)
        return params

    def _serialize(self, item: dict[str, Any]) -> dict[str, Any]:
        return {k: self._serializer.serialize(v) for k, v in item.items()}

    def _deserialize(self, item: dict[str, Any]) -> dict[str, Any]:
        return {k: self._deserializer.deserialize(v) for k, v in item.items()}
