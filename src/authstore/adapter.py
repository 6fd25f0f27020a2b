"""
AuthStore - CRUD Adapter.

The public surface an identity/session framework calls:
create, find_one, find_many, count, update, update_many, delete,
delete_many, describe_schema and create_schema.

Composition:
    KeyStrategy        -> table name + physical key for (model, id)
    predicates         -> filter / update / condition expressions
    results            -> sort, offset, limit after the scan
    BatchExecutor      -> chunked deletes, bounded update fan-out
    StoreClient        -> injected once, shared by all of the above

Semantics worth knowing:
- create is an unconditional put: an existing id is overwritten.
- find_one with only `id = x` is a direct GetItem; anything else is a
  filtered scan capped at one match. An empty where clause finds nothing.
- find_many with an empty where clause returns every row of the model.
- update/delete that match nothing return None/0; they never raise.
- update_many, delete_many and count materialize all matches first; the
  store has no update-by-filter, delete-by-filter or count-by-filter here.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence, Union

from authstore.batch import BatchExecutor
from authstore.config import AdapterSettings, get_settings
from authstore.db.adapter import StoreClient
from authstore.db.client import DynamoStoreClient
from authstore.errors import ImmutableFieldError, StoreError
from authstore.keys import TYPE_FIELD, KeyStrategy
from authstore.models import DEFAULT_MODELS, ModelDefinition, get_model
from authstore.predicates import (
    Condition,
    SortBy,
    compile_filter,
    compile_key_exists,
    compile_update,
    to_conditions,
)
from authstore.results import apply_window, check_window, scan_cap
from authstore.schema import SchemaFile, create_schema, describe_schema
from authstore.transform import from_store_item, to_store_item, utc_now

logger = logging.getLogger(__name__)

Where = Optional[Sequence[Union[Condition, Mapping[str, Any]]]]


class DynamoDBAdapter:
    """Relational-style CRUD over DynamoDB, in single- or multi-table layout."""

    def __init__(
        self,
        client: StoreClient,
        keys: KeyStrategy,
        *,
        models: Mapping[str, ModelDefinition] | None = None,
        batch: BatchExecutor | None = None,
        expose_type_field: bool = False,
    ):
        self.client = client
        self.keys = keys
        self.models = dict(models) if models is not None else dict(DEFAULT_MODELS)
        self.batch = batch or BatchExecutor(client)
        self.expose_type_field = expose_type_field

    # =========================================================================
    # Writes
    # =========================================================================

    async def create(
        self,
        model: str,
        data: Mapping[str, Any],
        select: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        """Write `data` unconditionally and return the stored entity."""
        if not data.get("id"):
            raise ValueError(f"create on '{model}' needs an id; the adapter does not generate ids")

        now = utc_now()
        entity = {
            **data,
            "createdAt": data.get("createdAt") or now,
            "updatedAt": data.get("updatedAt") or now,
        }
        item = self.keys.physical_item(model, to_store_item(entity))

        with self._operation(model, "create"):
            await self.client.put_item(self.keys.resolve_table(model), item)

        return self._project(self._to_entity(model, item), select)

    async def update(
        self,
        model: str,
        where: Where,
        update: Mapping[str, Any],
    ) -> dict[str, Any] | None:
        """
        Update the first entity matching `where`.

        Returns the full updated entity, or None when nothing matched (or the
        match was deleted before the write landed).
        """
        conditions = to_conditions(where)
        self._check_mutable(update)

        with self._operation(model, "update"):
            existing = await self._locate(model, conditions)
            if existing is None:
                logger.warning(f"update on '{model}': no match")
                return None
            return await self._update_by_id(model, existing["id"], update)

    async def update_many(self, model: str, where: Where, update: Mapping[str, Any]) -> int:
        """Update every match; returns how many entities were updated."""
        conditions = to_conditions(where)
        self._check_mutable(update)

        with self._operation(model, "update_many"):
            items = await self._scan(model, conditions)
            if not items:
                return 0

            async def apply(item: dict[str, Any]) -> dict[str, Any] | None:
                return await self._update_by_id(model, item["id"], update)

            results = await self.batch.fan_out(model, "update_many", items, apply)

        updated = sum(1 for result in results if result is not None)
        logger.info(f"update_many on '{model}': {updated}/{len(items)} updated")
        return updated

    async def delete(self, model: str, where: Where) -> int:
        """Delete the first entity matching `where`; returns 1, or 0 when nothing matched."""
        conditions = to_conditions(where)

        with self._operation(model, "delete"):
            existing = await self._locate(model, conditions)
            if existing is None:
                logger.warning(f"delete on '{model}': no match")
                return 0
            await self.client.delete_item(
                self.keys.resolve_table(model),
                self.keys.resolve_key(model, existing["id"]),
            )
        return 1

    async def delete_many(self, model: str, where: Where) -> int:
        """Delete every match in batches; returns how many were deleted."""
        conditions = to_conditions(where)

        with self._operation(model, "delete_many"):
            items = await self._scan(model, conditions)
            if not items:
                return 0
            keys = [self.keys.resolve_key(model, item["id"]) for item in items]
            return await self.batch.batch_delete(model, self.keys.resolve_table(model), keys)

    # =========================================================================
    # Reads
    # =========================================================================

    async def find_one(
        self,
        model: str,
        where: Where,
        select: Sequence[str] | None = None,
    ) -> dict[str, Any] | None:
        conditions = to_conditions(where)

        with self._operation(model, "find_one"):
            item = await self._locate(model, conditions)

        if item is None:
            return None
        return self._project(self._to_entity(model, item), select)

    async def find_many(
        self,
        model: str,
        where: Where = None,
        *,
        limit: int | None = None,
        sort_by: SortBy | Mapping[str, Any] | None = None,
        offset: int | None = None,
        select: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Scan for matches, then sort, offset and limit locally.

        Unsorted reads ask the store for at most limit + offset matches.
        Sorted reads fetch every match: the order is only known once the
        whole filtered set is in hand.
        """
        conditions = to_conditions(where)
        if isinstance(sort_by, Mapping):
            sort_by = SortBy.model_validate(sort_by)
        check_window(offset, limit)

        cap = None if sort_by else scan_cap(limit, offset)
        with self._operation(model, "find_many"):
            items = await self._scan(model, conditions, max_items=cap)

        entities = [self._to_entity(model, item) for item in items]
        window = apply_window(entities, sort_by=sort_by, offset=offset, limit=limit)
        return [self._project(entity, select) for entity in window]

    async def count(self, model: str, where: Where = None) -> int:
        """Number of matches, counted by fetching them all."""
        conditions = to_conditions(where)
        with self._operation(model, "count"):
            return len(await self._scan(model, conditions))

    # =========================================================================
    # Schema
    # =========================================================================

    def describe_schema(
        self,
        models: Iterable[str] | Mapping[str, ModelDefinition] | None = None,
    ) -> dict[str, Any]:
        return describe_schema(self.keys, self.models if models is None else models)

    def create_schema(
        self,
        models: Iterable[str] | Mapping[str, ModelDefinition] | None = None,
        file: str | None = None,
    ) -> SchemaFile:
        return create_schema(self.keys, self.models if models is None else models, file)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _locate(self, model: str, conditions: list[Condition]) -> dict[str, Any] | None:
        """Raw stored item for the first match, using GetItem when only an id is given."""
        if not conditions:
            return None

        table = self.keys.resolve_table(model)
        if _is_id_lookup(conditions):
            logger.debug(f"find '{model}' by key")
            return await self.client.get_item(table, self.keys.resolve_key(model, str(conditions[0].value)))

        items = await self._scan(model, conditions, max_items=1)
        return items[0] if items else None

    async def _scan(
        self,
        model: str,
        conditions: list[Condition],
        max_items: int | None = None,
    ) -> list[dict[str, Any]]:
        expression = compile_filter(self._scoped(model, conditions))
        return await self.client.scan(
            self.keys.resolve_table(model), expression=expression, max_items=max_items
        )

    async def _update_by_id(self, model: str, id: str, update: Mapping[str, Any]) -> dict[str, Any] | None:
        fields = dict(update)
        if "id" in fields:
            if fields["id"] != id:
                raise ImmutableFieldError(["id"])
            del fields["id"]
        # Always stamped by the adapter; a caller-supplied value is overwritten
        fields["updatedAt"] = utc_now()

        item = await self.client.update_item(
            self.keys.resolve_table(model),
            self.keys.resolve_key(model, id),
            compile_update(fields),
            condition=compile_key_exists(self.keys.key_attributes),
        )
        if item is None:
            logger.warning(f"update on '{model}' skipped: {id} was deleted before the write")
            return None
        return self._to_entity(model, item)

    def _scoped(self, model: str, conditions: list[Condition]) -> list[Condition]:
        """In single-table mode, restrict matches to this model's items."""
        scope = self.keys.discriminator(model)
        return [Condition(field=name, value=value) for name, value in scope.items()] + conditions

    def _check_mutable(self, update: Mapping[str, Any]) -> None:
        protected = sorted(set(update) & self.keys.internal_attributes)
        if protected:
            raise ImmutableFieldError(protected)

    def _to_entity(self, model: str, item: Mapping[str, Any]) -> dict[str, Any]:
        hidden = set(self.keys.internal_attributes)
        if self.expose_type_field:
            hidden.discard(TYPE_FIELD)
        visible = {key: value for key, value in item.items() if key not in hidden}
        return from_store_item(visible, get_model(model, self.models))

    @staticmethod
    def _project(entity: dict[str, Any], select: Sequence[str] | None) -> dict[str, Any]:
        if not select:
            return entity
        wanted = set(select) | {"id"}
        return {key: value for key, value in entity.items() if key in wanted}

    @staticmethod
    @contextmanager
    def _operation(model: str, operation: str) -> Iterator[None]:
        """Annotate store errors with the model and operation that hit them."""
        try:
            yield
        except StoreError as e:
            e.add_context(model, operation)
            raise


def _is_id_lookup(conditions: list[Condition]) -> bool:
    if len(conditions) != 1:
        return False
    condition = conditions[0]
    return condition.field == "id" and condition.operator == "eq" and condition.value is not None


def create_adapter(
    settings: AdapterSettings | None = None,
    client: StoreClient | None = None,
    models: Mapping[str, ModelDefinition] | None = None,
) -> DynamoDBAdapter:
    """
    Build an adapter from settings.

    The store client is created here once (boto3 unless one is passed in)
    and injected into every collaborator.
    """
    settings = settings or get_settings()
    client = client or DynamoStoreClient.from_settings(settings)
    logger.info(f"DynamoDB adapter: {settings.topology} topology")
    return DynamoDBAdapter(
        client,
        KeyStrategy.from_settings(settings),
        models=models,
        batch=BatchExecutor(
            client,
            batch_size=settings.batch_size,
            max_concurrency=settings.max_concurrency,
        ),
        expose_type_field=settings.expose_type_field,
    )
