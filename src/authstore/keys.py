"""
Key Strategy.

Derives the physical table name and primary key for a (model, id) pair
under either storage topology. Pure functions of configuration and input.

Single-table:
    table = table_name
    key   = {"PK": "USER#<id>", "SK": "USER#<id>"}
    items also carry `_type` = model as a discriminator

Multi-table:
    table = table_prefix + model
    key   = {"id": <id>}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from authstore.config import AdapterSettings

TYPE_FIELD = "_type"
PARTITION_KEY = "PK"
SORT_KEY = "SK"


@dataclass(frozen=True)
class KeyStrategy:
    single_table: bool = False
    table_name: str = "auth-store"
    table_prefix: str = ""

    @classmethod
    def from_settings(cls, settings: AdapterSettings) -> KeyStrategy:
        return cls(
            single_table=settings.use_single_table,
            table_name=settings.table_name,
            table_prefix=settings.table_prefix,
        )

    def resolve_table(self, model: str) -> str:
        if self.single_table:
            return self.table_name
        return f"{self.table_prefix}{model}"

    def resolve_key(self, model: str, id: str) -> dict[str, str]:
        if self.single_table:
            composite = f"{model.upper()}#{id}"
            return {PARTITION_KEY: composite, SORT_KEY: composite}
        return {"id": id}

    def discriminator(self, model: str) -> dict[str, str]:
        """Extra attributes written alongside every item of `model`."""
        if self.single_table:
            return {TYPE_FIELD: model}
        return {}

    @property
    def key_attributes(self) -> tuple[str, ...]:
        if self.single_table:
            return (PARTITION_KEY, SORT_KEY)
        return ("id",)

    @property
    def internal_attributes(self) -> frozenset[str]:
        """Attributes the adapter writes that callers never passed in."""
        if self.single_table:
            return frozenset({PARTITION_KEY, SORT_KEY, TYPE_FIELD})
        return frozenset()

    def physical_item(self, model: str, data: dict[str, Any]) -> dict[str, Any]:
        """Merge an entity with its derived key and discriminator."""
        return {
            **data,
            **self.resolve_key(model, data["id"]),
            **self.discriminator(model),
        }
