"""
In-Memory Store Client.

A StoreClient that keeps tables in dicts and evaluates the same expression
strings the predicate compiler sends to DynamoDB. Used by the test suite
and for running the adapter without AWS.

Comparison rules follow DynamoDB: a missing attribute never satisfies a
comparison, values of different types are never equal, and numbers are
held as Decimal.

Table keys are inferred from the item: (PK, SK) when the item carries a
PK attribute, otherwise (id,).
"""

from __future__ import annotations

import copy
import logging
import re
from decimal import Decimal
from typing import Any, Callable, Sequence

from authstore.errors import StoreError
from authstore.predicates import CompiledExpression

logger = logging.getLogger(__name__)

# DynamoDB BatchWriteItem request ceiling
BATCH_LIMIT = 25

_EXISTS = re.compile(r"^attribute_(not_)?exists\((#\w+)\)$")
_FUNCTION = re.compile(r"^(contains|begins_with)\((#\w+), (:\w+)\)$")
_NOT = re.compile(r"^NOT \((.+)\)$")
_IN = re.compile(r"^(#\w+) IN \((.+)\)$")
_COMPARE = re.compile(r"^(#\w+) (=|<>|>=|<=|>|<) (:\w+)$")
_UPDATE = re.compile(r"^(?:SET (?P<set>.+?))?\s*(?:REMOVE (?P<remove>.+))?$")

_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "=": lambda a, b: a == b,
    "<>": lambda a, b: a != b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
}


def _validation_error(message: str) -> StoreError:
    return StoreError(message, code="ValidationException")


def _normalize(value: Any) -> Any:
    """Hold numbers as Decimal, the way DynamoDB hands them back."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return value


def _kind(value: Any) -> str:
    if isinstance(value, bool):
        return "BOOL"
    if isinstance(value, Decimal):
        return "N"
    if isinstance(value, str):
        return "S"
    if value is None:
        return "NULL"
    return type(value).__name__


# =============================================================================
# Expression Evaluation
# =============================================================================


def evaluate_condition(item: dict[str, Any] | None, expression: CompiledExpression) -> bool:
    """Evaluate a filter/condition expression against a stored item."""
    item = item or {}
    values = {k: _normalize(v) for k, v in expression.values.items()}
    return all(
        _evaluate_fragment(item, fragment, expression.names, values)
        for fragment in expression.expression.split(" AND ")
    )


def _evaluate_fragment(item: dict, fragment: str, names: dict, values: dict) -> bool:
    def attribute(alias: str) -> str:
        if alias not in names:
            raise _validation_error(f"Unbound attribute name {alias}")
        return names[alias]

    def value(placeholder: str) -> Any:
        if placeholder not in values:
            raise _validation_error(f"Unbound attribute value {placeholder}")
        return values[placeholder]

    if match := _EXISTS.match(fragment):
        present = attribute(match.group(2)) in item
        return not present if match.group(1) else present

    if match := _NOT.match(fragment):
        return not _evaluate_fragment(item, match.group(1), names, values)

    if match := _FUNCTION.match(fragment):
        function, alias, placeholder = match.groups()
        name, operand = attribute(alias), value(placeholder)
        if name not in item:
            return False
        current = item[name]
        if function == "begins_with":
            return isinstance(current, str) and isinstance(operand, str) and current.startswith(operand)
        if isinstance(current, str):
            return isinstance(operand, str) and operand in current
        if isinstance(current, (list, set)):
            return operand in current
        return False

    if match := _IN.match(fragment):
        name = attribute(match.group(1))
        if name not in item:
            return False
        members = [value(p.strip()) for p in match.group(2).split(",")]
        current = item[name]
        return any(_kind(current) == _kind(m) and current == m for m in members)

    if match := _COMPARE.match(fragment):
        alias, operator, placeholder = match.groups()
        name, operand = attribute(alias), value(placeholder)
        if name not in item:
            return False
        current = item[name]
        if _kind(current) != _kind(operand):
            return operator == "<>"
        if operator not in ("=", "<>") and _kind(current) not in ("N", "S"):
            raise _validation_error(f"Incorrect operand type for operator {operator}")
        return _COMPARATORS[operator](current, operand)

    raise _validation_error(f"Invalid expression fragment: {fragment}")


def apply_update(item: dict[str, Any], expression: CompiledExpression) -> dict[str, Any]:
    """Apply a SET/REMOVE update expression to a copy of `item`."""
    match = _UPDATE.match(expression.expression.strip())
    if not match or not (match.group("set") or match.group("remove")):
        raise _validation_error(f"Invalid update expression: {expression.expression}")

    updated = dict(item)
    for assignment in (match.group("set") or "").split(", "):
        if not assignment:
            continue
        alias, _, placeholder = assignment.partition(" = ")
        if alias not in expression.names or placeholder not in expression.values:
            raise _validation_error(f"Unbound assignment: {assignment}")
        updated[expression.names[alias]] = _normalize(expression.values[placeholder])
    for alias in (match.group("remove") or "").split(", "):
        if not alias:
            continue
        updated.pop(expression.names[alias.strip()], None)
    return updated


# =============================================================================
# Store Client
# =============================================================================


class MemoryStoreClient:
    """
    StoreClient over plain dicts.

    Every call is appended to `calls` as (operation, table) so tests can
    assert on round trips.
    """

    def __init__(self) -> None:
        self.tables: dict[str, dict[tuple, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []

    def calls_to(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    def items(self, table: str) -> list[dict[str, Any]]:
        """Raw stored items, for inspection."""
        return [copy.deepcopy(item) for item in self.tables.get(table, {}).values()]

    async def put_item(self, table: str, item: dict[str, Any]) -> None:
        self.calls.append(("put_item", table))
        stored = _normalize(item)
        self.tables.setdefault(table, {})[self._key_of(stored)] = stored

    async def get_item(self, table: str, key: dict[str, Any]) -> dict[str, Any] | None:
        self.calls.append(("get_item", table))
        item = self.tables.get(table, {}).get(self._key_of(_normalize(key)))
        return copy.deepcopy(item) if item is not None else None

    async def scan(
        self,
        table: str,
        *,
        expression: CompiledExpression | None = None,
        max_items: int | None = None,
    ) -> list[dict[str, Any]]:
        self.calls.append(("scan", table))
        matches = []
        for item in self.tables.get(table, {}).values():
            if expression is None or evaluate_condition(item, expression):
                matches.append(copy.deepcopy(item))
                if max_items is not None and len(matches) >= max_items:
                    break
        return matches

    async def update_item(
        self,
        table: str,
        key: dict[str, Any],
        update: CompiledExpression,
        condition: CompiledExpression | None = None,
    ) -> dict[str, Any] | None:
        self.calls.append(("update_item", table))
        rows = self.tables.setdefault(table, {})
        normalized_key = _normalize(key)
        row_key = self._key_of(normalized_key)
        existing = rows.get(row_key)

        if condition is not None and not evaluate_condition(existing, condition):
            return None

        updated = apply_update(existing or dict(normalized_key), update)
        rows[row_key] = updated
        return copy.deepcopy(updated)

    async def delete_item(self, table: str, key: dict[str, Any]) -> None:
        self.calls.append(("delete_item", table))
        self.tables.get(table, {}).pop(self._key_of(_normalize(key)), None)

    async def batch_delete(self, table: str, keys: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
        self.calls.append(("batch_delete", table))
        if len(keys) > BATCH_LIMIT:
            raise _validation_error(f"Too many items requested for the BatchWriteItem call: {len(keys)}")
        rows = self.tables.get(table, {})
        for key in keys:
            rows.pop(self._key_of(_normalize(key)), None)
        return []

    async def describe_table(self, table: str) -> dict[str, Any] | None:
        self.calls.append(("describe_table", table))
        if table not in self.tables:
            return None
        return {"TableName": table, "TableStatus": "ACTIVE", "ItemCount": len(self.tables[table])}

    @staticmethod
    def _key_of(item: dict[str, Any]) -> tuple:
        if "PK" in item:
            return (item["PK"], item.get("SK"))
        if "id" not in item:
            raise _validation_error("The provided key element does not match the schema")
        return (item["id"],)
