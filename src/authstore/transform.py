"""
Value conversion between caller values and DynamoDB values.

DynamoDB has no date type and the boto3 resource layer rejects floats, so:
- datetime -> ISO-8601 string on the way in (naive values taken as UTC),
  back to an aware datetime for date fields
- float -> Decimal on the way in, Decimal -> int/float on the way out
Booleans, strings and JSON containers pass through (recursively converted).
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from authstore.models import ModelDefinition


def utc_now() -> str:
    """Current time as the ISO-8601 string stored in timestamp fields."""
    return datetime.now(timezone.utc).isoformat()


def to_store_value(value: Any) -> Any:
    """Convert a caller value into something the store accepts."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            # Naive datetimes are taken as UTC so stored dates always carry an offset
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_store_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_store_value(v) for v in value]
    return value


def from_store_value(value: Any) -> Any:
    """Convert a store value back into a plain Python value."""
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, dict):
        return {k: from_store_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_store_value(v) for v in value]
    return value


def to_store_item(data: dict[str, Any]) -> dict[str, Any]:
    return {key: to_store_value(value) for key, value in data.items()}


def from_store_item(item: dict[str, Any], model: ModelDefinition) -> dict[str, Any]:
    """Convert a stored item into an entity, parsing declared date fields."""
    date_fields = model.date_fields
    entity: dict[str, Any] = {}
    for key, value in item.items():
        if key in date_fields and isinstance(value, str):
            entity[key] = _parse_datetime(value)
        else:
            entity[key] = from_store_value(value)
    return entity


def _parse_datetime(value: str) -> datetime | str:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        # Written by something other than this adapter; hand it back untouched
        return value
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed
