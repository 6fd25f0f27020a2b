"""
Predicate Compiler.

Turns structured where clauses into DynamoDB filter and update expressions.

Every field is referenced through a name alias (#field) so reserved words
(name, token, value, ...) never clash, and every value through a positional
placeholder (:val0, :val1, ...) so two conditions never share a binding.
All conditions are AND-ed; OR across conditions is not supported.

Condition examples:
    {"field": "email", "value": "a@b.co"}                      -> #email = :val0
    {"field": "age", "operator": "gte", "value": 18}           -> #age >= :val0
    {"field": "role", "operator": "in", "value": ["a", "b"]}   -> #role IN (:val0_0, :val0_1)
    {"field": "image", "value": None}                          -> attribute_not_exists(#image)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from authstore.errors import MalformedConditionError
from authstore.transform import to_store_value

logger = logging.getLogger(__name__)

Operator = Literal[
    "eq", "ne", "gt", "gte", "lt", "lte", "in", "not_in", "contains", "starts_with", "is_null"
]

OPERATOR_ALIASES = {
    "ge": "gte",
    "le": "lte",
    "is-null": "is_null",
    "not-in": "not_in",
    "starts-with": "starts_with",
}

COMPARISON_SYMBOLS = {"eq": "=", "ne": "<>", "gt": ">", "gte": ">=", "lt": "<", "lte": "<="}

# DynamoDB rejects IN lists longer than this
MAX_IN_VALUES = 100

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# =============================================================================
# Condition Models
# =============================================================================


class Condition(BaseModel):
    """A single where clause: field, operator, value and connector."""

    model_config = ConfigDict(frozen=True)

    field: str
    operator: Operator = "eq"
    value: Any = None
    connector: Literal["AND", "OR"] = "AND"

    @field_validator("operator", mode="before")
    @classmethod
    def _normalize_operator(cls, value: Any) -> Any:
        if value is None:
            return "eq"
        if isinstance(value, str):
            return OPERATOR_ALIASES.get(value, value)
        return value

    @field_validator("connector", mode="before")
    @classmethod
    def _normalize_connector(cls, value: Any) -> Any:
        if value is None:
            return "AND"
        return value.upper() if isinstance(value, str) else value

    @field_validator("field")
    @classmethod
    def _check_field_name(cls, value: str) -> str:
        if not _FIELD_NAME.match(value):
            raise ValueError(f"field name {value!r} is not a plain attribute name")
        return value

    @model_validator(mode="after")
    def _check_value_shape(self) -> Condition:
        op, value = self.operator, self.value
        if op in ("in", "not_in"):
            if not isinstance(value, (list, tuple, set, frozenset)):
                raise ValueError(f"'{op}' needs a list of values, got {type(value).__name__}")
            if not value:
                raise ValueError(f"'{op}' needs at least one value")
            if len(value) > MAX_IN_VALUES:
                raise ValueError(f"'{op}' supports at most {MAX_IN_VALUES} values")
        elif op == "is_null":
            if not isinstance(value, bool):
                raise ValueError("'is_null' needs a boolean value")
        elif op in ("gt", "gte", "lt", "lte"):
            if value is None or isinstance(value, (bool, list, tuple, set, dict)):
                raise ValueError(f"'{op}' needs a string, number or date value")
        elif op == "starts_with":
            if not isinstance(value, str):
                raise ValueError("'starts_with' needs a string value")
        elif op == "contains":
            if value is None or isinstance(value, (list, tuple, set, dict)):
                raise ValueError("'contains' needs a scalar value")
        return self


class SortBy(BaseModel):
    """Sort order applied by the result post-processor."""

    field: str
    direction: Literal["asc", "desc"] = "asc"


def to_conditions(where: Iterable[Condition | Mapping[str, Any]] | None) -> list[Condition]:
    """
    Validate raw where clauses into Conditions.

    Raises MalformedConditionError for unknown operators, wrong value shapes
    and OR connectors joining two conditions.
    """
    conditions: list[Condition] = []
    for index, raw in enumerate(where or []):
        if isinstance(raw, Condition):
            condition = raw
        else:
            try:
                condition = Condition.model_validate(raw)
            except ValidationError as e:
                error = e.errors()[0]
                field_name = raw.get("field") if isinstance(raw, Mapping) else None
                raise MalformedConditionError(error["msg"], field=field_name) from e
        if index > 0 and condition.connector == "OR":
            raise MalformedConditionError(
                "OR connectors are not supported; conditions are always AND-ed",
                field=condition.field,
            )
        conditions.append(condition)
    return conditions


# =============================================================================
# Compiled Expressions
# =============================================================================


@dataclass(frozen=True)
class CompiledExpression:
    """An expression string plus its name and value bindings."""

    expression: str
    names: dict[str, str] = field(default_factory=dict)
    values: dict[str, Any] = field(default_factory=dict)


def compile_filter(conditions: Sequence[Condition]) -> CompiledExpression | None:
    """
    Compile conditions into a FilterExpression.

    Returns None for an empty list: no filter at all, not a filter that
    matches nothing. Callers decide what an empty where clause means.
    """
    if not conditions:
        return None

    fragments: list[str] = []
    names: dict[str, str] = {}
    values: dict[str, Any] = {}

    for index, condition in enumerate(conditions):
        alias = f"#{condition.field}"
        placeholder = f":val{index}"
        names[alias] = condition.field
        op, value = condition.operator, condition.value

        if op == "is_null":
            fragments.append(_existence(alias, absent=value))
        elif op in ("eq", "ne") and value is None:
            # No null type in the store: null means "attribute absent"
            fragments.append(_existence(alias, absent=(op == "eq")))
        elif op in COMPARISON_SYMBOLS:
            fragments.append(f"{alias} {COMPARISON_SYMBOLS[op]} {placeholder}")
            values[placeholder] = to_store_value(value)
        elif op in ("in", "not_in"):
            members = []
            for i, member in enumerate(value):
                member_placeholder = f"{placeholder}_{i}"
                members.append(member_placeholder)
                values[member_placeholder] = to_store_value(member)
            clause = f"{alias} IN ({', '.join(members)})"
            fragments.append(clause if op == "in" else f"NOT ({clause})")
        elif op == "contains":
            fragments.append(f"contains({alias}, {placeholder})")
            values[placeholder] = to_store_value(value)
        elif op == "starts_with":
            fragments.append(f"begins_with({alias}, {placeholder})")
            values[placeholder] = to_store_value(value)
        else:
            raise MalformedConditionError(f"unsupported operator {op!r}", field=condition.field)

    compiled = CompiledExpression(" AND ".join(fragments), names, values)
    logger.debug(f"Compiled filter: {compiled.expression}")
    return compiled


def compile_update(fields: Mapping[str, Any]) -> CompiledExpression:
    """
    Compile a field mapping into an UpdateExpression.

    Values are SET; None values are REMOVEd, mirroring the null-as-absence
    rule used by filters.
    """
    if not fields:
        raise MalformedConditionError("update needs at least one field")

    assignments: list[str] = []
    removals: list[str] = []
    names: dict[str, str] = {}
    values: dict[str, Any] = {}

    for index, (name, value) in enumerate(fields.items()):
        if not _FIELD_NAME.match(name):
            raise MalformedConditionError("not a plain attribute name", field=name)
        alias = f"#{name}"
        names[alias] = name
        if value is None:
            removals.append(alias)
        else:
            placeholder = f":val{index}"
            assignments.append(f"{alias} = {placeholder}")
            values[placeholder] = to_store_value(value)

    clauses = []
    if assignments:
        clauses.append(f"SET {', '.join(assignments)}")
    if removals:
        clauses.append(f"REMOVE {', '.join(removals)}")

    compiled = CompiledExpression(" ".join(clauses), names, values)
    logger.debug(f"Compiled update: {compiled.expression}")
    return compiled


def compile_key_exists(key_attributes: Sequence[str]) -> CompiledExpression:
    """ConditionExpression requiring the item to already exist."""
    names = {f"#{attr}": attr for attr in key_attributes}
    expression = " AND ".join(f"attribute_exists({alias})" for alias in names)
    return CompiledExpression(expression, names, {})


def _existence(alias: str, absent: bool) -> str:
    if absent:
        return f"attribute_not_exists({alias})"
    return f"attribute_exists({alias})"
