"""
Model Definitions.

Describes the logical models the adapter stores. Field types drive value
conversion (dates are stored as ISO-8601 strings) and schema emission.

The defaults cover the core identity models: user, session, account and
verification. Callers with extra models pass their own definitions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

FieldType = Literal["string", "number", "boolean", "date", "json"]

# Written by the adapter on every create/update
TIMESTAMP_FIELDS = ("createdAt", "updatedAt")


@dataclass(frozen=True)
class FieldDefinition:
    """A single field of a model."""

    name: str
    type: FieldType = "string"


@dataclass(frozen=True)
class ModelDefinition:
    """
    Configuration for a single model.

    Attributes:
        name: Logical model name used by callers (e.g., "user", "session")
        fields: Declared fields; undeclared fields are still stored as-is
    """

    name: str
    fields: tuple[FieldDefinition, ...] = field(default_factory=tuple)

    @property
    def date_fields(self) -> frozenset[str]:
        names = {f.name for f in self.fields if f.type == "date"}
        return frozenset(names.union(TIMESTAMP_FIELDS))


def _fields(*specs: tuple[str, FieldType]) -> tuple[FieldDefinition, ...]:
    return tuple(FieldDefinition(name, type_) for name, type_ in specs)


DEFAULT_MODELS: dict[str, ModelDefinition] = {
    "user": ModelDefinition(
        name="user",
        fields=_fields(
            ("id", "string"),
            ("name", "string"),
            ("email", "string"),
            ("emailVerified", "boolean"),
            ("image", "string"),
            ("createdAt", "date"),
            ("updatedAt", "date"),
        ),
    ),
    "session": ModelDefinition(
        name="session",
        fields=_fields(
            ("id", "string"),
            ("userId", "string"),
            ("token", "string"),
            ("expiresAt", "date"),
            ("ipAddress", "string"),
            ("userAgent", "string"),
            ("createdAt", "date"),
            ("updatedAt", "date"),
        ),
    ),
    "account": ModelDefinition(
        name="account",
        fields=_fields(
            ("id", "string"),
            ("userId", "string"),
            ("accountId", "string"),
            ("providerId", "string"),
            ("accessToken", "string"),
            ("refreshToken", "string"),
            ("idToken", "string"),
            ("accessTokenExpiresAt", "date"),
            ("refreshTokenExpiresAt", "date"),
            ("scope", "string"),
            ("password", "string"),
            ("createdAt", "date"),
            ("updatedAt", "date"),
        ),
    ),
    "verification": ModelDefinition(
        name="verification",
        fields=_fields(
            ("id", "string"),
            ("identifier", "string"),
            ("value", "string"),
            ("expiresAt", "date"),
            ("createdAt", "date"),
            ("updatedAt", "date"),
        ),
    ),
}


def get_model(name: str, models: dict[str, ModelDefinition] | None = None) -> ModelDefinition:
    """Look up a model definition, falling back to an empty one for unknown models."""
    registry = DEFAULT_MODELS if models is None else models
    return registry.get(name) or ModelDefinition(name=name)
