"""
Schema Provisioner.

Emits a CloudFormation template describing the DynamoDB tables the adapter
expects. Nothing is created here; the template is handed to whatever
provisions infrastructure.

Single-table: one table keyed by PK/SK with a GSI1 (GSI1PK/GSI1SK) index.
Multi-table: one table per model keyed by id.
Both use on-demand (PAY_PER_REQUEST) billing.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from authstore.keys import PARTITION_KEY, SORT_KEY, KeyStrategy
from authstore.models import ModelDefinition

logger = logging.getLogger(__name__)

TEMPLATE_VERSION = "2010-09-09"
SINGLE_TABLE_RESOURCE = "AuthStoreTable"
DEFAULT_SCHEMA_FILE = "dynamodb-cloudformation.json"


@dataclass(frozen=True)
class SchemaFile:
    """Generated schema code and where it should be written."""

    code: str
    path: str
    overwrite: bool = True

    def write(self) -> Path:
        target = Path(self.path)
        if target.exists() and not self.overwrite:
            raise FileExistsError(f"Schema file already exists: {target}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.code + "\n", encoding="utf-8")
        logger.info(f"Wrote schema to {target}")
        return target


def _string_attributes(*names: str) -> list[dict[str, str]]:
    return [{"AttributeName": name, "AttributeType": "S"} for name in names]


def _model_names(models: Iterable[str] | Mapping[str, ModelDefinition]) -> list[tuple[str, str]]:
    """(resource key, model name) pairs."""
    if isinstance(models, Mapping):
        return [(key, definition.name) for key, definition in models.items()]
    return [(name, name) for name in models]


def describe_schema(
    keys: KeyStrategy,
    models: Iterable[str] | Mapping[str, ModelDefinition],
) -> dict[str, Any]:
    """Build the CloudFormation template for the configured topology."""
    resources: dict[str, Any] = {}

    if keys.single_table:
        resources[SINGLE_TABLE_RESOURCE] = {
            "Type": "AWS::DynamoDB::Table",
            "Properties": {
                "TableName": keys.table_name,
                "BillingMode": "PAY_PER_REQUEST",
                "AttributeDefinitions": _string_attributes(
                    PARTITION_KEY, SORT_KEY, "GSI1PK", "GSI1SK"
                ),
                "KeySchema": [
                    {"AttributeName": PARTITION_KEY, "KeyType": "HASH"},
                    {"AttributeName": SORT_KEY, "KeyType": "RANGE"},
                ],
                "GlobalSecondaryIndexes": [
                    {
                        "IndexName": "GSI1",
                        "KeySchema": [
                            {"AttributeName": "GSI1PK", "KeyType": "HASH"},
                            {"AttributeName": "GSI1SK", "KeyType": "RANGE"},
                        ],
                        "Projection": {"ProjectionType": "ALL"},
                    }
                ],
            },
        }
    else:
        for key, model in _model_names(models):
            resources[f"{key}Table"] = {
                "Type": "AWS::DynamoDB::Table",
                "Properties": {
                    "TableName": keys.resolve_table(model),
                    "BillingMode": "PAY_PER_REQUEST",
                    "AttributeDefinitions": _string_attributes("id"),
                    "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
                },
            }

    return {"AWSTemplateFormatVersion": TEMPLATE_VERSION, "Resources": resources}


def create_schema(
    keys: KeyStrategy,
    models: Iterable[str] | Mapping[str, ModelDefinition],
    file: str | None = None,
) -> SchemaFile:
    template = describe_schema(keys, models)
    return SchemaFile(
        code=json.dumps(template, indent=2),
        path=file or DEFAULT_SCHEMA_FILE,
        overwrite=True,
    )
