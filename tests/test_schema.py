"""
Tests for the schema provisioner.
"""

import json

import pytest

from authstore.keys import KeyStrategy
from authstore.models import DEFAULT_MODELS
from authstore.schema import SINGLE_TABLE_RESOURCE, SchemaFile, create_schema, describe_schema


class TestSingleTable:
    """One shared table with a composite key and GSI1."""

    def test_one_table_regardless_of_models(self):
        template = describe_schema(KeyStrategy(single_table=True, table_name="auth"), DEFAULT_MODELS)
        assert list(template["Resources"]) == [SINGLE_TABLE_RESOURCE]

    def test_key_schema_and_index(self):
        template = describe_schema(KeyStrategy(single_table=True, table_name="auth"), ["user"])
        props = template["Resources"][SINGLE_TABLE_RESOURCE]["Properties"]
        assert props["TableName"] == "auth"
        assert props["BillingMode"] == "PAY_PER_REQUEST"
        assert props["KeySchema"] == [
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ]
        [index] = props["GlobalSecondaryIndexes"]
        assert index["IndexName"] == "GSI1"
        assert [k["AttributeName"] for k in index["KeySchema"]] == ["GSI1PK", "GSI1SK"]
        assert {a["AttributeName"] for a in props["AttributeDefinitions"]} == {"PK", "SK", "GSI1PK", "GSI1SK"}


class TestMultiTable:
    """One table per model keyed by id."""

    def test_table_per_model(self):
        template = describe_schema(KeyStrategy(table_prefix="auth_"), ["user", "session"])
        assert set(template["Resources"]) == {"userTable", "sessionTable"}
        props = template["Resources"]["sessionTable"]["Properties"]
        assert props["TableName"] == "auth_session"
        assert props["KeySchema"] == [{"AttributeName": "id", "KeyType": "HASH"}]
        assert props["AttributeDefinitions"] == [{"AttributeName": "id", "AttributeType": "S"}]
        assert props["BillingMode"] == "PAY_PER_REQUEST"

    def test_model_definitions_accepted(self):
        template = describe_schema(KeyStrategy(), DEFAULT_MODELS)
        assert len(template["Resources"]) == len(DEFAULT_MODELS)

    def test_template_version(self):
        assert describe_schema(KeyStrategy(), [])["AWSTemplateFormatVersion"] == "2010-09-09"


class TestSchemaFile:
    def test_default_path(self):
        schema_file = create_schema(KeyStrategy(), ["user"])
        assert schema_file.path == "dynamodb-cloudformation.json"
        assert schema_file.overwrite is True
        assert json.loads(schema_file.code)["Resources"]["userTable"]

    def test_write(self, tmp_path):
        target = tmp_path / "infra" / "tables.json"
        schema_file = create_schema(KeyStrategy(single_table=True), ["user"], str(target))
        written = schema_file.write()
        assert written == target
        assert SINGLE_TABLE_RESOURCE in json.loads(target.read_text())["Resources"]

    def test_write_refuses_overwrite_when_disabled(self, tmp_path):
        target = tmp_path / "tables.json"
        target.write_text("{}")
        with pytest.raises(FileExistsError):
            SchemaFile(code="{}", path=str(target), overwrite=False).write()
