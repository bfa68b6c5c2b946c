"""Tests for the schema tree model."""

import json

import pytest

from helm_schema.common import ConfigurationError
from helm_schema.schema import (
    JSON_SCHEMA_DRAFT,
    Schema,
    SchemaSerializationError,
    SkipAutoGenerationConfig,
    new_root_schema,
)


def nested_schema() -> Schema:
    return Schema(
        type=["object"],
        required=["a"],
        properties={
            "a": Schema(
                type=["object"],
                required=["b"],
                properties={"b": Schema(type=["string"])},
            ),
            "list": Schema(
                type=["array"],
                items=Schema(type=["object"], required=["c"], properties={"c": Schema(type=["integer"])}),
            ),
        },
        any_of=[Schema(required=["x"])],
    )


def test_disable_required_properties_is_recursive():
    schema = nested_schema()
    schema.disable_required_properties()
    assert schema.required == []
    assert schema.properties["a"].required == []
    assert schema.properties["list"].items.required == []
    assert schema.any_of[0].required == []


def test_to_dict_omits_empty_keywords():
    assert Schema().to_dict() == {}
    assert Schema(type=["string"], title="name").to_dict() == {"type": ["string"], "title": "name"}


def test_default_is_serialized_even_when_falsy():
    schema = Schema(type=["boolean"])
    schema.set_default(False)
    assert schema.to_dict() == {"type": ["boolean"], "default": False}


def test_root_schema_serialization():
    root = new_root_schema()
    root.properties["replicas"] = Schema(type=["integer"], title="replicas")
    data = json.loads(root.to_json())
    assert data == {
        "$schema": JSON_SCHEMA_DRAFT,
        "type": ["object"],
        "properties": {"replicas": {"type": ["integer"], "title": "replicas"}},
    }


def test_to_json_sorts_keys():
    first = Schema(properties={"b": Schema(), "a": Schema()})
    second = Schema(properties={"a": Schema(), "b": Schema()})
    assert first.to_json() == second.to_json()
    assert first.to_json().index('"a"') < first.to_json().index('"b"')


def test_to_json_reports_unserializable_values():
    schema = Schema(title="broken")
    schema.set_default(object())
    with pytest.raises(SchemaSerializationError):
        schema.to_json()


def test_update_from_dict_merges_keywords():
    schema = Schema(type=["string"], title="tag", properties={"keep": Schema(type=["integer"])})
    schema.update_from_dict({
        "type": ["string", "null"],
        "enum": ["a", "b"],
        "properties": {"keep": {"minimum": 1}, "new": {"type": "boolean"}},
        "additionalProperties": False,
        "not": {"type": "integer"},
    })
    data = schema.to_dict()
    assert data["type"] == ["string", "null"]
    assert data["enum"] == ["a", "b"]
    assert data["additionalProperties"] is False
    assert data["properties"]["keep"] == {"type": ["integer"], "minimum": 1}
    assert data["properties"]["new"] == {"type": ["boolean"]}
    assert data["not"] == {"type": ["integer"]}


def test_deepcopy_does_not_share_nodes():
    schema = nested_schema()
    copied = schema.deepcopy()
    copied.properties["a"].properties["b"].title = "changed"
    assert schema.properties["a"].properties["b"].title == ""


def test_skip_auto_generation_config_globs():
    assert SkipAutoGenerationConfig(["title"]).fields == {"title"}
    assert SkipAutoGenerationConfig(["*"]).fields == {"type", "title", "description", "default"}
    assert SkipAutoGenerationConfig(["t*"]).fields == {"type", "title"}
    assert SkipAutoGenerationConfig().fields == set()


def test_skip_auto_generation_config_rejects_unknown_fields():
    with pytest.raises(ConfigurationError):
        SkipAutoGenerationConfig(["titel"])
