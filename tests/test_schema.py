import pytest

from alica_tp.schema import (
    available_schemas,
    load_schema,
    schema_registry,
    schema_uri,
    schema_validator,
    validate_against_schema,
)


def test_all_message_schemas_are_bundled():
    assert available_schemas() == [
        "allocation-authority-info",
        "capnzero-id",
        "common",
        "engine-info",
        "entry-point-robot",
        "plan-tree-info",
        "role-switch",
        "sync-data",
        "sync-ready",
        "sync-talk",
    ]


@pytest.mark.parametrize("name", ["capnzero-id", "engine-info", "sync-talk"])
def test_schema_ids_match_their_file_names(name):
    assert load_schema(name)["$id"] == schema_uri(name)


def test_registry_resolves_every_schema_by_id():
    registry = schema_registry()
    for name in available_schemas():
        assert registry.contents(schema_uri(name)) == load_schema(name)


def test_refs_compose_nested_schemas():
    validator = schema_validator({"$ref": schema_uri("capnzero-id")})

    assert validator.is_valid({"type": 1, "value": "robot"})
    assert not validator.is_valid({"type": 1})
    assert not validator.is_valid({"type": True, "value": "robot"})


def test_integers_are_strict():
    validator = schema_validator({"type": "integer"})

    assert validator.is_valid(3)
    assert not validator.is_valid(3.0)
    assert not validator.is_valid(False)


def test_validate_against_schema_reports_messages():
    assert validate_against_schema({"senderId": {"type": 0, "value": "a"}, "roleId": 1}, "role-switch") == []

    errors = validate_against_schema({"senderId": {"type": 0}, "roleId": "1"}, "role-switch")
    assert len(errors) == 2
    assert errors[0].startswith("$.roleId")
    assert errors[1].startswith("$.senderId")


def test_unknown_schema_raises_key_error():
    with pytest.raises(KeyError):
        load_schema("missing")
