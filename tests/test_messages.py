import copy
import json

import pytest

from alica_tp.errors import (
    InvalidFieldType,
    MessageNotJson,
    MessageNotUtf8,
    MissingField,
    RootNotObject,
    UnknownMessageType,
    ValidationError,
)
from alica_tp.messages import (
    ENGINE_INFO,
    MESSAGE_TYPE_SCHEMAS,
    ROLE_SWITCH,
    JsonSchemaMessageValidator,
    MessageValidatorRegistry,
    decode_message,
    default_validator_registry,
    validator_for_schema,
)


def _id(value: str, type_: int = 0) -> dict:
    return {"type": type_, "value": value}


SAMPLES = {
    "capnzero-id": _id("robot-1", 3),
    "engine-info": {
        "senderId": _id("robot-1"),
        "masterPlan": "ServeDrinks",
        "currentPlan": "DeliverDrink",
        "currentState": "DriveToCustomer",
        "currentRole": "Waiter",
        "currentTask": "DefaultTask",
        "agentIdsWithMe": [_id("robot-2")],
    },
    "entry-point-robot": {"entrypoint": 1402488893641, "robots": [_id("robot-1"), _id("robot-2")]},
    "allocation-authority-info": {
        "senderId": _id("robot-1"),
        "planId": 1402488870347,
        "parentState": 1402488893641,
        "planType": -1,
        "authority": _id("robot-2"),
        "entrypointRobots": [
            {"entrypoint": 1402488893641, "robots": [_id("robot-1")]},
            {"entrypoint": 1402488903549, "robots": []},
        ],
    },
    "plan-tree-info": {
        "senderId": _id("robot-1"),
        "stateIds": [1402488893641, 1402488903549],
        "succeededEps": [],
    },
    "role-switch": {"senderId": _id("robot-1"), "roleId": 1222973297047},
    "sync-ready": {"senderId": _id("robot-1"), "synchronisationId": 1418042796751},
    "sync-data": {"robotId": _id("robot-2"), "transitionId": 1418042806575, "transitionHolds": True, "ack": False},
    "sync-talk": {
        "senderId": _id("robot-1"),
        "syncData": [
            {"robotId": _id("robot-2"), "transitionId": 1418042806575, "transitionHolds": True, "ack": False},
        ],
    },
}

FIELD_ORDER = {
    "capnzero-id": ["type", "value"],
    "engine-info": [
        "senderId", "masterPlan", "currentPlan", "currentState",
        "currentRole", "currentTask", "agentIdsWithMe",
    ],
    "entry-point-robot": ["entrypoint", "robots"],
    "allocation-authority-info": [
        "senderId", "planId", "parentState", "planType", "authority", "entrypointRobots",
    ],
    "plan-tree-info": ["senderId", "stateIds", "succeededEps"],
    "role-switch": ["senderId", "roleId"],
    "sync-ready": ["senderId", "synchronisationId"],
    "sync-data": ["robotId", "transitionId", "transitionHolds", "ack"],
    "sync-talk": ["senderId", "syncData"],
}


def _encode(obj) -> bytes:
    return json.dumps(obj).encode("utf-8")


def _sample(schema: str) -> dict:
    return copy.deepcopy(SAMPLES[schema])


def _removal_cases():
    for schema, fields in FIELD_ORDER.items():
        for field in fields:
            yield pytest.param(schema, field, id=f"{schema}-without-{field}")


# =============================================================================
# SCHEMA COMPLETENESS
# =============================================================================

@pytest.mark.parametrize("schema", sorted(SAMPLES))
def test_fully_populated_sample_is_valid(schema):
    validator_for_schema(schema).validate(_encode(SAMPLES[schema]))


@pytest.mark.parametrize("schema", sorted(FIELD_ORDER))
def test_required_fields_follow_declared_order(schema):
    assert list(validator_for_schema(schema).required_fields) == FIELD_ORDER[schema]


@pytest.mark.parametrize("schema,field", list(_removal_cases()))
def test_removing_any_required_field_fails(schema, field):
    message = _sample(schema)
    del message[field]

    with pytest.raises(MissingField) as exc:
        validator_for_schema(schema).validate(_encode(message))
    assert exc.value.field == field


def test_engine_info_without_sender_id_fails_with_missing_sender_id(engine_info):
    del engine_info["senderId"]

    with pytest.raises(MissingField) as exc:
        validator_for_schema("engine-info").validate(_encode(engine_info))
    assert exc.value.field == "senderId"
    assert exc.value.code == "MISSING_FIELD"


def test_first_failure_in_declared_order_wins():
    message = _sample("engine-info")
    del message["currentTask"]
    message["masterPlan"] = 42

    with pytest.raises(InvalidFieldType) as exc:
        validator_for_schema("engine-info").validate(_encode(message))
    assert exc.value.field == "masterPlan"


def test_extra_fields_are_ignored():
    message = _sample("role-switch")
    message["comment"] = "not part of the schema"
    validator_for_schema("role-switch").validate(_encode(message))


# =============================================================================
# FIELD SHAPES
# =============================================================================

@pytest.mark.parametrize(
    "field,value",
    [
        ("currentPlan", 12),
        ("currentPlan", None),
        ("senderId", "robot-1"),
        ("senderId", {"type": 0}),
        ("senderId", {"type": "0", "value": "robot-1"}),
        ("senderId", {"type": 1.0, "value": "robot-1"}),
        ("agentIdsWithMe", [{"type": False, "value": "robot-2"}]),
        ("agentIdsWithMe", _id("robot-2")),
        ("agentIdsWithMe", [_id("robot-2"), {"value": "robot-3"}]),
    ],
)
def test_engine_info_field_shapes(field, value):
    message = _sample("engine-info")
    message[field] = value

    with pytest.raises(InvalidFieldType) as exc:
        validator_for_schema("engine-info").validate(_encode(message))
    assert exc.value.field == field


@pytest.mark.parametrize("value", [1.5, 1.0, True, "1", 2**63, -(2**63) - 1, None])
def test_integer_fields_require_64_bit_integers(value):
    message = _sample("role-switch")
    message["roleId"] = value

    with pytest.raises(InvalidFieldType) as exc:
        validator_for_schema("role-switch").validate(_encode(message))
    assert exc.value.field == "roleId"


@pytest.mark.parametrize("value", [2**63 - 1, -(2**63), 0])
def test_integer_field_range_limits_are_accepted(value):
    message = _sample("role-switch")
    message["roleId"] = value
    validator_for_schema("role-switch").validate(_encode(message))


def test_one_bad_element_invalidates_an_integer_list():
    message = _sample("plan-tree-info")
    message["stateIds"] = [1, 2, "3"]

    with pytest.raises(InvalidFieldType) as exc:
        validator_for_schema("plan-tree-info").validate(_encode(message))
    assert exc.value.field == "stateIds"


def test_nested_entry_point_robot_failure_is_reported_on_the_outer_field():
    message = _sample("allocation-authority-info")
    del message["entrypointRobots"][1]["robots"]

    with pytest.raises(InvalidFieldType) as exc:
        validator_for_schema("allocation-authority-info").validate(_encode(message))
    assert exc.value.field == "entrypointRobots"


def test_deeply_nested_identifier_is_checked():
    message = _sample("allocation-authority-info")
    message["entrypointRobots"][0]["robots"][0]["value"] = 7

    with pytest.raises(InvalidFieldType) as exc:
        validator_for_schema("allocation-authority-info").validate(_encode(message))
    assert exc.value.field == "entrypointRobots"


def test_sync_data_booleans_are_strict():
    message = _sample("sync-talk")
    message["syncData"][0]["ack"] = 0

    with pytest.raises(InvalidFieldType) as exc:
        validator_for_schema("sync-talk").validate(_encode(message))
    assert exc.value.field == "syncData"


# =============================================================================
# DOCUMENT LEVEL
# =============================================================================

def test_message_must_be_utf8():
    with pytest.raises(MessageNotUtf8):
        validator_for_schema("role-switch").validate(b"\xff\xfe")


@pytest.mark.parametrize("text", [b"", b"msg", b"{", b'{"roleId": NaN}', b'{"a": Infinity}'])
def test_message_must_be_json(text):
    with pytest.raises(MessageNotJson):
        validator_for_schema("role-switch").validate(text)


@pytest.mark.parametrize("text,json_type", [(b"[]", "array"), (b"1", "number"), (b'"s"', "string"), (b"null", "null")])
def test_message_root_must_be_an_object(text, json_type):
    with pytest.raises(RootNotObject) as exc:
        validator_for_schema("role-switch").validate(text)
    assert exc.value.actual_type == json_type


def test_decode_message_returns_the_document():
    assert decode_message(b'{"a": [1, 2]}') == {"a": [1, 2]}


def test_validators_are_stateless_and_shared():
    validator = validator_for_schema("engine-info")
    assert validator is validator_for_schema("engine-info")

    message = _sample("engine-info")
    for _ in range(3):
        validator.validate(_encode(message))
    del message["masterPlan"]
    with pytest.raises(MissingField):
        validator.validate(_encode(message))
    validator.validate(_encode(SAMPLES["engine-info"]))


def test_unknown_schema_name_raises():
    with pytest.raises(KeyError):
        JsonSchemaMessageValidator("no-such-schema")


# =============================================================================
# REGISTRY
# =============================================================================

def test_default_registry_knows_every_message_type():
    registry = default_validator_registry()

    assert len(registry) == 6
    assert set(registry) == set(MESSAGE_TYPE_SCHEMAS)
    for message_type, schema in MESSAGE_TYPE_SCHEMAS.items():
        registry.validate(message_type, _encode(SAMPLES[schema]))


def test_nested_schemas_have_no_message_type():
    registry = default_validator_registry()
    for schema in ("capnzero-id", "entry-point-robot", "sync-data"):
        assert schema not in MESSAGE_TYPE_SCHEMAS.values()
    assert "ALICA_CAPNZERO_ID" not in registry


def test_lookup_miss_returns_none():
    assert MessageValidatorRegistry().lookup(ENGINE_INFO) is None


def test_unknown_message_type_is_rejected():
    registry = default_validator_registry()

    with pytest.raises(UnknownMessageType) as exc:
        registry.validate("type", b"msg")
    assert exc.value.message_type == "type"
    assert isinstance(exc.value, ValidationError)


def test_message_type_lookup_is_exact():
    registry = default_validator_registry()
    with pytest.raises(UnknownMessageType):
        registry.validate(ENGINE_INFO.lower(), _encode(SAMPLES["engine-info"]))


def test_register_is_chainable_and_replaces():
    class RejectAll:
        def validate(self, message_bytes):
            raise MissingField("anything")

    registry = MessageValidatorRegistry().register(ROLE_SWITCH, validator_for_schema("role-switch"))
    registry.validate(ROLE_SWITCH, _encode(SAMPLES["role-switch"]))

    registry.register(ROLE_SWITCH, RejectAll())
    with pytest.raises(MissingField):
        registry.validate(ROLE_SWITCH, _encode(SAMPLES["role-switch"]))
    assert registry.message_types == [ROLE_SWITCH]
