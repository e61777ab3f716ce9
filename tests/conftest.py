import copy
import json
import logging
import pathlib
import sys

import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import alica_tp`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))


ENGINE_INFO = {
    "senderId": {"type": 0, "value": "robot-1"},
    "masterPlan": "ServeDrinks",
    "currentPlan": "DeliverDrink",
    "currentState": "DriveToCustomer",
    "currentRole": "Waiter",
    "currentTask": "DefaultTask",
    "agentIdsWithMe": [{"type": 0, "value": "robot-2"}, {"type": 0, "value": "robot-3"}],
}


@pytest.fixture(autouse=True)
def _propagate_package_logs():
    # configure_logging() tests may attach handlers; keep caplog working regardless.
    logger = logging.getLogger("alica_tp")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    logger.propagate = True
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def engine_info() -> dict:
    return copy.deepcopy(ENGINE_INFO)


@pytest.fixture
def engine_info_bytes(engine_info) -> bytes:
    return json.dumps(engine_info, separators=(",", ":")).encode("utf-8")


@pytest.fixture
def family():
    from alica_tp.addressing import TransactionFamily

    return TransactionFamily()


@pytest.fixture
def store(family):
    from alica_tp.store import InMemoryStateStore

    return InMemoryStateStore(namespaces=[family.namespace])


@pytest.fixture
def handler(family):
    from alica_tp.handler import TransactionHandler
    from alica_tp.messages import default_validator_registry

    return TransactionHandler(family=family, validators=default_validator_registry())
