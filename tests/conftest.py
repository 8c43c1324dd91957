import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from modelrest import MemoryAdapter, ModelRegistry, ModelRestAPI
from modelrest.errors import ValidationError

STATES = ("created", "prepared", "processing", "finished")

UUID1 = "12345678-1234-1234-1234-1234567890ab"
UUID_MISSING = "12345678-1234-1234-1234-1234567890ac"
UUID_MALFORMED = "12345678-1234-1234-1234-1234567890a"


def _get_state(record):
    index = record.get("stateEnum")
    return None if index is None else STATES[index]


def _set_state(record, value):
    if value is not None and value not in STATES:
        raise ValidationError(f"invalid state {value}")
    record.assign("stateEnum", None if value is None else STATES.index(value))


def _get_label(record):
    state = _get_state(record)
    return None if state is None else f"state: {state}"


def _is_john(request, model):
    return request.query_params.get("user") == "john.doe"


MODEL_DEFINITIONS = {
    "Mixed": {
        "props": {
            "myDateProp": {"type": "date"},
            "myStringProp": {},
            "myIntegerProp": {"type": "integer"},
            "myNumericProp": {"type": "number"},
            "myBooleanProp": {"type": "boolean"},
        },
    },
    "ComputedEnum": {
        "props": {"stateEnum": {"type": "integer", "index": True}},
        "computed": {"state": {"get": _get_state, "set": _set_state}, "label": _get_label},
    },
    "Simple": {"props": {"card": {}, "user": {"type": "uuid"}}},
    "Secret": {"props": {"label": {}}, "options": {"expose": False}},
    "Protected": {"props": {"label": {}}, "access": _is_john},
    "Hidden": {"props": {"label": {}}, "options": {"promote": False}},
    "Broken": {"props": {"label": "not a mapping"}},
}


def make_client(registry, adapter=None, **kwargs) -> TestClient:
    app = FastAPI()
    options = dict(prefix="/api", convenience=True, cors="model")
    options.update(kwargs)
    ModelRestAPI(app, registry, adapter=adapter if adapter is not None else MemoryAdapter(), **options)
    return TestClient(app)


@pytest.fixture
def registry() -> ModelRegistry:
    return ModelRegistry.from_definitions(MODEL_DEFINITIONS)


@pytest.fixture
def client(registry: ModelRegistry) -> TestClient:
    return make_client(registry)
