import asyncio
import datetime
from http import HTTPStatus

import pytest
from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import StaticPool

from modelrest.errors import NotFoundError, SystemValidationError, ValidationError
from modelrest.model import ModelDescriptor
from modelrest.paging import PageSpec
from modelrest.registry import ModelRegistry
from modelrest.sqla import SqlAdapter, model_table, table_name

from conftest import UUID1, UUID_MISSING, make_client


@pytest.fixture
def adapter() -> SqlAdapter:
    engine = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    return SqlAdapter(engine)


def test_tables_are_created(adapter: SqlAdapter, registry: ModelRegistry) -> None:
    adapter.repository(registry["ComputedEnum"])
    inspector = inspect(adapter.engine)
    assert "computed_enum" in inspector.get_table_names()
    columns = {column["name"] for column in inspector.get_columns("computed_enum")}
    assert columns == {"_seq", "uuid", "stateEnum"}


def test_reserved_column_names() -> None:
    from sqlalchemy import MetaData

    model = ModelDescriptor("Clash", props={"_seq": {}})
    with pytest.raises(SystemValidationError):
        model_table(model, MetaData())
    assert table_name(ModelDescriptor("MyModel")) == "my_model"


def test_repository_operations(adapter: SqlAdapter, registry: ModelRegistry) -> None:
    model = registry["Mixed"]
    repository = adapter.repository(model)

    async def scenario() -> None:
        record = model.new_record()
        record.update({"myDateProp": "2019-08-01", "myIntegerProp": "7"})
        record = await repository.save(record)
        assert await repository.exists(record.uuid)

        loaded = await repository.load(record.uuid)
        assert loaded.to_dict() == {"uuid": record.uuid, "myDateProp": datetime.date(2019, 8, 1), "myIntegerProp": 7}

        loaded.assign("myIntegerProp", 8)
        await repository.save(loaded)
        assert (await repository.load(record.uuid)).get("myIntegerProp") == 8

        with pytest.raises(NotFoundError):
            await repository.save(model.new_record(UUID_MISSING))
        await repository.save(model.new_record(UUID1), ignore_unloaded=True)
        assert await repository.exists(UUID1)

        await repository.remove(record.uuid)
        assert not await repository.exists(record.uuid)
        with pytest.raises(NotFoundError):
            await repository.remove(record.uuid)
        with pytest.raises(NotFoundError):
            await repository.load(record.uuid)

    asyncio.run(scenario())


def test_find_and_list(adapter: SqlAdapter, registry: ModelRegistry) -> None:
    model = registry["Mixed"]
    repository = adapter.repository(model)

    async def scenario() -> None:
        uuids = {}
        for value in ("b", "a", "c", None):
            record = model.new_record()
            record.assign("myStringProp", value)
            record.assign("myIntegerProp", 1)
            uuids[value] = (await repository.save(record)).uuid

        meta = {}
        records = await repository.find({"between": {"name": "myStringProp", "lower": "a", "upper": "b"}}, PageSpec(), meta)
        assert [record.get("myStringProp") for record in records] == ["b", "a"]
        assert meta == {"count": 2}

        records = await repository.find({"null": {"name": "myStringProp"}}, PageSpec())
        assert [record.uuid for record in records] == [uuids[None]]

        records = await repository.list(PageSpec(sort_by="myStringProp", ascending=False))
        assert [record.get("myStringProp") for record in records] == ["c", "b", "a", None]

        meta = {}
        records = await repository.list(PageSpec(offset=1, limit=2, sort_by="myStringProp"), meta, load_records=False)
        assert [record.to_dict() for record in records] == [{"uuid": uuids["b"]}, {"uuid": uuids["c"]}]
        assert meta == {"count": 4}

        with pytest.raises(ValidationError):
            await repository.find({"like": {"name": "myStringProp", "value": "a"}}, PageSpec())
        with pytest.raises(ValidationError):
            await repository.find({"eq": {"name": "missing", "value": "a"}}, PageSpec())

    asyncio.run(scenario())


def test_computed_properties_are_filtered_in_memory(adapter: SqlAdapter, registry: ModelRegistry) -> None:
    client = make_client(registry, adapter=adapter)
    for state in ("finished", "created", "prepared"):
        assert client.post("/api/computed-enum", json={"state": state}).status_code == HTTPStatus.CREATED

    response = client.get("/api/computed-enum", params={"q": "state:neq:created", "sortBy": "label", "count": "1"})
    assert [item["state"] for item in response.json()["items"]] == ["finished", "prepared"]
    assert response.json()["count"] == 2


def test_rest_api_on_sql_storage(adapter: SqlAdapter, registry: ModelRegistry) -> None:
    client = make_client(registry, adapter=adapter)
    values = {"myDateProp": "2019-08-01", "myStringProp": "text", "myBooleanProp": False, "myNumericProp": 1.5}

    assert client.put(f"/api/mixed/{UUID1}", json=values).status_code == HTTPStatus.OK
    assert client.get(f"/api/mixed/{UUID1}").json() == dict(values, uuid=UUID1)

    response = client.patch(f"/api/mixed/{UUID1}", json={"myIntegerProp": 3})
    assert response.json() == dict(values, uuid=UUID1, myIntegerProp=3)

    assert client.put(f"/api/mixed/{UUID1}", json={"myStringProp": "only"}).status_code == HTTPStatus.OK
    assert client.get(f"/api/mixed/{UUID1}").json() == {"uuid": UUID1, "myStringProp": "only"}

    assert client.get("/api/mixed", params={"q": "myStringProp:eq:only"}).json() == {"items": [{"uuid": UUID1, "myStringProp": "only"}]}
    assert client.delete(f"/api/mixed/{UUID1}").status_code == HTTPStatus.OK
    assert client.get("/api/mixed").json() == {"items": []}


def test_timestamps_are_stored_as_utc(adapter: SqlAdapter) -> None:
    registry = ModelRegistry.from_definitions({"Event": {"props": {"at": {"type": "timestamp"}}}})
    client = make_client(registry, adapter=adapter)
    uuid = client.post("/api/event", json={"at": "2019-08-01T12:00:00+02:00"}).json()["uuid"]
    assert client.get(f"/api/event/{uuid}").json() == {"uuid": uuid, "at": "2019-08-01T10:00:00"}

    response = client.get("/api/event", params={"q": "at:lt:2019-08-01T10:30:00Z"})
    assert [item["uuid"] for item in response.json()["items"]] == [uuid]
