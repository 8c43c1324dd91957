"""
SQLAlchemy backed record storage

Every model is stored in its own table, with one column per declared property.
Computed properties aren't stored: filtering or sorting by a computed property
is done in memory after fetching the rows.

SQLAlchemy engines are synchronous, the statements are executed in the threadpool
so they don't block the event loop.
"""
import logging
import uuid as uuid_lib
from typing import Any, Callable, Dict, List, MutableMapping, Optional, Union

from sqlalchemy import Boolean, Column, Date, DateTime, Float, Integer, MetaData, String, Table, Text, create_engine, func, select
from sqlalchemy.engine import Engine
from starlette.concurrency import run_in_threadpool

import modelrest
from .errors import NotFoundError, SystemValidationError, ValidationError
from .memory import compile_predicate
from .model import ModelDescriptor, Record
from .paging import PageSpec, paginate
from .query import Predicate, predicate_operation
from .repository import Adapter, ModelRepository

SEQUENCE_COLUMN = "_seq"
UUID_COLUMN = "uuid"

COLUMN_TYPES = {
    "string": lambda: String(255),
    "text": Text,
    "integer": Integer,
    "number": Float,
    "boolean": Boolean,
    "date": Date,
    "timestamp": DateTime,
    "uuid": lambda: String(36),
}

CONDITIONS: Dict[str, Callable[[Any, Any], Any]] = {
    "eq": lambda column, value: column == value,
    "neq": lambda column, value: column != value,
    "lt": lambda column, value: column < value,
    "lte": lambda column, value: column <= value,
    "gt": lambda column, value: column > value,
    "gte": lambda column, value: column >= value,
}


def table_name(model: ModelDescriptor) -> str:
    return model.route_name.replace("-", "_")


def model_table(model: ModelDescriptor, metadata: MetaData) -> Table:
    """
    :return: table storing the records of the model, the sequence column preserves the insertion order
    """
    columns = [
        Column(SEQUENCE_COLUMN, Integer, primary_key=True, autoincrement=True),
        Column(UUID_COLUMN, String(36), nullable=False, unique=True, index=True),
    ]
    for name, prop in model.props.items():
        if name in (SEQUENCE_COLUMN, UUID_COLUMN):
            raise SystemValidationError(f"property name {name} of model {model.name} is reserved for storage")
        indexed = any(prop.get(option) for option in ("index", "indexes", "indices"))
        columns.append(Column(name, COLUMN_TYPES[prop["type"]](), nullable=True, index=indexed))
    return Table(table_name(model), metadata, *columns)


class SqlRepository(ModelRepository):
    def __init__(self, model: ModelDescriptor, engine: Engine, table: Table, logger: Optional[logging.Logger] = None) -> None:
        super().__init__(model)
        self.engine = engine
        self.table = table
        self.log = logger or modelrest.log.getChild(f"sqla.{model.route_name}")

    def _record(self, row: Any, load_records: bool = True) -> Record:
        if not load_records:
            return Record(self.model, row[UUID_COLUMN], loaded=False)
        return Record(self.model, row[UUID_COLUMN], {name: row[name] for name in self.model.props})

    def _exists(self, uuid: str) -> bool:
        stmt = select(self.table.c[UUID_COLUMN]).where(self.table.c[UUID_COLUMN] == uuid)
        with self.engine.connect() as conn:
            return conn.execute(stmt).first() is not None

    def _load(self, uuid: str) -> Record:
        stmt = select(self.table).where(self.table.c[UUID_COLUMN] == uuid)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        if row is None:
            raise NotFoundError(f"no {self.model.name} with uuid {uuid}")
        return self._record(row)

    def _save(self, record: Record, ignore_unloaded: bool) -> Record:
        values = {name: record.properties.get(name) for name in self.model.props}
        with self.engine.begin() as conn:
            if record.uuid is None:
                record.uuid = str(uuid_lib.uuid4())
            elif conn.execute(select(self.table.c[UUID_COLUMN]).where(self.table.c[UUID_COLUMN] == record.uuid)).first():
                if values:
                    conn.execute(self.table.update().where(self.table.c[UUID_COLUMN] == record.uuid).values(**values))
                return record
            elif not ignore_unloaded:
                raise NotFoundError(f"no {self.model.name} with uuid {record.uuid}")
            conn.execute(self.table.insert().values(uuid=record.uuid, **values))
        return record

    def _remove(self, uuid: str) -> None:
        with self.engine.begin() as conn:
            result = conn.execute(self.table.delete().where(self.table.c[UUID_COLUMN] == uuid))
        if not result.rowcount:
            raise NotFoundError(f"no {self.model.name} with uuid {uuid}")

    def _condition(self, predicate: Predicate) -> Any:
        """
        :return: sql condition of a predicate on a declared property
        """
        operation, args = predicate_operation(predicate)
        name = args.get("name")
        column = self.table.c[name]
        if operation == "null":
            return column.is_(None)
        if operation == "notnull":
            return column.isnot(None)
        if operation == "between":
            if "lower" not in args or "upper" not in args:
                raise ValidationError("invalid query, between requires lower and upper limit")
            return column.between(self.model.coerce(name, args["lower"]), self.model.coerce(name, args["upper"]))
        condition = CONDITIONS.get(operation)
        if condition is None:
            raise ValidationError(f"unsupported operation {operation}")
        return condition(column, self.model.coerce(name, args.get("value")))

    def _select(self, predicate: Optional[Predicate], page: PageSpec, meta: Optional[MutableMapping[str, Any]], load_records: bool) -> List[Record]:
        condition = None
        in_memory_test = None
        if predicate is not None:
            _, args = predicate_operation(predicate)
            name = args.get("name")
            if name in self.model.props:
                condition = self._condition(predicate)
            else:
                # computed or unknown property
                in_memory_test = compile_predicate(self.model, predicate)

        stmt = select(self.table)
        if condition is not None:
            stmt = stmt.where(condition)

        if in_memory_test is not None or (page.sort_by and page.sort_by not in self.model.props):
            self.log.debug(f"filtering or sorting {self.model.name} in memory")
            with self.engine.connect() as conn:
                rows = conn.execute(stmt.order_by(self.table.c[SEQUENCE_COLUMN])).mappings().all()
            records = [self._record(row) for row in rows]
            if in_memory_test is not None:
                records = [record for record in records if in_memory_test(record)]
            records = paginate(records, page, meta)
            if not load_records:
                records = [Record(self.model, record.uuid, loaded=False) for record in records]
            return records

        if page.sort_by:
            column = self.table.c[page.sort_by]
            # nulls last in either direction
            stmt = stmt.order_by(column.is_(None), column.asc() if page.ascending else column.desc())
        stmt = stmt.order_by(self.table.c[SEQUENCE_COLUMN])
        if page.offset:
            stmt = stmt.offset(page.offset)
        if page.limit is not None:
            stmt = stmt.limit(page.limit)

        with self.engine.connect() as conn:
            if meta is not None:
                count_stmt = select(func.count()).select_from(self.table)
                if condition is not None:
                    count_stmt = count_stmt.where(condition)
                meta["count"] = conn.execute(count_stmt).scalar_one()
            rows = conn.execute(stmt).mappings().all()
        return [self._record(row, load_records) for row in rows]

    async def exists(self, uuid: str) -> bool:
        return await run_in_threadpool(self._exists, uuid)

    async def load(self, uuid: str) -> Record:
        return await run_in_threadpool(self._load, uuid)

    async def save(self, record: Record, ignore_unloaded: bool = False) -> Record:
        record.validate()
        return await run_in_threadpool(self._save, record, ignore_unloaded)

    async def remove(self, uuid: str) -> None:
        await run_in_threadpool(self._remove, uuid)

    async def find(
        self, predicate: Predicate, page: PageSpec, meta: Optional[MutableMapping[str, Any]] = None, load_records: bool = True
    ) -> List[Record]:
        return await run_in_threadpool(self._select, predicate, page, meta, load_records)

    async def list(self, page: PageSpec, meta: Optional[MutableMapping[str, Any]] = None, load_records: bool = True) -> List[Record]:
        return await run_in_threadpool(self._select, None, page, meta, load_records)


class SqlAdapter(Adapter):
    """
    :param engine: SQLAlchemy engine or database url
    :param create_tables: create missing model tables when creating a repository
    """

    def __init__(self, engine: Union[Engine, str], metadata: Optional[MetaData] = None, create_tables: bool = True) -> None:
        super().__init__()
        self.engine = create_engine(engine) if isinstance(engine, str) else engine
        self.metadata = metadata if metadata is not None else MetaData()
        self.create_tables = create_tables

    def create_repository(self, model: ModelDescriptor) -> ModelRepository:
        table = model_table(model, self.metadata)
        if self.create_tables:
            self.metadata.create_all(self.engine, tables=[table])
        return SqlRepository(model, self.engine, table)
