"""
In-memory record storage, used when no other adapter has been configured.

Records are kept in insertion order, which is the order of unsorted listings.
"""
import operator
import uuid as uuid_lib
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from .errors import NotFoundError, ValidationError
from .model import ModelDescriptor, Record
from .paging import PageSpec, compare_values, paginate
from .query import Predicate, predicate_operation
from .repository import Adapter, ModelRepository


def _compare(op: Callable[[int, int], bool]) -> Callable[[Any, Any], bool]:
    def test(value: Any, other: Any) -> bool:
        if value is None or other is None:
            return False
        return op(compare_values(value, other), 0)

    return test


BINARY_OPERATIONS: Dict[str, Callable[[Any, Any], bool]] = {
    "eq": _compare(operator.eq),
    "neq": lambda value, other: value is not None and compare_values(value, other) != 0,
    "lt": _compare(operator.lt),
    "lte": _compare(operator.le),
    "gt": _compare(operator.gt),
    "gte": _compare(operator.ge),
}

UNARY_OPERATIONS: Dict[str, Callable[[Any], bool]] = {
    "null": lambda value: value is None,
    "notnull": lambda value: value is not None,
}


def compile_predicate(model: ModelDescriptor, predicate: Predicate) -> Callable[[Record], bool]:
    """
    Translate a predicate into a test function for records of the model

    :param model: model of the records to test
    :param predicate: parsed filter expression
    :return: function(record) -> bool
    """
    operation, args = predicate_operation(predicate)
    name = args.get("name")
    if not model.has_property(name):
        raise ValidationError(f'unknown property "{name}"')

    if operation in UNARY_OPERATIONS:
        test = UNARY_OPERATIONS[operation]
        return lambda record: test(record.get(name))

    if operation == "between":
        if "lower" not in args or "upper" not in args:
            raise ValidationError("invalid query, between requires lower and upper limit")
        lower = model.coerce(name, args["lower"])
        upper = model.coerce(name, args["upper"])
        above = BINARY_OPERATIONS["gte"]
        below = BINARY_OPERATIONS["lte"]
        return lambda record: above(record.get(name), lower) and below(record.get(name), upper)

    test = BINARY_OPERATIONS.get(operation)
    if test is None:
        raise ValidationError(f"unsupported operation {operation}")
    value = model.coerce(name, args.get("value"))
    return lambda record: test(record.get(name), value)


class MemoryRepository(ModelRepository):
    """
    Keeps the property values of all records of a model in a dict
    """

    def __init__(self, model: ModelDescriptor) -> None:
        super().__init__(model)
        self._records: Dict[str, Dict[str, Any]] = {}

    def _record(self, uuid: str, load_records: bool = True) -> Record:
        if not load_records:
            return Record(self.model, uuid, loaded=False)
        return Record(self.model, uuid, dict(self._records[uuid]))

    async def exists(self, uuid: str) -> bool:
        return uuid in self._records

    async def load(self, uuid: str) -> Record:
        if uuid not in self._records:
            raise NotFoundError(f"no {self.model.name} with uuid {uuid}")
        return self._record(uuid)

    async def save(self, record: Record, ignore_unloaded: bool = False) -> Record:
        record.validate()
        if record.uuid is None:
            record.uuid = str(uuid_lib.uuid4())
        elif record.uuid not in self._records and not ignore_unloaded:
            raise NotFoundError(f"no {self.model.name} with uuid {record.uuid}")
        self._records[record.uuid] = dict(record.properties)
        return record

    async def remove(self, uuid: str) -> None:
        if self._records.pop(uuid, None) is None:
            raise NotFoundError(f"no {self.model.name} with uuid {uuid}")

    async def find(
        self, predicate: Predicate, page: PageSpec, meta: Optional[MutableMapping[str, Any]] = None, load_records: bool = True
    ) -> List[Record]:
        test = compile_predicate(self.model, predicate)
        matches = [record for record in (self._record(uuid) for uuid in list(self._records)) if test(record)]
        return self._page(matches, page, meta, load_records)

    async def list(self, page: PageSpec, meta: Optional[MutableMapping[str, Any]] = None, load_records: bool = True) -> List[Record]:
        records = [self._record(uuid) for uuid in list(self._records)]
        return self._page(records, page, meta, load_records)

    def _page(self, records: List[Record], page: PageSpec, meta: Optional[MutableMapping[str, Any]], load_records: bool) -> List[Record]:
        result = paginate(records, page, meta)
        if not load_records:
            result = [Record(self.model, record.uuid, loaded=False) for record in result]
        return result


class MemoryAdapter(Adapter):
    """
    Default adapter: records are lost when the process exits
    """

    def create_repository(self, model: ModelDescriptor) -> ModelRepository:
        return MemoryRepository(model)
