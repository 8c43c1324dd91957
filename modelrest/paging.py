# Result pagination and sorting:
# - sorting by a single property (sortBy=, descending=)
# - pagination (offset=, limit=)
#
# Response formatting follows filter -> sort -> count -> paginate
# records lacking the sort property always come last, whatever the direction
#
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Callable, Iterable, List, Mapping, MutableMapping, Optional
from .config import is_truthy
from .errors import ValidationError


@dataclass(frozen=True)
class PageSpec:
    """
    Pagination and sorting parameters of a list or search request

    :param offset: number of records to skip
    :param limit: maximum number of records to return, None for unbounded
    :param sort_by: name of the property to sort by, None to keep the storage order
    :param ascending: sort direction
    """

    offset: int = 0
    limit: Optional[int] = None
    sort_by: Optional[str] = None
    ascending: bool = True

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> "PageSpec":
        """
        :param query: url query parameters
        :return: PageSpec
        """
        offset = _parse_count(query.get("offset"), "offset", 0)
        limit = _parse_count(query.get("limit"), "limit", None)
        sort_by = (query.get("sortBy") or "").strip() or None
        ascending = not is_truthy(query.get("descending"), False)
        return cls(offset=offset, limit=limit, sort_by=sort_by, ascending=ascending)


def _parse_count(raw: Optional[str], name: str, default: Optional[int]) -> Optional[int]:
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"invalid {name}: {raw}")
    if value < 0:
        raise ValidationError(f"invalid {name}: {raw}")
    return value


def compare_values(a: Any, b: Any) -> int:
    """
    Compare two property values by their native ordering, fall back to comparing their string form
    """
    try:
        if a < b:
            return -1
        if a > b:
            return 1
        return 0
    except TypeError:
        a, b = str(a), str(b)
        return (a > b) - (a < b)


def default_getter(record: Any, name: str) -> Any:
    getter = getattr(record, "get", None)
    if callable(getter):
        return getter(name)
    return getattr(record, name, None)


def sort_records(records: Iterable[Any], sort_by: Optional[str], ascending: bool = True, getter: Callable[[Any, str], Any] = default_getter) -> List[Any]:
    """
    Stable sort of records by the value of property `sort_by`

    :param records: records to sort
    :param sort_by: name of the property, if None the records are returned in their current order
    :param ascending: sort direction
    :param getter: function(record, name) returning the value of a record's property
    :return: sorted list, records lacking the property come last
    """
    records = list(records)
    if not sort_by:
        return records

    present = []
    missing = []
    for record in records:
        value = getter(record, sort_by)
        if value is None:
            missing.append(record)
        else:
            present.append((value, record))

    # sort(reverse=True) preserves the order of equal items
    present.sort(key=cmp_to_key(lambda a, b: compare_values(a[0], b[0])), reverse=not ascending)
    return [record for _, record in present] + missing


def paginate(records: Iterable[Any], page: PageSpec, meta: Optional[MutableMapping[str, Any]] = None, getter: Callable[[Any, str], Any] = default_getter) -> List[Any]:
    """
    Sort and slice a set of records

    :param records: all matching records
    :param page: PageSpec
    :param meta: optional collector, receives the total number of matching records as "count"
    :param getter: function(record, name) returning the value of a record's property
    :return: list of records of the selected page
    """
    records = sort_records(records, page.sort_by, page.ascending, getter)
    if meta is not None:
        meta["count"] = len(records)

    if page.limit is None:
        return records[page.offset :]
    return records[page.offset : page.offset + page.limit]
