"""
Property types supported in model definitions and the coercion of
request values (json body, url query) into the declared type
"""
import datetime
import uuid
from typing import Any, Callable, Dict
import modelrest
from .config import is_truthy
from .errors import ValidationError

DEFAULT_TYPE = "string"


def _to_string(value: Any) -> str:
    if isinstance(value, (dict, list)):
        raise ValueError("can't convert structured value to string")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_integer(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{value} is not an integer")
    if isinstance(value, str):
        value = value.strip()
    return int(value)


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    return float(value)


def _to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return is_truthy(value)
    raise ValueError(f"{value} is not a boolean")


def _to_date(value: Any) -> datetime.date:
    """
    Dates are accepted as "YYYY-MM-DD", a timestamp is truncated
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    date_str = str(value).strip()
    return datetime.datetime.strptime(date_str[:10], "%Y-%m-%d").date()


def _to_timestamp(value: Any) -> datetime.datetime:
    """
    Timestamps are stored as naive UTC, a given offset is applied and dropped
    """
    if isinstance(value, datetime.datetime):
        result = value
    elif isinstance(value, datetime.date):
        result = datetime.datetime(value.year, value.month, value.day)
    else:
        date_str = str(value).strip().replace("Z", "+00:00")
        try:
            result = datetime.datetime.fromisoformat(date_str)
        except ValueError:
            # JS datepicker format
            result = datetime.datetime.strptime(date_str, "%Y-%m-%d %H:%M:%S.%f")
    if result.tzinfo is not None:
        result = result.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return result


def _to_uuid(value: Any) -> str:
    return str(uuid.UUID(str(value)))


COERCERS: Dict[str, Callable[[Any], Any]] = {
    "string": _to_string,
    "text": _to_string,
    "integer": _to_integer,
    "number": _to_number,
    "boolean": _to_boolean,
    "date": _to_date,
    "timestamp": _to_timestamp,
    "uuid": _to_uuid,
}

# aliases accepted in model definitions
TYPE_ALIASES = {
    "str": "string",
    "int": "integer",
    "float": "number",
    "decimal": "number",
    "bool": "boolean",
    "datetime": "timestamp",
}


def normalize_type(type_name: Any) -> str:
    """
    :param type_name: type as given in a model definition, None for the default type
    :return: name of a supported type
    """
    if type_name is None:
        return DEFAULT_TYPE
    normalized = str(type_name).strip().lower()
    normalized = TYPE_ALIASES.get(normalized, normalized)
    if normalized not in COERCERS:
        raise TypeError(f'unsupported property type "{type_name}"')
    return normalized


def coerce_value(type_name: str, value: Any, prop_name: str = "") -> Any:
    """
    Parse the supplied `value` so it can be stored in a property of type `type_name`

    :param type_name: normalized property type
    :param value: value from request body or url query
    :param prop_name: property name, used for the error message
    :return: processed value
    """
    if value is None:
        return None

    coercer = COERCERS.get(type_name, _to_string)
    try:
        return coercer(value)
    except (TypeError, ValueError, OverflowError) as exc:
        modelrest.log.debug(f"Invalid {type_name} {exc} for value {value!r}")
        raise ValidationError(f'invalid value for property "{prop_name}" of type {type_name}')
