#
# naming and identifier helpers
#
import re

# canonical textual representation of an uuid, lowercase hex:
# xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx
UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def is_uuid(value) -> bool:
    """
    :param value: string to check
    :return: whether value is an uuid in its canonical textual form
    """
    return isinstance(value, str) and UUID_PATTERN.match(value) is not None


def kebab_case(name: str) -> str:
    """
    Convert a model name into the url segment used for its routes, eg.
    ComputedEnum => computed-enum
    HTTPRequest => http-request
    my_model => my-model

    :param name: model name
    :return: kebab-case name
    """
    result = _ACRONYM_BOUNDARY.sub(r"\1-\2", name.strip())
    result = _WORD_BOUNDARY.sub(r"\1-\2", result)
    result = re.sub(r"[\s_]+", "-", result)
    return re.sub(r"-{2,}", "-", result).strip("-").lower()
