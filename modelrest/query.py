"""
Parsing of the filter expressions given in the `q=` url query parameter

Supported forms, tried in this order:

    name:between:lower:upper  => {"between": {"name": name, "lower": lower, "upper": upper}}
    name:operation:value      => {operation: {"name": name, "value": value}}
    name:null, name:notnull   => {operation: {"name": name}}

The name of a property can't contain colons or whitespace, there's no escaping.
The lower boundary of a range can't contain colons either,
upper boundaries and values consume the remainder of the expression.
"""
import re
from typing import Any, Dict, Optional

Predicate = Dict[str, Dict[str, Any]]

TERNARY_PATTERN = re.compile(r"^([^:\s]+):(between):([^:]+):(.+)$", re.IGNORECASE | re.DOTALL)
BINARY_PATTERN = re.compile(r"^([^:\s]+):([a-z]{2,}):(.+)$", re.IGNORECASE | re.DOTALL)
UNARY_PATTERN = re.compile(r"^([^:\s]+):(null|notnull)$", re.IGNORECASE)

QUERY_EXAMPLE = "name:operation:value"


def parse_query(text: Optional[str]) -> Optional[Predicate]:
    """
    :param text: filter expression, eg. "name:eq:john"
    :return: predicate or None if the expression is malformed
    """
    if not isinstance(text, str):
        return None

    match = TERNARY_PATTERN.match(text)
    if match:
        name, operation, lower, upper = match.groups()
        return {operation.lower(): {"name": name, "lower": lower, "upper": upper}}

    match = BINARY_PATTERN.match(text)
    if match:
        name, operation, value = match.groups()
        return {operation.lower(): {"name": name, "value": value}}

    match = UNARY_PATTERN.match(text)
    if match:
        name, operation = match.groups()
        return {operation.lower(): {"name": name}}

    return None


def predicate_operation(predicate: Predicate):
    """
    :return: tuple of the predicate's operation and its arguments
    """
    ((operation, args),) = predicate.items()
    return operation, args
