# Configuration settings are stored as MODELREST class variables (cfr. modelrest_init.py)
# Environment variables with the same name take precedence,
# explicit arguments passed to ModelRestAPI take precedence over both
import os
import logging
from functools import lru_cache
from typing import Any, Optional
import modelrest

FALSY_VALUES = ("0", "false", "no", "off", "n", "f")


@lru_cache(maxsize=128)
def get_config(option: str) -> Optional[Any]:
    """Retrieve a configuration parameter
    :param option: configuration parameter
    :return: configuration value
    """
    result = os.environ.get(f"MODELREST_{option}", None)
    if result is None:
        result = getattr(modelrest.MODELREST, option, None)
    return result


def is_truthy(value: Any, default: bool = False) -> bool:
    """
    Interpret boolean-ish configuration values and query parameters
    ("1", "true", "yes" or a bare ?flag are true, "0", "false", "no", "off" are false)
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value = str(value).strip().lower()
    if value == "":
        # a bare query flag, eg. ?count
        return True
    return value not in FALSY_VALUES


def is_debug() -> bool:
    """
    We use the loglevel to check whether we're running in debug mode
    :return: whether the app is in debug mode
    :rtype: Boolean
    """
    return modelrest.log.getEffectiveLevel() < logging.INFO
