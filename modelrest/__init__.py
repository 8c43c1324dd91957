# flake8: noqa: F401
#
# modelrest_init has to be imported first: the other modules log through modelrest.log
#
from .modelrest_init import log, MODELREST
from .errors import RestError, ValidationError, MethodNotAllowedError, NotFoundError, ForbiddenError, GenericError, SystemValidationError
from .model import ModelDescriptor, ComputedProperty, ComputedMode, Record
from .registry import ModelRegistry
from .repository import ModelRepository, Adapter
from .memory import MemoryAdapter, MemoryRepository
from .sqla import SqlAdapter, SqlRepository
from .query import parse_query
from .paging import PageSpec, paginate, sort_records
from .policy import AccessPolicy
from .schema import extract_public_data
from .routes import Route, RouteTable, RouteTableBuilder
from .api import ModelRestAPI
from .__about__ import __version__, __description__

__all__ = (
    "__version__",
    "__description__",
    "MODELREST",
    "log",
    # api:
    "ModelRestAPI",
    "Route",
    "RouteTable",
    "RouteTableBuilder",
    "AccessPolicy",
    # models:
    "ModelDescriptor",
    "ComputedProperty",
    "ComputedMode",
    "Record",
    "ModelRegistry",
    "extract_public_data",
    # storage:
    "ModelRepository",
    "Adapter",
    "MemoryAdapter",
    "MemoryRepository",
    "SqlAdapter",
    "SqlRepository",
    # query:
    "parse_query",
    "PageSpec",
    "paginate",
    "sort_records",
    # Errors:
    "RestError",
    "ValidationError",
    "MethodNotAllowedError",
    "NotFoundError",
    "ForbiddenError",
    "GenericError",
    "SystemValidationError",
)
