"""
Request handlers of the model routes

ModelHandlers creates the handlers of one model, bound to the model's repository.
Each handler is a coroutine taking the starlette request and returning a response,
rest_handler() wraps them to translate exceptions into `{"error": message}` responses.

Handlers don't lock records: concurrent modify and replace requests addressing the
same record race at the repository, the last write wins.
"""
import asyncio
import json
import logging
from functools import wraps
from http import HTTPStatus
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, MutableMapping, Optional

from fastapi import Request
from starlette.responses import Response

import modelrest
from .config import is_debug, is_truthy
from .errors import ForbiddenError, GenericError, MethodNotAllowedError, NotFoundError, RestError, ValidationError
from .model import ModelDescriptor, Record
from .paging import PageSpec
from .policy import AccessPolicy, RequestFilter
from .query import QUERY_EXAMPLE, parse_query
from .repository import ModelRepository
from .responses import RestResponse, YamlResponse, error_response, head_response
from .schema import aggregate_schema, extract_public_data
from .util import is_uuid

Endpoint = Callable[[Request], Awaitable[Response]]


def rest_handler(fun: Endpoint, logger: Optional[logging.Logger] = None, response_filter: Optional[RequestFilter] = None) -> Endpoint:
    """Decorator for the route handlers
    - convert all exceptions to an error response
    - drop the body of responses to HEAD requests
    - apply the (CORS) response filter

    :param fun: handler coroutine
    :param logger: logger of the component providing the handler
    :param response_filter: function(request, response) adjusting the response headers
    :return: wrapped fun
    """
    logger = logger or modelrest.log

    @wraps(fun)
    async def handler(request: Request) -> Response:
        try:
            response = await fun(request)
        except RestError as exc:
            response = error_response(exc.status_code, exc.message)
        except Exception as exc:
            if is_debug():
                logger.exception(exc)
            else:
                logger.error(f"{request.method} {request.url.path} failed: {exc}")
            response = error_response(HTTPStatus.INTERNAL_SERVER_ERROR.value, str(exc))

        if request.method == "HEAD":
            response = head_response(response)
        if response_filter is not None:
            response_filter(request, response)
        return response

    return handler


def wants_count(request: Request) -> bool:
    return is_truthy(request.query_params.get("count")) or is_truthy(request.headers.get("x-count"))


def schema_response(request: Request, content: Mapping[str, Any]) -> Response:
    if is_truthy(request.query_params.get("yaml")):
        return YamlResponse(content)
    return RestResponse(content)


async def read_record_values(request: Request) -> Dict[str, Any]:
    """
    :return: values of a record to write, read from the url query on GET requests and from the json body otherwise
    """
    if request.method == "GET":
        return dict(request.query_params)

    body = await request.body()
    if not body.strip():
        return {}
    try:
        values = json.loads(body)
    except ValueError:
        raise ValidationError("invalid JSON in request body")
    if not isinstance(values, dict):
        raise ValidationError("request body must be a JSON object")
    return values


async def reject_post_item(request: Request) -> Response:
    raise MethodNotAllowedError("new entry can not be created with uuid")


async def reject_put_collection(request: Request) -> Response:
    raise MethodNotAllowedError("replacing collection is not supported")


async def reject_patch_collection(request: Request) -> Response:
    raise MethodNotAllowedError("modifying collection is not supported")


async def reject_delete_collection(request: Request) -> Response:
    raise MethodNotAllowedError("removing collection is not supported")


FIXED_HANDLERS = {
    "reject_post_item": reject_post_item,
    "reject_put_collection": reject_put_collection,
    "reject_patch_collection": reject_patch_collection,
    "reject_delete_collection": reject_delete_collection,
}


def bad_model_handler(model: ModelDescriptor) -> Endpoint:
    """
    :return: handler replacing all handlers of a model whose definition couldn't be discovered completely
    """

    async def handler(request: Request) -> Response:
        raise GenericError(f"model {model.name} is not available due to incomplete discovery")

    return handler


class ModelHandlers:
    """
    Factory of the request handlers of one model
    """

    def __init__(
        self,
        model: ModelDescriptor,
        repository: ModelRepository,
        policy: AccessPolicy,
        logger: Optional[logging.Logger] = None,
        response_filter: Optional[RequestFilter] = None,
    ) -> None:
        self.model = model
        self.repository = repository
        self.policy = policy
        self.log = logger or modelrest.log.getChild(f"handlers.{model.route_name}")
        self.response_filter = response_filter

    def endpoint(self, name: str) -> Endpoint:
        """
        :param name: name of a handler, eg. "fetch_item"
        :return: the wrapped handler
        """
        fun = FIXED_HANDLERS.get(name) or getattr(self, name)
        return rest_handler(fun, self.log, self.response_filter)

    def _require_exposure(self, request: Request) -> None:
        if not self.policy.may_be_exposed(request, self.model):
            raise ForbiddenError("access forbidden by model")

    @staticmethod
    def _uuid(request: Request) -> str:
        uuid = request.path_params.get("uuid")
        if not is_uuid(uuid):
            raise ValidationError("invalid UUID")
        return uuid

    def _items_response(self, request: Request, records: Iterable[Record], meta: MutableMapping[str, Any]) -> Response:
        items = [record.to_dict() for record in records]
        content: Dict[str, Any] = {"items": items}
        headers = {}
        if wants_count(request):
            count = meta.get("count", len(items))
            content["count"] = count
            headers["x-count"] = str(count)
        return RestResponse(content, headers=headers)

    async def schema(self, request: Request) -> Response:
        self._require_exposure(request)
        return schema_response(request, extract_public_data(self.model))

    async def check_collection(self, request: Request) -> Response:
        self._require_exposure(request)
        return Response(status_code=HTTPStatus.OK.value)

    async def check(self, request: Request) -> Response:
        self._require_exposure(request)
        uuid = self._uuid(request)
        exists = await self.repository.exists(uuid)
        self.log.debug(f"checking {uuid}: {exists}")
        return Response(status_code=HTTPStatus.OK.value if exists else HTTPStatus.NOT_FOUND.value)

    async def fetch_item(self, request: Request) -> Response:
        self._require_exposure(request)
        uuid = self._uuid(request)
        try:
            record = await self.repository.load(uuid)
        except NotFoundError:
            raise NotFoundError("selected item not found")
        return RestResponse(record.to_dict())

    async def fetch_items(self, request: Request) -> Response:
        self._require_exposure(request)
        if "x-list-as-array" in request.headers:
            raise ValidationError("fetching items as array is deprecated for security reasons")
        if "q" in request.query_params:
            return await self.search(request)
        return await self.list(request)

    async def search(self, request: Request) -> Response:
        self._require_exposure(request)
        text = (request.query_params.get("q") or "").strip()
        if not text:
            raise ValidationError("missing query")
        predicate = parse_query(text)
        if predicate is None:
            raise ValidationError(f"invalid query, e.g. use ?q={QUERY_EXAMPLE}")

        page = PageSpec.from_query(request.query_params)
        meta: Dict[str, Any] = {}
        load_records = is_truthy(request.query_params.get("loadRecords"), True)
        records = await self.repository.find(predicate, page, meta, load_records)
        return self._items_response(request, records, meta)

    async def list(self, request: Request) -> Response:
        self._require_exposure(request)
        page = PageSpec.from_query(request.query_params)
        meta: Dict[str, Any] = {}
        load_records = is_truthy(request.query_params.get("loadRecords"), True)
        records = await self.repository.list(page, meta, load_records)
        return self._items_response(request, records, meta)

    async def create(self, request: Request) -> Response:
        self._require_exposure(request)
        values = await read_record_values(request)
        if "uuid" in values:
            raise ValidationError("new entry can not be created with uuid")

        record = self.model.new_record()
        record.update(values)
        record.apply_defaults()
        record = await self.repository.save(record)
        self.log.debug(f"created {self.model.name} {record.uuid}")
        return RestResponse({"uuid": record.uuid}, status_code=HTTPStatus.CREATED.value)

    async def modify(self, request: Request) -> Response:
        self._require_exposure(request)
        uuid = self._uuid(request)
        if not await self.repository.exists(uuid):
            raise NotFoundError("selected item not found")

        record = await self.repository.load(uuid)
        record.update(await read_record_values(request))
        record = await self.repository.save(record)
        return RestResponse(record.to_dict())

    async def replace(self, request: Request) -> Response:
        self._require_exposure(request)
        uuid = self._uuid(request)
        exists, values = await asyncio.gather(self.repository.exists(uuid), read_record_values(request))

        record = await self.repository.load(uuid) if exists else self.model.new_record(uuid)
        record.reset()
        for name, value in values.items():
            if name in self.model.props and value is not None:
                record.assign(name, value)
        for name, computed in self.model.computed.items():
            if computed.accepts_value:
                record.assign(name, values.get(name))

        record = await self.repository.save(record, ignore_unloaded=not exists)
        self.log.debug(f"replaced {self.model.name} {record.uuid} (existed: {exists})")
        return RestResponse({"uuid": record.uuid})

    async def remove(self, request: Request) -> Response:
        self._require_exposure(request)
        uuid = self._uuid(request)
        if not await self.repository.exists(uuid):
            raise NotFoundError("no such entry")

        await self.repository.remove(uuid)
        return RestResponse({"uuid": uuid, "status": "OK", "action": "remove"})


class GlobalHandlers:
    """
    Handlers of the routes not related to a particular model
    """

    def __init__(self, models: Iterable[ModelDescriptor], policy: AccessPolicy, logger: Optional[logging.Logger] = None) -> None:
        self.models: List[ModelDescriptor] = list(models)
        self.policy = policy
        self.log = logger or modelrest.log.getChild("handlers")

    def endpoint(self, name: str) -> Endpoint:
        return rest_handler(getattr(self, name), self.log)

    async def schema(self, request: Request) -> Response:
        return schema_response(request, aggregate_schema(request, self.models, self.policy))

    async def no_such_collection(self, request: Request) -> Response:
        raise NotFoundError("no such collection")

    async def unsupported(self, request: Request) -> Response:
        raise NotFoundError("unsupported request")
