# -*- coding: utf-8 -*-

from http import HTTPStatus
from typing import Any, Iterable, List, Mapping, Optional, Union

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

import modelrest
from .config import get_config, is_truthy
from .errors import RestError
from .handlers import GlobalHandlers
from .memory import MemoryAdapter
from .model import ModelDescriptor
from .policy import AccessPolicy, normalize_cors_mode
from .registry import ModelRegistry
from .repository import Adapter
from .responses import error_response, head_response
from .routes import Route, RouteTable, RouteTableBuilder, join_path, normalize_prefix

FALLBACK_HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

ModelsArg = Union[ModelRegistry, Mapping[str, Any], Iterable[ModelDescriptor]]


def install_exception_handlers(app: FastAPI) -> None:
    """
    Errors raised outside of the route handlers are formatted like the handlers' errors
    """

    def _respond(request: Request, status_code: int, message: str):
        response = error_response(status_code, message)
        return head_response(response) if request.method == "HEAD" else response

    @app.exception_handler(RestError)
    async def _rest_error_handler(request: Request, exc: RestError):
        return _respond(request, exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError):
        return _respond(request, HTTPStatus.BAD_REQUEST.value, "invalid request")

    @app.exception_handler(StarletteHTTPException)
    async def _starlette_http_error_handler(request: Request, exc: StarletteHTTPException):
        return _respond(request, int(exc.status_code), str(exc.detail).lower())


def as_registry(models: ModelsArg) -> ModelRegistry:
    """
    :param models: registry, mapping of model names into definitions or model descriptors
    """
    if isinstance(models, ModelRegistry):
        return models
    if isinstance(models, Mapping):
        return ModelRegistry.from_definitions(models)
    return ModelRegistry(list(models))


class ModelRestAPI:
    """
    Exposes a set of models on a FastAPI app

    Arguments left at None are read from the configuration (cfr. modelrest.MODELREST)

    :param app: FastAPI app
    :param models: ModelRegistry, mapping of model names into definitions or list of ModelDescriptors
    :param adapter: provides the model repositories, defaults to a MemoryAdapter
    :param prefix: url prefix of all routes
    :param convenience: expose GET aliases for the writing operations
    :param cors: CORS mode, one of "common", "model", "none"
    :param policy: AccessPolicy
    """

    def __init__(
        self,
        app: FastAPI,
        models: ModelsArg,
        adapter: Optional[Adapter] = None,
        prefix: Optional[str] = None,
        convenience: Optional[bool] = None,
        cors: Optional[str] = None,
        policy: Optional[AccessPolicy] = None,
    ) -> None:
        self.app = app
        self.registry = as_registry(models)
        self.adapter = adapter if adapter is not None else MemoryAdapter()
        self.prefix = normalize_prefix(prefix if prefix is not None else get_config("URL_PREFIX"))
        self.convenience = is_truthy(convenience if convenience is not None else get_config("CONVENIENCE_ROUTES"))
        self.cors = normalize_cors_mode(cors if cors is not None else get_config("CORS_MODE"))
        self.policy = policy if policy is not None else AccessPolicy()
        self.log = modelrest.log.getChild("api")

        install_exception_handlers(app)
        if self.cors == "common":
            self._install_common_filter()

        builder = RouteTableBuilder(self.adapter, self.policy, self.cors)
        self.routes: RouteTable = builder.build(self.prefix, self.registry, self.convenience)
        self._mount(self.routes)

    @staticmethod
    def _with_slash_parity(path: str) -> List[str]:
        if path.endswith("/"):
            path = path.rstrip("/")
        return [path, path + "/"]

    def _install_common_filter(self) -> None:
        cors_filter = self.policy.common_request_filter()
        prefix = self.prefix

        @self.app.middleware("http")
        async def common_request_filter(request: Request, call_next):
            response = await call_next(request)
            if request.url.path == prefix or request.url.path.startswith(prefix + "/"):
                cors_filter(request, response)
            return response

    def _add_route_with_slash_parity(self, router: APIRouter, route: Route) -> None:
        for idx, variant in enumerate(self._with_slash_parity(route.host_path)):
            router.add_api_route(
                variant,
                route.handler,
                methods=[route.method],
                name=route.name,
                operation_id=route.name if idx == 0 else None,
                include_in_schema=idx == 0,
            )

    def _mount(self, table: RouteTable) -> None:
        router = APIRouter()
        for route in table.ordered():
            self._add_route_with_slash_parity(router, route)

        # anything else below the prefix, the app's own routes have to stay reachable with a root prefix
        if self.prefix:
            fallback = GlobalHandlers(self.registry, self.policy, self.log).endpoint("unsupported")
            for path in (self.prefix, join_path(self.prefix, "{path:path}")):
                router.add_api_route(
                    path,
                    fallback,
                    methods=FALLBACK_HTTP_METHODS,
                    name="unsupported_request",
                    include_in_schema=False,
                )
        self.app.include_router(router)
        self.log.debug(f"Mounted {len(table)} routes below {self.prefix or '/'}")
        self.app.openapi_schema = None
