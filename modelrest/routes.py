"""
Route table builder

For every model a fixed set of routes is generated below `<prefix>/<route-name>`,
route names are the kebab-case form of the model names:

    GET     <model>/.schema         schema of the model
    GET     <model>                 list records or search them with ?q=name:operation:value
    GET     <model>/:uuid           fetch a record
    HEAD    <model>/:uuid           check if a record exists
    HEAD    <model>                 check if the collection is available
    POST    <model>                 create a record
    PUT     <model>/:uuid           replace (or create) a record
    PATCH   <model>/:uuid           modify a record
    DELETE  <model>/:uuid           remove a record

POST on a record and PUT, PATCH or DELETE on the collection are rejected with 405.
The convenience routes are GET aliases of the writing operations for use in a browser.

The host router has to try literal segments before parameters, eg. a request for
`<model>/.schema` mustn't be dispatched as a request for a record with uuid ".schema".
The table is ordered accordingly (cfr. RouteTable.ordered()).
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import modelrest
from .errors import SystemValidationError
from .handlers import Endpoint, GlobalHandlers, ModelHandlers, bad_model_handler, rest_handler
from .model import ModelDescriptor
from .policy import AccessPolicy
from .repository import Adapter

# (method, path below the model's url, handler name)
MODEL_ROUTES = (
    ("GET", ".schema", "schema"),
    ("GET", "", "fetch_items"),
    ("GET", ":uuid", "fetch_item"),
    ("HEAD", ":uuid", "check"),
    ("HEAD", "", "check_collection"),
    ("POST", "", "create"),
    ("POST", ":uuid", "reject_post_item"),
    ("PUT", ":uuid", "replace"),
    ("PUT", "", "reject_put_collection"),
    ("PATCH", ":uuid", "modify"),
    ("PATCH", "", "reject_patch_collection"),
    ("DELETE", ":uuid", "remove"),
    ("DELETE", "", "reject_delete_collection"),
)

CONVENIENCE_ROUTES = (
    ("GET", "create", "create"),
    ("GET", "write/:uuid", "modify"),
    ("GET", "replace/:uuid", "replace"),
    ("GET", "has/:uuid", "check"),
    ("GET", "remove/:uuid", "remove"),
)

# routes below the url prefix
GLOBAL_ROUTES = (
    ("GET", ".schema", "schema"),
    ("HEAD", ":model", "no_such_collection"),
    ("DELETE", ":model", "no_such_collection"),
)


def join_path(*parts: str) -> str:
    segments = [segment for part in parts for segment in str(part).split("/") if segment]
    return "/" + "/".join(segments)


def normalize_prefix(prefix: Optional[str]) -> str:
    """
    :return: prefix with leading slash and without trailing slash, "" for the root
    """
    prefix = join_path(prefix or "")
    return "" if prefix == "/" else prefix


@dataclass(frozen=True)
class Route:
    """
    Binding of a method and a path pattern to a handler,
    parameters in the path pattern are marked with a colon, eg. /api/user/:uuid
    """

    method: str
    path: str
    handler: Endpoint
    name: str
    model: Optional[ModelDescriptor] = None

    @property
    def segments(self) -> List[str]:
        return [segment for segment in self.path.split("/") if segment]

    @property
    def specificity(self) -> Tuple[bool, ...]:
        """
        Sort key putting literal segments before parameters at the first differing position
        """
        return tuple(segment.startswith(":") for segment in self.segments)

    @property
    def host_path(self) -> str:
        """
        :return: path pattern in starlette notation, eg. /api/user/{uuid}
        """
        segments = ["{%s}" % segment[1:] if segment.startswith(":") else segment for segment in self.segments]
        return "/" + "/".join(segments)


class RouteTable:
    """
    Routes keyed by method and path pattern, a pattern may be bound once per method
    """

    def __init__(self) -> None:
        self._routes: Dict[Tuple[str, str], Route] = {}

    def __iter__(self) -> Iterator[Route]:
        return iter(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)

    def __contains__(self, key: object) -> bool:
        return key in self._routes

    def get(self, method: str, path: str) -> Optional[Route]:
        return self._routes.get((method.upper(), path))

    def add(self, route: Route) -> Route:
        key = (route.method.upper(), route.path)
        if key in self._routes:
            raise SystemValidationError(f"duplicate route {route.method} {route.path}")
        self._routes[key] = route
        return route

    def ordered(self) -> List[Route]:
        """
        :return: routes in the order they have to be tried by the host router
        """
        return sorted(self._routes.values(), key=lambda route: route.specificity)


class RouteTableBuilder:
    """
    Generates the routes of a set of models

    :param adapter: provides the repositories of the models
    :param policy: access policy gate
    :param cors_mode: "model" applies the per-model CORS filter to all responses of a model's routes
    """

    def __init__(self, adapter: Adapter, policy: AccessPolicy, cors_mode: str = "none", logger: Optional[logging.Logger] = None) -> None:
        self.adapter = adapter
        self.policy = policy
        self.cors_mode = cors_mode
        self.log = logger or modelrest.log.getChild("routes")

    def build(self, url_prefix: str, models: Iterable[ModelDescriptor], convenience: bool = False) -> RouteTable:
        """
        :param url_prefix: common prefix of all routes, eg. /api
        :param models: model descriptors
        :param convenience: add the GET aliases of the writing operations
        :return: RouteTable
        """
        prefix = normalize_prefix(url_prefix)
        models = list(models)
        table = RouteTable()

        route_names: Dict[str, str] = {}
        for model in models:
            other = route_names.get(model.route_name)
            if other is not None:
                raise SystemValidationError(f"models {other} and {model.name} share the url {join_path(prefix, model.route_name)}")
            route_names[model.route_name] = model.name
            self.add_model_routes(table, prefix, model, convenience)

        global_handlers = GlobalHandlers(models, self.policy, self.log)
        for method, path, name in GLOBAL_ROUTES:
            table.add(Route(method, join_path(prefix, path), global_handlers.endpoint(name), f"global_{name}_{method.lower()}"))

        self.log.info(f"Created {len(table)} routes for {len(models)} models")
        return table

    def add_model_routes(self, table: RouteTable, prefix: str, model: ModelDescriptor, convenience: bool = False) -> None:
        model_url = join_path(prefix, model.route_name)
        route_specs = MODEL_ROUTES + (CONVENIENCE_ROUTES if convenience else ())

        response_filter = self.policy.request_filter_for_model(model) if self.cors_mode == "model" else None
        if model.is_complete:
            handlers: Optional[ModelHandlers] = ModelHandlers(model, self.adapter.repository(model), self.policy, response_filter=response_filter)
        else:
            self.log.warning(f"Model {model.name} is incomplete, its routes will fail: {model.error}")
            handlers = None
            failing = rest_handler(bad_model_handler(model), self.log, response_filter)

        for method, path, name in route_specs:
            handler = handlers.endpoint(name) if handlers is not None else failing
            table.add(Route(method, join_path(model_url, path), handler, f"{model.route_name}_{name}_{method.lower()}", model))
