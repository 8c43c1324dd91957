"""
Access policy gate: decides whether a model may be exposed to a request
and whether its schema may be promoted in the aggregate schema listing.

The gate also provides the CORS filters applied to the responses of the model routes:
- the common filter allows any origin for every request below the url prefix
- the per-model filter allows any origin only if the model may be exposed to the request
"""
from typing import Any, Callable, Optional

from .model import ModelDescriptor

CORS_HEADER = "Access-Control-Allow-Origin"
CORS_MODES = ("common", "model", "none")

# filter(request, response) adjusting the headers of a response
RequestFilter = Callable[[Any, Any], None]


class AccessPolicy:
    """
    Default policy: a model is exposed and promoted unless its options
    explicitly set `expose` or `promote` to False.

    A model providing an `access` predicate decides on its exposure itself,
    subclasses may override may_be_exposed to implement a deployment wide policy,
    eg. requiring an authenticated user.
    """

    def may_be_exposed(self, request: Any, model: ModelDescriptor) -> bool:
        if model.access is not None:
            return bool(model.access(request, model))
        return model.options.get("expose") is not False

    def may_be_promoted(self, model: ModelDescriptor) -> bool:
        return model.options.get("promote") is not False

    def common_request_filter(self) -> RequestFilter:
        def cors_filter(_request: Any, response: Any) -> None:
            response.headers[CORS_HEADER] = "*"

        return cors_filter

    def request_filter_for_model(self, model: ModelDescriptor) -> RequestFilter:
        def cors_filter(request: Any, response: Any) -> None:
            if self.may_be_exposed(request, model):
                response.headers[CORS_HEADER] = "*"

        return cors_filter


def normalize_cors_mode(mode: Optional[str]) -> str:
    """
    :param mode: configured CORS mode, None, False or "" disable CORS
    :return: one of CORS_MODES
    """
    if mode is None or mode is False or str(mode).strip() == "":
        return "none"
    normalized = str(mode).strip().lower()
    if normalized not in CORS_MODES:
        valid_values = ", ".join(CORS_MODES)
        raise ValueError(f"Invalid CORS mode '{mode}', expected one of: {valid_values}")
    return normalized
