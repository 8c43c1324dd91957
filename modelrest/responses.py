# -*- coding: utf-8 -*-

import yaml
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.responses import Response


class RestResponse(JSONResponse):
    """
    JSON response accepting dates, timestamps and other values jsonable_encoder knows about
    """

    def render(self, content) -> bytes:
        return super().render(jsonable_encoder(content))


class YamlResponse(Response):
    """
    Schema documents are served as yaml when requested with ?yaml=1
    """

    media_type = "text/yaml"

    def render(self, content) -> bytes:
        return yaml.safe_dump(jsonable_encoder(content), default_flow_style=False, sort_keys=False).encode("utf-8")


def error_response(status_code: int, message: str) -> Response:
    return RestResponse({"error": message}, status_code=status_code)


def head_response(response: Response) -> Response:
    """
    :return: copy of response without body, as required for HEAD requests
    """
    headers = {key: value for key, value in response.headers.items() if key.lower() != "content-length"}
    return Response(status_code=response.status_code, headers=headers)
