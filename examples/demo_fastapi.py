#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Demo app exposing the models defined in examples/models.yaml

Run:
  pip install -e ".[demo]"
  python examples/demo_fastapi.py [HOST] [PORT]

Then try:
  curl -X POST -d '{"name": "Jane"}' http://HOST:PORT/api/person
  curl http://HOST:PORT/api/person?q=name:eq:Jane
  curl http://HOST:PORT/api/.schema?yaml=1
"""

import datetime
import sys
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from modelrest import MODELREST, ModelRegistry, ModelRestAPI, SqlAdapter
from modelrest.config import get_config

HERE = Path(__file__).parent
MODELREST.MODEL_DEFINITIONS = str(HERE / "models.yaml")
DB_URL = "sqlite:///./modelrest_demo.db"


def _age(record: Any) -> Any:
    birthday = record.get("birthday")
    if birthday is None:
        return None
    today = datetime.date.today()
    return today.year - birthday.year - ((today.month, today.day) < (birthday.month, birthday.day))


def load_models() -> ModelRegistry:
    registry = ModelRegistry.from_yaml(get_config("MODEL_DEFINITIONS"))
    # computed properties can't be declared in yaml
    registry.register("Member", {"props": {"name": {}, "birthday": {"type": "date"}}, "computed": {"age": _age}})
    return registry


def create_app(host: str = "127.0.0.1", port: int = 5000) -> FastAPI:
    app = FastAPI(title="modelrest demo")
    api = ModelRestAPI(app, load_models(), adapter=SqlAdapter(DB_URL), convenience=True)
    app.state.modelrest_api = api

    @app.get("/", include_in_schema=False)
    def root() -> Any:
        return RedirectResponse(url=api.prefix + "/.schema")

    @app.get("/health", include_in_schema=False)
    def health() -> dict:
        return {"ok": True, "host": host, "port": port, "api_prefix": api.prefix}

    return app


def main() -> None:
    host = "127.0.0.1"
    port = 5000
    if len(sys.argv) > 1:
        host = sys.argv[1]
    if len(sys.argv) > 2:
        port = int(sys.argv[2])
    uvicorn.run(create_app(host=host, port=port), host=host, port=port)


if __name__ == "__main__":
    main()
