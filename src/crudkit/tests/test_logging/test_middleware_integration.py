# src/crudkit/tests/test_logging/test_middleware_integration.py
import json
import logging

from fastapi import FastAPI
from starlette.testclient import TestClient

from crudkit.config.settings import Settings
from crudkit.core.logging.builder import setup_logging
from crudkit.core.logging.filters import get_request_id
from crudkit.core.logging.middleware import RequestIDMiddleware, resolve_request_id


def make_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)

    @app.get("/hello")
    def hello():
        logging.getLogger("crudkit.tests").info("handling hello")
        return {"ok": True}

    return app


def test_request_id_in_response_and_logs(tmp_path, capsys):
    setup_logging(Settings(ENV="production", LOG_FORMAT="json", LOG_LEVEL="INFO", LOG_TO_STDOUT=True, LOG_DIR=tmp_path))

    client = TestClient(make_app())
    resp = client.get("/hello")
    assert resp.status_code == 200

    rid = resp.headers.get("X-Request-ID")
    assert rid

    stderr = capsys.readouterr().err.strip()
    assert stderr, "Expected logs on stderr but nothing was captured."

    records = []
    for line in stderr.splitlines():
        try:
            records.append(json.loads(line))
        except ValueError:
            continue
    assert any(rec.get("request_id") == rid and rec.get("message") == "handling hello" for rec in records)


def test_incoming_request_id_is_echoed():
    client = TestClient(make_app())
    resp = client.get("/hello", headers={"X-Request-ID": "upstream-42"})
    assert resp.headers["X-Request-ID"] == "upstream-42"
    # the contextvar does not leak out of the request
    assert get_request_id() is None


def test_unsafe_request_id_is_replaced():
    assert resolve_request_id("ok-id_1.2:3") == "ok-id_1.2:3"
    assert resolve_request_id("bad\nid") != "bad\nid"
    assert resolve_request_id("x" * 500) != "x" * 500
    assert resolve_request_id(None)
