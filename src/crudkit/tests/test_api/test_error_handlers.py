"""
HTTP mapping of the crudkit taxonomy through the FastAPI exception handlers.
"""
import pytest
from fastapi import FastAPI, Request
from starlette.testclient import TestClient

from crudkit.api.error_handlers import register_exception_handlers
from crudkit.exceptions.base import (
    ConflictError,
    CrudError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
)
from crudkit.pagination.request import PaginationRequest
from crudkit.repositories.repository import parse_identifier


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/users")
    def list_users(request: Request):
        req = PaginationRequest.from_raw(request.query_params)
        return {"page": req.page, "limit": req.limit}

    @app.get("/users/{user_id}")
    def get_user(user_id: str):
        pk = parse_identifier(user_id)
        raise NotFoundError(f"User with id {pk} not found")

    @app.post("/conflict")
    def conflict():
        raise ConflictError("User already exists for field(s): email", fields=["email"], constraint="ix_users_email")

    @app.get("/internal")
    def internal():
        raise InternalError("Failed to operate on User")

    @app.get("/custom")
    def custom():
        raise CrudError("something unusual", error_code="unusual")

    return TestClient(app)


def test_invalid_argument_is_400(client):
    resp = client.get("/users/not-a-number")

    assert resp.status_code == 400
    assert resp.json() == {"detail": "Invalid id format", "code": "invalid_argument", "fields": ["id"]}


def test_bad_list_query_is_400(client):
    resp = client.get("/users", params={"page": "0"})

    assert resp.status_code == 400
    assert resp.json()["fields"] == ["page"]


def test_good_list_query(client):
    resp = client.get("/users", params={"page": "2", "limit": "5"})
    assert resp.status_code == 200
    assert resp.json() == {"page": 2, "limit": 5}


def test_not_found_is_404(client):
    resp = client.get("/users/12")

    assert resp.status_code == 404
    assert resp.json() == {"detail": "User with id 12 not found", "code": "not_found"}


def test_conflict_is_409_without_constraint_name(client):
    resp = client.post("/conflict")

    assert resp.status_code == 409
    body = resp.json()
    assert body["fields"] == ["email"]
    assert "ix_users_email" not in resp.text


def test_internal_is_opaque_500(client):
    resp = client.get("/internal")

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error", "code": "internal"}


def test_other_crud_errors_are_opaque_500(client):
    resp = client.get("/custom")

    assert resp.status_code == 500
    assert "something unusual" not in resp.text
