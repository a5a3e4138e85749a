"""Exception types and the unified error envelope."""

import pytest
from fastapi import FastAPI, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from memestack.core import exceptions as exc
from memestack.core.error_handlers import register_exception_handlers
from tests.testclient import TestClient


def test_exception_details_and_codes():
    not_found = exc.ResourceNotFoundException("Collaboration", identifier=12)
    assert not_found.status_code == status.HTTP_404_NOT_FOUND
    assert not_found.detail["details"]["identifier"] == "12"

    already = exc.ResourceAlreadyExistsException("Invite", field="username")
    assert already.status_code == status.HTTP_409_CONFLICT
    assert already.detail["details"]["field"] == "username"

    invalid = exc.InvalidStateException("nope", details={"status": "draft"})
    assert invalid.error_code == "invalid_state"
    assert invalid.details == {"status": "draft"}

    concurrent = exc.ConcurrentModificationException("Collaboration", 3)
    assert concurrent.status_code == status.HTTP_409_CONFLICT
    assert concurrent.error_code == "concurrent_modification"

    limit = exc.MaxLimitExceededException("collaborators", max_limit=5)
    assert limit.status_code == status.HTTP_409_CONFLICT
    assert limit.detail["details"]["max_limit"] == 5

    validation = exc.ValidationException("bad", field="challenge_id")
    assert validation.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_auth_exceptions():
    invalid_token = exc.InvalidTokenException()
    assert invalid_token.detail["message"] == "Invalid authentication token"
    assert invalid_token.headers["WWW-Authenticate"] == "Bearer"

    suspended = exc.AccountSuspendedException(until="2030-01-01T00:00:00+00:00")
    assert suspended.status_code == status.HTTP_403_FORBIDDEN
    assert suspended.detail["details"]["suspended_until"].startswith("2030")

    denied = exc.PermissionDeniedException()
    assert denied.error_code == "permission_denied"


@pytest.fixture
def failing_app():
    app = FastAPI()
    app.state.environment = "test"
    register_exception_handlers(app)

    @app.get("/app-error")
    def app_error():
        raise exc.InvalidStateException("Only active collaborations can be joined")

    @app.get("/stale")
    def stale():
        raise StaleDataError("UPDATE statement on table 'collaborations' expected 1 row")

    @app.get("/db")
    def db_error():
        raise SQLAlchemyError("connection reset")

    @app.get("/boom")
    def boom():
        raise RuntimeError("kaboom")

    @app.get("/items/{item_id}")
    def item(item_id: int):
        return {"item_id": item_id}

    return app


def test_app_exception_envelope(failing_app):
    with TestClient(failing_app) as client:
        res = client.get("/app-error")

    assert res.status_code == 409
    body = res.json()
    assert body["success"] is False
    assert body["error"]["code"] == "invalid_state"
    assert body["error"]["message"] == "Only active collaborations can be joined"
    assert body["path"] == "/app-error"
    assert "timestamp" in body


def test_stale_data_maps_to_conflict(failing_app):
    with TestClient(failing_app) as client:
        res = client.get("/stale")

    assert res.status_code == 409
    assert res.json()["error"]["code"] == "concurrent_modification"


def test_database_error_is_hidden(failing_app):
    with TestClient(failing_app) as client:
        res = client.get("/db")

    assert res.status_code == 500
    assert res.json()["error"]["code"] == "database_error"
    assert "connection reset" not in res.json()["error"]["message"]


def test_unhandled_error_details_outside_production(failing_app):
    with TestClient(failing_app, raise_server_exceptions=False) as client:
        res = client.get("/boom")
        failing_app.state.environment = "production"
        hidden = client.get("/boom")

    assert res.status_code == 500
    assert res.json()["error"]["message"] == "kaboom"
    assert res.json()["error"]["details"]["error_type"] == "RuntimeError"
    assert hidden.json()["error"]["details"] == {}
    assert "kaboom" not in hidden.json()["error"]["message"]


def test_request_validation_errors(failing_app):
    with TestClient(failing_app) as client:
        res = client.get("/items/not-a-number")

    assert res.status_code == 422
    errors = res.json()["error"]["details"]["errors"]
    assert errors[0]["field"] == "path.item_id"


def test_unknown_route_uses_envelope(failing_app):
    with TestClient(failing_app) as client:
        res = client.get("/nowhere")

    assert res.status_code == 404
    assert res.json()["error"]["code"] == "not_found"
    assert res.json()["path"] == "/nowhere"
