import json
import logging

from fastapi import FastAPI

from memestack.core import logging_config
from memestack.core.middleware import LoggingMiddleware, logging_middleware
from memestack.modules.collaboration import schemas
from memestack.services.collaboration import CollaborationService
from tests.factories import make_user
from tests.testclient import TestClient


def test_setup_logging_creates_dir_and_sets_level(tmp_path):
    log_dir = tmp_path / "logs"
    logging_config.setup_logging(
        log_level="WARNING", log_dir=str(log_dir), use_json=True, use_colors=False
    )
    try:
        assert log_dir.exists()
        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("access").propagate is False
    finally:
        access = logging.getLogger("access")
        for handler in list(access.handlers):
            access.removeHandler(handler)
            handler.close()
        access.propagate = True
        logging_config.setup_logging(log_level="INFO", log_dir=None)


def test_json_formatter_includes_collaboration_fields():
    formatter = logging_config.JSONFormatter()
    record = logging.LogRecord(
        name="memestack.services.collaboration.service",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="Collaboration 7: merge",
        args=(),
        exc_info=None,
    )
    record.collaboration_id = 7
    record.actor_id = 3
    record.action = "merge"

    result = json.loads(formatter.format(record))

    assert result["level"] == "INFO"
    assert result["collaboration_id"] == 7
    assert result["actor_id"] == 3
    assert result["action"] == "merge"
    assert "user_id" not in result


def test_request_context_binding_round_trip():
    tokens = logging_config.bind_request_context(request_id="req-1", user_id=5)
    assert logging_config.request_id_ctx.get() == "req-1"
    assert logging_config.user_id_ctx.get() == 5

    logging_config.reset_request_context(tokens)
    assert logging_config.request_id_ctx.get() is None


def test_logging_middleware_sets_request_id(monkeypatch):
    calls = []
    monkeypatch.setattr(
        logging_middleware, "log_request", lambda **kwargs: calls.append(kwargs)
    )
    app = FastAPI()
    app.add_middleware(LoggingMiddleware)

    @app.get("/ping")
    def ping():
        return {"ok": True}

    with TestClient(app) as client:
        generated = client.get("/ping")
        forwarded = client.get("/ping", headers={"X-Request-ID": "abc-123"})

    assert generated.headers["X-Request-ID"]
    assert forwarded.headers["X-Request-ID"] == "abc-123"
    assert [c["status_code"] for c in calls] == [200, 200]
    assert calls[1]["endpoint"] == "/ping"
    assert calls[1]["request_id"] == "abc-123"


def test_service_commits_are_logged_with_context(session, caplog):
    owner = make_user(session, "alice")
    service = CollaborationService(session)
    caplog.set_level(logging.INFO, logger="memestack.services.collaboration.service")

    collab = service.create_collaboration(
        current_user=owner,
        payload=schemas.CollaborationCreate(title="Logged", type="collaboration"),
    )

    records = [r for r in caplog.records if getattr(r, "action", None) == "create"]
    assert records
    assert records[0].collaboration_id == collab.id
    assert records[0].actor_id == owner.id
