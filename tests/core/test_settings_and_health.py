import pytest

from memestack.core.config import environment
from memestack.core.config.settings import Settings


def test_test_url_derived_from_database_url():
    settings = Settings(
        database_url="postgresql://user:pw@db:5432/memestack", test_database_url=None
    )

    assert settings.get_database_url() == "postgresql://user:pw@db:5432/memestack"
    assert settings.get_database_url(use_test=True).endswith("/memestack_test")


def test_test_url_must_point_at_test_database():
    settings = Settings(test_database_url="postgresql://user:pw@db:5432/memestack")

    with pytest.raises(ValueError):
        settings.get_database_url(use_test=True)


def test_allowed_hosts_parsing():
    settings = Settings(allowed_hosts="api.example.com, www.example.com")

    assert settings.allowed_hosts[:2] == ["api.example.com", "www.example.com"]
    assert "testserver" in settings.allowed_hosts
    assert Settings(allowed_hosts='["a.example.com"]').allowed_hosts[0] == "a.example.com"


def test_collaboration_tunables_have_defaults():
    settings = Settings()

    assert settings.INVITE_EXPIRY_DAYS == 7
    assert settings.FORK_MAX_COLLABORATORS == 10
    assert settings.ACTIVITY_FEED_LIMIT == 20


def test_environment_lookup():
    assert environment.ENVIRONMENTS["testing"] is environment.TestSettings
    assert environment.get_settings().environment == "test"


def test_health_endpoints(client):
    assert client.get("/livez").json() == {"status": "ok"}
    assert "collaboration" in client.get("/").json()["message"]

    ready = client.get("/readyz")
    assert ready.status_code == 200
    assert ready.json()["details"]["database"] == "connected"
