# ruff: noqa: E402
import os
from typing import Any

import psycopg2
import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.engine.url import URL
from sqlalchemy.orm import sessionmaker

# Set testing environment flags before importing the app or settings
os.environ["APP_ENV"] = "test"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import memestack.models.registry  # noqa: F401  registers every table
from memestack.core.config import settings
from memestack.core.database import Base, get_db
from memestack.main import app
from memestack.oauth2 import create_access_token
from tests.factories import make_meme, make_user
from tests.testclient import TestClient


class AttrDict(dict):
    """Dict with attribute-style access for fixtures."""

    def __getattr__(self, item: str) -> Any:
        try:
            return self[item]
        except KeyError as exc:
            raise AttributeError(item) from exc


# Prefer explicit test DB settings; otherwise default to local SQLite so a
# misconfigured shell never points the suite at a shared database.
test_db_url = (
    os.environ.get("TEST_DATABASE_URL")
    or os.environ.get("LOCAL_TEST_DATABASE_URL")
    or "sqlite:///./tests/test.db"
)

parsed_url = make_url(test_db_url)
if parsed_url.drivername.startswith("postgresql") and parsed_url.database:
    if not parsed_url.database.endswith("_test"):
        raise RuntimeError(
            f"Refusing to run tests against non-test database '{parsed_url.database}'. "
            "Set LOCAL_TEST_DATABASE_URL/TEST_DATABASE_URL to a dedicated *_test database."
        )

object.__setattr__(settings, "test_database_url", test_db_url)


def _ensure_database_exists(url: URL) -> None:
    """Create the test database if it doesn't already exist (Postgres only)."""
    if not url.drivername.startswith("postgresql"):
        return

    connect_kwargs = {
        "dbname": "postgres",
        "user": url.username,
        "password": url.password,
        "host": url.host,
        "port": url.port,
        "connect_timeout": 5,
    }
    sslmode = url.query.get("sslmode")
    if sslmode:
        connect_kwargs["sslmode"] = sslmode

    try:
        conn = psycopg2.connect(**connect_kwargs)
    except psycopg2.OperationalError:
        # Engine creation below surfaces a clearer error.
        return
    conn.autocommit = True
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1 FROM pg_database WHERE datname = %s;", (url.database,))
            if not cur.fetchone():
                cur.execute(f'CREATE DATABASE "{url.database}";')
    finally:
        conn.close()


def _init_test_engine():
    url = make_url(test_db_url)
    engine_kwargs = {"echo": False}

    _ensure_database_exists(url)

    if url.drivername.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}

    return create_engine(test_db_url, **engine_kwargs)


def _reset_schema(engine):
    """Drop and recreate the public schema so enum types never collide (Postgres)."""
    if engine.dialect.name != "postgresql":
        Base.metadata.drop_all(bind=engine)
        return
    with engine.begin() as conn:
        conn.execute(text("DROP SCHEMA IF EXISTS public CASCADE;"))
        conn.execute(text("CREATE SCHEMA public;"))


engine = _init_test_engine()
_reset_schema(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base.metadata.create_all(bind=engine)


def _clear_tables():
    with engine.begin() as connection:
        if engine.dialect.name == "sqlite":
            for table in reversed(Base.metadata.sorted_tables):
                connection.execute(table.delete())
        else:
            table_names = ", ".join(
                f'"{tbl.name}"' for tbl in Base.metadata.sorted_tables
            )
            if table_names:
                connection.execute(
                    text(f"TRUNCATE {table_names} RESTART IDENTITY CASCADE")
                )


@pytest.fixture(scope="function")
def session():
    """Fresh database session on empty tables for each test."""
    _clear_tables()
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client(session):
    def override_get_db():
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        try:
            yield test_client
        finally:
            app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def test_user(session):
    user = make_user(session, "alice")
    return AttrDict({"id": user.id, "username": user.username})


@pytest.fixture(scope="function")
def test_user2(session):
    user = make_user(session, "bobby")
    return AttrDict({"id": user.id, "username": user.username})


@pytest.fixture(scope="function")
def test_user3(session):
    user = make_user(session, "carol")
    return AttrDict({"id": user.id, "username": user.username})


@pytest.fixture(scope="function")
def test_meme(session, test_user):
    meme = make_meme(session, test_user.id)
    return AttrDict({"id": meme.id, "title": meme.title})


@pytest.fixture(scope="function")
def token(test_user):
    return create_access_token({"user_id": test_user["id"]})


@pytest.fixture(scope="function")
def authorized_client(client, token):
    client.headers.update({"Authorization": f"Bearer {token}"})
    return client


# Autouse cleanup to keep DB isolated across all tests, including those that
# do not explicitly request the session fixture.
@pytest.fixture(autouse=True, scope="function")
def _clean_db_between_tests():
    yield
    _clear_tables()
