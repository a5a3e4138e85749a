"""Application settings.

`.env` at the repository root is loaded first, then process environment variables win.

Keys (defaults in parentheses):
- `APP_ENV` picks the settings class (`production`).
- `DATABASE_URL` / `TEST_DATABASE_URL`, or the `DATABASE_*` parts; test URLs must name a
  `*_test` database unless they are SQLite.
- `SECRET_KEY`, `ALGORITHM` (`HS256`), `ACCESS_TOKEN_EXPIRE_MINUTES` (30).
- `LOG_LEVEL` (`INFO`), `LOG_DIR` (`logs`), `USE_JSON_LOGS` (true).
- `ALLOWED_HOSTS` and `CORS_ORIGINS`: comma-separated or JSON lists.
- Collaboration tunables: `INVITE_EXPIRY_DAYS` (7), `DEFAULT_MAX_COLLABORATORS` (10),
  `FORK_MAX_COLLABORATORS` (10), `TRENDING_LIMIT` (10), `ACTIVITY_FEED_LIMIT` (20).
"""

import json
import os
from pathlib import Path
from typing import Any, ClassVar, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

# memestack/core/config/settings.py -> repository root
BASE_DIR = Path(__file__).resolve().parents[3]

load_dotenv(BASE_DIR / ".env")

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]
SQLITE_FALLBACK_URL = "sqlite:///./memestack.db"


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _split_list(raw: Optional[str]) -> list[str]:
    """Accept `a,b` or `["a", "b"]`."""
    if not raw:
        return []
    try:
        values = json.loads(raw)
    except ValueError:
        values = raw.split(",")
    if isinstance(values, str):
        values = [values]
    return [str(value).strip() for value in values if str(value).strip()]


class Settings(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = os.getenv("APP_ENV", "production")
    SITE_NAME: str = os.getenv("SITE_NAME", "MemeStack")

    database_url: Optional[str] = os.getenv("DATABASE_URL")
    test_database_url: Optional[str] = os.getenv("TEST_DATABASE_URL")
    database_hostname: Optional[str] = os.getenv("DATABASE_HOSTNAME")
    database_port: str = os.getenv("DATABASE_PORT", "5432")
    database_password: Optional[str] = os.getenv("DATABASE_PASSWORD")
    database_name: Optional[str] = os.getenv("DATABASE_NAME")
    database_username: Optional[str] = os.getenv("DATABASE_USERNAME")
    database_ssl_mode: str = os.getenv("DATABASE_SSL_MODE", "require")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: Optional[str] = os.getenv("LOG_DIR", "logs")
    use_json_logs: bool = _env_flag("USE_JSON_LOGS", default=True)

    # Raw strings from the environment; normalized to lists after validation.
    allowed_hosts: Optional[str] = os.getenv("ALLOWED_HOSTS")
    cors_origins: Optional[str] = os.getenv("CORS_ORIGINS")

    secret_key: str = os.getenv("SECRET_KEY", "change-me")
    algorithm: str = os.getenv("ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 30))

    INVITE_EXPIRY_DAYS: int = int(os.getenv("INVITE_EXPIRY_DAYS", 7))
    DEFAULT_MAX_COLLABORATORS: int = int(os.getenv("DEFAULT_MAX_COLLABORATORS", 10))
    FORK_MAX_COLLABORATORS: int = int(os.getenv("FORK_MAX_COLLABORATORS", 10))
    TRENDING_LIMIT: int = int(os.getenv("TRENDING_LIMIT", 10))
    ACTIVITY_FEED_LIMIT: int = int(os.getenv("ACTIVITY_FEED_LIMIT", 20))

    def model_post_init(self, __context: Any) -> None:
        env_override = os.getenv("APP_ENV")
        if env_override:
            object.__setattr__(self, "environment", env_override)

        object.__setattr__(
            self, "cors_origins", _split_list(self.cors_origins) or DEFAULT_CORS_ORIGINS
        )

        hosts = _split_list(self.allowed_hosts) or ["*"]
        # TestClient sends Host: testserver.
        if self.environment.lower() == "test" and "*" not in hosts and "testserver" not in hosts:
            hosts.append("testserver")
        object.__setattr__(self, "allowed_hosts", hosts)

    def get_database_url(self, *, use_test: bool = False) -> str:
        """Resolve the SQLAlchemy URL.

        Runtime order: `DATABASE_URL`, composed Postgres parts, `TEST_DATABASE_URL`,
        then a local SQLite file. With `use_test=True` the URL must point at a
        dedicated test database.
        """
        if use_test:
            test_url = self._resolve_test_database_url()
            if not test_url.startswith("sqlite") and "_test" not in test_url:
                raise ValueError(
                    "Test database URL must point to a dedicated test database (contains '_test')."
                )
            return test_url

        if self.database_url:
            return self.database_url

        parts = (
            self.database_hostname,
            self.database_username,
            self.database_password,
            self.database_name,
        )
        if all(parts):
            url = (
                f"postgresql+psycopg2://{self.database_username}:{self.database_password}"
                f"@{self.database_hostname}:{self.database_port}/{self.database_name}"
            )
            return f"{url}?sslmode={self.database_ssl_mode}" if self.database_ssl_mode else url

        return self.test_database_url or SQLITE_FALLBACK_URL

    def _resolve_test_database_url(self) -> str:
        if self.test_database_url:
            return self.test_database_url
        if not self.database_url:
            return "sqlite:///./test.db"

        url = make_url(self.database_url)
        if url.drivername.startswith("sqlite"):
            return str(url)
        name = url.database or ""
        if not name.endswith("_test"):
            name = f"{name}_test"
        return url.set(database=name).render_as_string(hide_password=False)
