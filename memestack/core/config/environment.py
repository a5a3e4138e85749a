"""Settings classes per `APP_ENV`."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Dict, Type

from .settings import Settings


class DevelopmentSettings(Settings):
    environment: str = "development"
    use_json_logs: bool = False


class ProductionSettings(Settings):
    environment: str = "production"


class TestSettings(Settings):
    """Console-only logs; the database URL always resolves to the test database."""

    environment: str = "test"
    log_dir: str | None = None

    def model_post_init(self, __context) -> None:
        super().model_post_init(__context)
        object.__setattr__(self, "database_url", self.get_database_url(use_test=True))


ENVIRONMENTS: Dict[str, Type[Settings]] = {
    "development": DevelopmentSettings,
    "dev": DevelopmentSettings,
    "production": ProductionSettings,
    "prod": ProductionSettings,
    "test": TestSettings,
    "testing": TestSettings,
}


@lru_cache
def get_settings() -> Settings:
    env = os.getenv("APP_ENV", "production").lower()
    return ENVIRONMENTS.get(env, ProductionSettings)()
