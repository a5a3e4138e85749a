"""Apply every pending Alembic migration: ``python run_migrations.py``."""

from pathlib import Path

from alembic import command
from alembic.config import Config


def main() -> None:
    alembic_cfg = Config(str(Path(__file__).resolve().parent / "alembic.ini"))
    command.upgrade(alembic_cfg, "head")


if __name__ == "__main__":
    main()
