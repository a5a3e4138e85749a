"""Application factory; `memestack.main` only calls `create_app`."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.trustedhost import TrustedHostMiddleware

from memestack.api.router import api_router
from memestack.core.config import settings
from memestack.core.database import get_db
from memestack.core.error_handlers import register_exception_handlers
from memestack.core.logging_config import setup_logging
from memestack.core.middleware import LoggingMiddleware

logger = logging.getLogger(__name__)

health_router = APIRouter(tags=["Health"])


@health_router.get("/")
async def root():
    return {"message": f"{settings.SITE_NAME} collaboration API"}


@health_router.get("/livez")
async def livez():
    return {"status": "ok"}


@health_router.get("/readyz")
def readyz(db: Session = Depends(get_db)):
    """Ready once the database answers a trivial query."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error(f"Readiness check failed: {exc}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"database": "disconnected"},
        )
    return {"status": "ready", "details": {"database": "connected"}}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.SITE_NAME} starting ({settings.environment})")
    yield
    logger.info(f"{settings.SITE_NAME} shutting down")


def _add_middleware(app: FastAPI) -> None:
    # Added last runs first: CORS, then request logging, then host checks.
    hosts = settings.allowed_hosts or ["*"]
    if hosts != ["*"]:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=hosts)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def create_app() -> FastAPI:
    setup_logging(
        log_level=settings.log_level,
        log_dir=settings.log_dir,
        app_name="memestack",
        use_json=settings.use_json_logs,
    )

    app = FastAPI(
        title="MemeStack Collaboration API",
        description="Versioned multi-user meme collaborations with forks, merges and insights",
        version="1.0.0",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )
    app.state.environment = settings.environment

    _add_middleware(app)
    app.include_router(health_router)
    app.include_router(api_router)
    register_exception_handlers(app)

    logger.info("Application startup complete")
    return app


__all__ = ["create_app"]
