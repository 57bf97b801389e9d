from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import get_log_level, get_readiness_settings


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    logging.basicConfig(
        level=get_log_level(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.

    Does NOT auto-migrate; run 'alembic upgrade head' first.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    actual = set(sa_inspect(get_engine()).get_table_names())
    missing = set(Base.metadata.tables.keys()) - actual
    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch: %d table(s) absent from the database: %s. "
            "Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: missing table(s) {', '.join(sorted(missing))}."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Verify the ledger database on boot when the database backend is selected."""
    log = logging.getLogger(__name__)
    settings = get_readiness_settings()
    if settings.ledger_backend == "database":
        from db.session import check_connection

        check_connection()
        log.info("Database connectivity confirmed")
        _check_schema()
        log.info("Database schema validated")
    log.info(
        "Readiness API started (ledger_backend=%s, max_rows=%d, missing_numeric_policy=%s)",
        settings.ledger_backend,
        settings.max_rows,
        settings.missing_numeric_policy,
    )
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _configure_logging()

    application = FastAPI(
        title="Regional Readiness API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import readiness_router

    application.include_router(readiness_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
