"""FastAPI application factory and server entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..utils.logging import configure_logging
from .config import ApiSettings
from .deps.providers import get_build_queue, get_job_store, get_settings, use_settings
from .errors import register_error_handlers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    settings: ApiSettings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    logger.info("Starting build service on %s:%s", settings.host, settings.port)

    # Run config validation on startup
    try:
        from ..config import validate_config
        issues = validate_config()
        for issue in issues:
            level = issue.get("level", "WARNING")
            msg = issue.get("message", "")
            if level == "ERROR":
                logger.error("Config validation: %s", msg)
            else:
                logger.warning("Config validation: %s", msg)
        if not issues:
            logger.info("Config validation: all checks passed")
    except Exception as e:  # noqa: BLE001
        logger.warning("Config validation could not run: %s", e)

    # Initialise async resources
    store = get_job_store()
    await store.initialize()
    queue = get_build_queue()
    await queue.recover()

    yield

    # Cleanup
    await queue.shutdown()
    await store.close()
    logger.info("Shutting down build service")


def create_app(settings: ApiSettings | None = None) -> FastAPI:
    """Build and return the FastAPI application."""
    if settings is None:
        settings = get_settings()
    else:
        use_settings(settings)

    app = FastAPI(
        title="Smack Builders API",
        description="Asynchronous build jobs: mobile packages, desktop bundles and AI-generated game scenes.",
        version=__version__,
        lifespan=_lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS
    origins = [o.strip() for o in settings.cors_origins.split(",")]
    allow_creds = "*" not in origins
    if not allow_creds:
        logger.warning(
            "CORS_ORIGINS contains '*'. Credentials will NOT be allowed. "
            "Set explicit origins (e.g. 'http://localhost:5173') for "
            "credentialed cross-origin requests."
        )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_creds,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Error handlers
    register_error_handlers(app)

    # Routers, imported lazily
    from .routers import all_routers

    for router in all_routers():
        app.include_router(router)

    return app


def run_server() -> None:
    """CLI entry point: ``python -m smack_builders.api.main``."""
    import uvicorn

    settings = get_settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run_server()
