"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import github, health, metrics, progress, repositories, stream, teams
from app.config.database import Database
from app.config.settings import Settings, settings as default_settings
from app.crawlers.github.client import GitHubClient, sanitize_log_extra
from app.errors import AppError
from app.orchestrator_poll import RepositoryPoller
from app.services.commit_history import CommitHistoryReconstructor

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    database: Optional[Database] = None,
    github_client: Any = None,
    poller: Optional[RepositoryPoller] = None,
    start_poller: Optional[bool] = None,
) -> FastAPI:
    """
    Build the API application

    Collaborators that are not passed in are created from settings when the
    application starts and disposed when it shuts down.
    """
    settings = settings or default_settings
    owns_database = database is None
    database = database or Database(settings.DATABASE_URL, echo=settings.DEBUG)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.open()

        client = github_client
        if client is None:
            if not settings.GITHUB_TOKEN:
                logger.warning("GITHUB_TOKEN is not set; unauthenticated rate limits apply")
            client = GitHubClient(
                settings.GITHUB_TOKEN,
                base_url=settings.GITHUB_API_URL,
                timeout_seconds=settings.GITHUB_TIMEOUT_SECONDS,
                max_retries=settings.GITHUB_MAX_RETRIES,
            )

        repository_poller = poller or RepositoryPoller(
            session_factory=database.session,
            github_client=client,
            interval_seconds=settings.POLL_INTERVAL_SECONDS,
            retention_days=settings.METRICS_RETENTION_DAYS,
            dedup=settings.METRICS_DEDUP_ENABLED,
        )

        app.state.github = client
        app.state.poller = repository_poller
        app.state.reconstructor = CommitHistoryReconstructor(
            client,
            max_pages=settings.COMMIT_HISTORY_MAX_PAGES,
            per_page=settings.COMMIT_HISTORY_PER_PAGE,
            request_delay_seconds=settings.COMMIT_REQUEST_DELAY_SECONDS,
            max_points=settings.MAX_TIME_SERIES_POINTS,
        )

        run_loop = settings.POLLER_ENABLED if start_poller is None else start_poller
        if run_loop:
            repository_poller.start()

        logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started")
        try:
            yield
        finally:
            await repository_poller.stop()
            if github_client is None:
                await client.aclose()
            if owns_database:
                database.close()
            logger.info(f"{settings.APP_NAME} stopped")

    app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                extra=sanitize_log_extra(path=request.url.path, status_code=exc.status_code, error=exc.message),
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            first = errors[0]
            field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
            message = f"Invalid {field}: {first.get('msg')}" if field else str(first.get("msg"))
        return JSONResponse(status_code=400, content={"error": message})

    for module in (health, teams, repositories, metrics, progress, github, stream):
        app.include_router(module.router, prefix="/api")

    return app
