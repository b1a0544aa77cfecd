import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quiztrack import __version__
from quiztrack.adapters.sqlite.migrator import SQLiteMigrator
from quiztrack.adapters.sqlite.repos import SQLiteStatsRepo
from quiztrack.api.deps import Settings, get_rules, get_settings
from quiztrack.api.errors import register_error_handlers
from quiztrack.api.routes import campaigns, monitor, stats, track
from quiztrack.components.monitor import RecentEventsBuffer
from quiztrack.shell.http.health import (
    HealthCheckRegistry,
    StartupCheck,
    StartupTracker,
    StoreCheck,
    create_health_router,
)

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules on startup (fail-fast)
    try:
        rules = get_rules()
        logger.info("Rules loaded from %s", settings.rules_path)
    except (FileNotFoundError, ValueError):
        logger.critical("Rules load failed from %s", settings.rules_path, exc_info=True)
        raise

    if settings.db_path:
        SQLiteMigrator(settings.db_path).run_migrations()
    else:
        logger.warning("QUIZTRACK_DB_PATH not set; events will be logged, not stored")

    app.state.monitor = RecentEventsBuffer(capacity=rules.monitor.capacity)
    StartupTracker.mark_started()
    yield


def build_health_registry(settings: Settings) -> HealthCheckRegistry:
    registry = HealthCheckRegistry()
    registry.register(StartupCheck())
    ping = SQLiteStatsRepo(settings.db_path).ping if settings.db_path else None
    registry.register(StoreCheck(ping))
    return registry


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="quiztrack API",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    register_error_handlers(app)

    # --- Routers ---
    app.include_router(track.router, prefix="/api", tags=["Tracking"])
    app.include_router(stats.router, prefix="/api", tags=["Stats"])
    app.include_router(campaigns.router, prefix="/api", tags=["Campaigns"])
    app.include_router(monitor.router, prefix="/api", tags=["Monitor"])
    app.include_router(create_health_router(__version__, build_health_registry(settings)))

    # The snippet posts from arbitrary quiz pages; the dashboard polls from its own origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    return app


app = create_app()
