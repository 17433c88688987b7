"""
Deal Finder Bot - serveur HTTP + scheduler.

Usage: deal-finder   (ou python -m dealfinder)
"""
import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dealfinder.core.config import Settings
from dealfinder.core.exceptions import ConfigurationError
from dealfinder.core.logging import get_logger, setup_logging
from dealfinder.jobs import start_background_run
from dealfinder.routers.system import router as system_router
from dealfinder.scheduler import build_trigger, setup_scheduled_jobs

logger = get_logger(__name__)

API_VERSION = "1.0.0"
API_TITLE = "Deal Finder Bot"


def create_app(settings: Settings, enable_scheduler: bool = True) -> FastAPI:
    """
    Construit l'application.

    Args:
        settings: configuration immuable, partagée via app.state
        enable_scheduler: False pour les tests (pas de cron ni de run au démarrage)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if enable_scheduler:
            scheduler = setup_scheduled_jobs(settings)
            scheduler.start()
            app.state.scheduler = scheduler
            if settings.run_on_startup:
                start_background_run(settings, reason="startup")
        logger.info("Bot is running", source=settings.source.value, schedule=settings.schedule_cron)
        yield
        if scheduler is not None:
            scheduler.shutdown(wait=False)
        logger.info("Bot shutting down gracefully")

    app = FastAPI(title=API_TITLE, version=API_VERSION, lifespan=lifespan)
    app.state.settings = settings

    @app.middleware("http")
    async def add_timing(request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response

    @app.exception_handler(404)
    async def not_found(request: Request, exc):
        return JSONResponse(status_code=404, content={"error": "Not found"})

    app.include_router(system_router)
    return app


def load_settings() -> Optional[Settings]:
    try:
        settings = Settings.from_env()
        build_trigger(settings.schedule_cron)
    except ConfigurationError as e:
        logger.critical(f"ERROR: {e}", exc_info=False, variable=e.variable)
        return None
    return settings


def main() -> int:
    setup_logging()
    settings = load_settings()
    if settings is None:
        return 1

    setup_logging(level=settings.log_level)
    logger.info("Deal Finder Bot starting...", **settings.describe())

    app = create_app(settings)
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
