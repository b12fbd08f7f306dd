"""Main FastAPI application for the notification service."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings, build_push_config
from .database import init_db, close_db, async_session
from .routers import devices_router, notifications_router, preferences_router
from .services.dispatcher import Dispatcher

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting notifier")

    await init_db()
    logger.info("Database initialized")

    config = build_push_config(settings)
    app.state.dispatcher = Dispatcher(async_session, config)
    if config.enabled:
        logger.info(f"Push delivery enabled for project {config.project_id} ({config.workers} workers)")
    else:
        logger.warning("Firebase service account not configured - push delivery disabled")

    yield

    await close_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Notifier",
        description="In-app notifications with push fan-out to user devices",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict to your domain
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(devices_router)
    app.include_router(notifications_router)
    app.include_router(preferences_router)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "push_enabled": build_push_config(settings).enabled,
        }

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)
