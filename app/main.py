from contextlib import asynccontextmanager
from fastapi import FastAPI

from app.config.settings import settings
from app.db.db import create_tables
from app.utils.logging import get_logger
from app.routers import jobs_router, shared_router, webhook_router
from app.utils.errors import setup_error_handlers
from app.middlewares import RequestIDMiddleware

# Initialize the logger
logger = get_logger()


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info(
        "Accord notification engine is starting up...",
        environment=settings.ENVIRONMENT,
        timezone=settings.SERVER_TIMEZONE,
    )
    if settings.DATABASE_URL.startswith("sqlite"):
        # local runs have no migration step
        await create_tables()
    yield
    logger.info("Accord notification engine is shutting down...")


def create_application() -> FastAPI:
    """Initialize the FastAPI application with settings and lifespan events."""
    application = FastAPI(
        title=settings.NAME, version=settings.VERSION, lifespan=lifespan
    )

    # Setup error handlers
    setup_error_handlers(application)

    # Add custom middlewares
    application.add_middleware(RequestIDMiddleware)

    # Routers
    application.include_router(jobs_router, prefix=settings.JOBS_PREFIX, tags=["Jobs"])
    application.include_router(
        webhook_router, prefix=settings.WEBHOOK_PREFIX, tags=["Webhooks"]
    )
    application.include_router(shared_router)

    return application


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_config=None,
        log_level=None,
    )
