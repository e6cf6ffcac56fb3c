"""
Timebox - Main Application Entry Point

Day scheduling engine for time boxes, served over HTTP.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from timebox.core.config import get_settings
from timebox.core.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings = get_settings()
    logger.info("Starting Timebox in %s mode...", settings.ENVIRONMENT)

    if settings.is_local:
        from timebox.infrastructure.local.database import init_db

        await init_db()

    yield

    logger.info("Shutting down Timebox...")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Timebox",
        description="Day scheduling engine for time boxes",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from timebox.api import backlog, boxes, review, schedule_settings

    app.include_router(boxes.router, prefix="/api/boxes", tags=["boxes"])
    app.include_router(backlog.router, prefix="/api/backlog", tags=["backlog"])
    app.include_router(schedule_settings.router, prefix="/api", tags=["schedule_settings"])
    app.include_router(review.router, prefix="/api/review", tags=["review"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "version": "0.1.0",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
