"""
Marketplace Milestones - Main Application Entry Point

Milestone payment-release workflow for the freelance marketplace.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketplace.core.config import get_settings
from marketplace.core.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    logger.info(
        f"Starting marketplace milestones in {settings.ENVIRONMENT} mode "
        f"(execution={settings.EXECUTION_MODE}, store={settings.RECORD_STORE}, "
        f"payments={settings.PAYMENT_PROVIDER})"
    )

    # Initialize database if needed
    if settings.RECORD_STORE == "sqlite":
        from marketplace.infrastructure.local.database import init_db

        await init_db()

    yield

    # Shutdown
    logger.info("Shutting down marketplace milestones...")
    if settings.RECORD_STORE == "sqlite":
        from marketplace.infrastructure.local.database import get_engine

        await get_engine().dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Marketplace Milestones",
        description="Milestone plans, lifecycle and payment release for freelance proposals",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from marketplace.api.errors import register_exception_handlers

    register_exception_handlers(app)

    # Include routers; plan routes first so /milestones/plan/* never reaches /{milestone_id}
    from marketplace.api import milestone_plans, milestones

    app.include_router(milestone_plans.router, prefix="/api", tags=["milestone_plans"])
    app.include_router(milestones.router, prefix="/api", tags=["milestones"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "execution_mode": settings.EXECUTION_MODE,
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
