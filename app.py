from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from core.config import settings
from core.exceptions import setup_exception_handlers
from core.logging import app_logger, setup_logging
from core.middleware import setup_middleware
from db_config import db_manager
from routers import ai, auth, files, health, resources
from services.account_service import seed_demo_accounts
from storage.selector import volatile_backend

# Initialize logging system early
setup_logging()


def create_app() -> FastAPI:
    """Build the application: middleware, exception handlers, routers and static uploads."""
    app = FastAPI(
        title=settings.app_name,
        description="Backend API for creating, sharing and AI-generating educational resources",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    setup_exception_handlers(app)
    setup_middleware(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router)
    app.include_router(resources.router)
    app.include_router(ai.router)
    app.include_router(files.router)
    app.include_router(health.router)

    app.mount("/uploads", StaticFiles(directory=settings.upload_directory, check_dir=False), name="uploads")

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "docs": "/docs",
            "health_checks": {"basic": "/health", "storage": "/health/storage"},
        }

    @app.on_event("startup")
    async def startup_event():
        app_logger.info("FastAPI application starting up", component="startup")
        await db_manager.connect()
        db_manager.start_reconnect_task()
        await seed_demo_accounts(volatile_backend)

    @app.on_event("shutdown")
    async def shutdown_event():
        app_logger.info("FastAPI application shutting down", component="shutdown")
        await db_manager.dispose()

    return app


app = create_app()
