"""FastAPI application factory and entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import async_session_factory, close_db
from app.exceptions import create_exception_handlers
from app.middleware.identity import IdentityMiddleware
from app.services.engine import RuleEngine, build_engine

# Configure logging - DEBUG in development
log_level = logging.DEBUG if settings.is_development else getattr(logging, settings.app_log_level)
logging.basicConfig(
    level=log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    force=True,  # Override any existing configuration
)
logger = logging.getLogger(__name__)
logger.info(f"Logging configured at level: {logging.getLevelName(log_level)}")


def create_app(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    rule_engine: RuleEngine | None = None,
    run_sweeps: bool | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        session_factory: Sessions used by the engine components (defaults to the global factory)
        rule_engine: Pre-built engine, e.g. with a fake clock in tests
        run_sweeps: Start the periodic SLA sweep task (defaults to sla_sweep_enabled)
    """
    sweeps_enabled = settings.sla_sweep_enabled if run_sweeps is None else run_sweeps

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        logger.info(f"Starting {settings.app_name} in {settings.app_env} mode")

        engine = rule_engine or build_engine(session_factory or async_session_factory)
        app.state.engine = engine

        stop = asyncio.Event()
        sweeper = None
        if sweeps_enabled:
            sweeper = asyncio.create_task(
                engine.sla_evaluator.run_periodic_sweeps(settings.sla_sweep_interval_seconds, stop)
            )

        yield

        logger.info(f"Shutting down {settings.app_name}")
        if sweeper is not None:
            stop.set()
            await sweeper
        if session_factory is None:
            await close_db()

    app = FastAPI(
        title=settings.app_name,
        description="Listing numbers, commission splits, recruiter bonuses and inquiry SLAs",
        version="1.0.0",
        docs_url="/api/docs" if settings.app_debug else None,
        redoc_url="/api/redoc" if settings.app_debug else None,
        openapi_url="/api/openapi.json" if settings.app_debug else None,
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else [settings.app_base_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Caller identity from the gateway headers
    app.add_middleware(IdentityMiddleware)

    # Register exception handlers
    exception_handlers = create_exception_handlers()
    for exc_class, handler in exception_handlers.items():
        app.add_exception_handler(exc_class, handler)

    # Register routers
    register_routers(app)

    return app


def register_routers(app: FastAPI):
    """Register the API routers."""
    from app.api.v1 import api_router

    # API routes (versioned)
    app.include_router(api_router, prefix="/api/v1")

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for load balancers and monitoring."""
        return {"status": "healthy", "app": settings.app_name, "env": settings.app_env}


# Create the app instance
app = create_app()


def main():
    """Entry point for running the application."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.app_log_level.lower(),
    )


if __name__ == "__main__":
    main()
