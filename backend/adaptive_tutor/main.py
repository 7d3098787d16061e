"""Adaptive Tutor FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .agents.tutor.graph import SessionOrchestrator, build_orchestrator
from .api import tutor
from .core.config import Settings, get_settings
from .core.exceptions import TutorError
from .core.logging import configure_logging
from .db.base import create_tutor_engine, create_tutor_session_maker, init_database
from .db.tutor.store import SQLAlchemyTutorStore
from .observability.langsmith import initialize_langsmith

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    orchestrator: Optional[SessionOrchestrator] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to run with (environment by default)
        orchestrator: Prebuilt orchestrator; built from settings on start-up
            when omitted
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context for startup and shutdown events."""
        configure_logging(settings)
        logger.info(f"{settings.APP_NAME} starting up...")
        initialize_langsmith(settings)

        engine = None
        if orchestrator is None:
            engine = create_tutor_engine(settings)
            await init_database(engine)
            store = SQLAlchemyTutorStore(create_tutor_session_maker(engine))
            app.state.orchestrator = build_orchestrator(settings, store=store)
        else:
            app.state.orchestrator = orchestrator

        yield

        logger.info(f"{settings.APP_NAME} shutting down...")
        if engine is not None:
            await engine.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Adaptive tutoring orchestration with Bloom-level mastery tracking",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(tutor.router, prefix=settings.API_V1_PREFIX, tags=["Tutor"])

    # Health check
    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "app": settings.APP_NAME}

    @app.get("/")
    async def root():
        return {
            "app": settings.APP_NAME,
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(TutorError)
    async def tutor_error_handler(request: Request, exc: TutorError):
        logger.error(f"Unhandled tutor error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=503,
            content={"detail": "AI service temporarily unavailable"},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "error": str(exc) if settings.DEBUG else "An error occurred",
            },
        )

    return app


# Create the app instance
app = create_app()
