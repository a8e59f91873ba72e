import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from spacebook import database
from spacebook.api import bookings, workspaces
from spacebook.booking.ledger import WorkspaceLocks
from spacebook.booking.notifications import BookingNotifier
from spacebook.booking.service import BookingService
from spacebook.catalog.service import WorkspaceService
from spacebook.config import settings
from spacebook.errors import DomainError, PersistenceError


logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    database_url: Optional[str] = None,
    notifier: Optional[BookingNotifier] = None,
) -> FastAPI:
    if database_url:
        engine = database.build_engine(database_url, echo=settings.database_echo)
        session_factory = database.build_session_factory(engine)
    else:
        engine = database.engine
        session_factory = database.async_session

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        if settings.create_tables_on_startup:
            await database.create_tables(engine)
        if settings.seed_defaults_on_startup:
            await app.state.workspace_service.seed_defaults()

        yield

        # Shutdown
        await database.close_db(engine)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="Workspace inventory and conflict-free booking of time slots",
        lifespan=lifespan,
    )

    app.state.engine = engine
    app.state.workspace_service = WorkspaceService(session_factory)
    app.state.booking_service = BookingService(
        session_factory, notifier=notifier, locks=WorkspaceLocks()
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(workspaces.router, prefix="/api/v1")

    @app.get("/")
    async def root():
        """Service information"""
        return {"title": settings.api_title, "version": settings.api_version}

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError):
        if isinstance(exc, PersistenceError):
            logger.error(f"Persistence failure on {request.url.path}: {exc.cause!r}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "detail": exc.message},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.exception(f"Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "detail": "An internal server error occurred"},
        )

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("spacebook.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
