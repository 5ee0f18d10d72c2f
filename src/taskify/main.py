"""FastAPI application factory.

Learn: create_app() returns a configured FastAPI instance with its own
BroadcastHub on app.state. Lifespan prepares the store at startup and
closes live sockets + the engine at shutdown. Middleware, CORS, error
handlers and routers are all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from taskify import __version__
from taskify.api import api_router
from taskify.config import settings
from taskify.errors import StoreUnavailableError, TaskifyError
from taskify.realtime.hub import BroadcastHub

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    A store that can't be reached at startup is logged, not fatal: the
    liveness route and the WebSocket relay keep working without it, and
    the store routes create the tables on their first successful request.
    """
    logger.info(
        "taskify.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from taskify.db.engine import engine, init_db
    try:
        await init_db()
        logger.info("taskify.store_ready")
    except Exception as e:
        logger.error("taskify.store_unavailable", error=str(e), retry="on_first_request")

    yield

    logger.info("taskify.shutdown")
    await app.state.hub.close()
    await engine.dispose()


async def _taskify_error_handler(request: Request, exc: TaskifyError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("http.error", code=exc.code, detail=exc.detail, path=request.url.path)
    else:
        logger.info("http.rejected", code=exc.code, detail=exc.detail, path=request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.detail},
    )


async def _store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """SQLAlchemy driver failures surface as store_unavailable."""
    return await _taskify_error_handler(request, StoreUnavailableError(str(exc)))


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Taskify",
        description="Task-tracking backend with real-time WebSocket fan-out",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.hub = BroadcastHub()

    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → CORS → handler
    from taskify.middleware.request_id import RequestIdMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(TaskifyError, _taskify_error_handler)
    app.add_exception_handler(SQLAlchemyError, _store_error_handler)

    app.include_router(api_router)

    from taskify.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: taskify.main:app)
app = create_app()
