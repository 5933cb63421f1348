"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config.settings import settings
from src.sl_common.database import engine
from src.sl_common.errors import AppError, InternalError, PersistenceError
from src.sl_common.response import error_response
from src.sl_gateway.middleware.request_log import RequestLogMiddleware
from src.sl_session.api.router import router as session_router
from src.sl_staking.api.router import manual_stakers_router, session_stakes_router
from src.sl_staking.api.router import router as stake_router

logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logging.getLogger("src").setLevel(settings.LOG_LEVEL)
logging.getLogger("sl.request").setLevel(settings.LOG_LEVEL)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB connection. Shutdown: dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


def _error_json(exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    return JSONResponse(status_code=exc.http_status, content=resp.model_dump())


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error_json(exc)


@app.exception_handler(SQLAlchemyError)
async def db_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # The service already rolled back; only this operation failed
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return _error_json(PersistenceError(type(exc).__name__))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_json(InternalError())


app.include_router(session_router, prefix="/api/v1")
app.include_router(session_stakes_router, prefix="/api/v1")
app.include_router(stake_router, prefix="/api/v1")
app.include_router(manual_stakers_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
