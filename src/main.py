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
from sqlalchemy.exc import DBAPIError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from config.settings import settings
from src.ws_admin.api.router import router as admin_router
from src.ws_common.database import engine
from src.ws_common.errors import AppError, InternalError
from src.ws_common.response import error_response, request_id_of
from src.ws_common.unit_of_work import classify_store_error
from src.ws_gateway.middleware.request_log import RequestLogMiddleware
from src.ws_lifecycle.api.router import router as bets_router
from src.ws_rank.api.router import router as ranks_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify the DB connection. Shutdown: dispose the pool."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    debug=settings.DEBUG,
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


def _error_json(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, request_id_of(request))
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error_json(request, exc)


@app.exception_handler(DBAPIError)
@app.exception_handler(PoolTimeoutError)
async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Driver errors escaping a read path: timeouts and conflicts become 9003/503."""
    error = classify_store_error(exc)
    if error is None:
        logger.error("Unhandled store error on %s", request.url.path, exc_info=exc)
        error = InternalError()
    return _error_json(request, error)


app.include_router(bets_router, prefix="/api/v1")
app.include_router(ranks_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
