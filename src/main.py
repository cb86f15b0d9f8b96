"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text

from config.settings import settings
from src.cl_card.api.router import router as card_router
from src.cl_common.database import engine
from src.cl_common.errors import AppError, InvalidArgumentError
from src.cl_common.logging_config import setup_logging
from src.cl_common.metrics import generate_metrics, get_content_type
from src.cl_common.redis_client import close_redis, get_redis
from src.cl_common.response import error_response
from src.cl_gateway.middleware.request_log import RequestLogMiddleware
from src.cl_report.api.router import router as report_router

setup_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis connections. Shutdown: dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    redis = await get_redis()
    await redis.ping()
    yield
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Keep the envelope shape for malformed bodies too
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    err = InvalidArgumentError(f"{field}: {first.get('msg', 'invalid request')}")
    resp = error_response(err.code, err.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(status_code=err.http_status, content=resp.model_dump())


app.include_router(card_router, prefix="/api/v1")
app.include_router(report_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}


@app.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_metrics(), media_type=get_content_type())
