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

from config.settings import settings
from src.sm_admin.api.router import router as admin_router
from src.sm_common.database import engine
from src.sm_common.errors import AppError
from src.sm_common.redis_client import close_redis, ping_redis
from src.sm_common.response import error_envelope
from src.sm_gateway.middleware.request_log import RequestLogMiddleware
from src.sm_negotiation.api.router import router as negotiation_router
from src.sm_offer.api.router import router as offer_router
from src.sm_offer.application.sweeper import start_sweeper, stop_sweeper
from src.sm_payment.api.router import router as payment_router
from src.sm_request.api.router import router as request_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, start the expiry sweeper. Shutdown: reverse."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await ping_redis()
    sweeper = start_sweeper()
    yield
    # Shutdown
    await stop_sweeper(sweeper)
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
    envelope = error_envelope(request, exc.code, exc.message)
    return JSONResponse(status_code=exc.http_status, content=envelope.model_dump())


app.include_router(request_router, prefix="/api/v1")
app.include_router(offer_router, prefix="/api/v1")
app.include_router(negotiation_router, prefix="/api/v1")
app.include_router(payment_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
