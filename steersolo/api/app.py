from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from steersolo.api.routers import (
    ai,
    ambassador,
    coupons,
    health,
    logistics,
    marketing,
    orders,
    paystack,
    phone,
    referrals,
    shops,
    subscription,
)
from steersolo.core.config import Settings, get_settings
from steersolo.core.errors import ServiceError
from steersolo.core.logging import bind_request_context, get_logger
from steersolo.infrastructure.db.session import dispose_engine, init_engine

log = get_logger(__name__)

CORS_ALLOW_HEADERS = [
    "authorization",
    "x-client-info",
    "apikey",
    "content-type",
    "x-paystack-signature",
    "x-terminal-signature",
]


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    await init_engine()
    log.info("api_starting")
    try:
        yield
    finally:
        await dispose_engine()
        log.info("api_stopped")


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        log.warning("service_error", path=request.url.path, status_code=exc.status_code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"loc": [str(part) for part in error.get("loc", ())], "message": error.get("msg", "")}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        exception_type=type(exc).__name__,
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


def create_app(settings: Settings | None = None, *, with_lifespan: bool = True) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan if with_lifespan else None)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=CORS_ALLOW_HEADERS,
    )
    register_exception_handlers(app)

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        bind_request_context(request.method, request.url.path)
        return await call_next(request)

    app.include_router(health.router)
    app.include_router(paystack.router)
    app.include_router(phone.router)
    app.include_router(referrals.router)
    app.include_router(ambassador.router)
    app.include_router(shops.router)
    app.include_router(coupons.router)
    app.include_router(orders.router)
    app.include_router(subscription.router)
    app.include_router(logistics.router)
    app.include_router(ai.router)
    app.include_router(marketing.router)
    return app
