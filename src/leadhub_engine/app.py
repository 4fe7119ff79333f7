"""FastAPI application factory for LeadHub-Engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException

from leadhub_engine.common.config import get_settings
from leadhub_engine.common.exceptions import LeadhubError
from leadhub_engine.common.schemas import ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, code=code).model_dump(),
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LeadhubError)
    async def leadhub_error(request: Request, exc: LeadhubError):
        # Class-level status; GatewayError reuses the instance attribute for upstream.
        status_code = type(exc).status_code
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error(status_code, exc.message, exc.code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
            message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
        else:
            message = "Invalid request"
        return _error(400, message, "VALIDATION_ERROR")

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return _error(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}")

    @app.exception_handler(IntegrityError)
    async def integrity_error(request: Request, exc: IntegrityError):
        logger.warning("Integrity violation on %s: %s", request.url.path, exc.orig)
        return _error(409, "Resource already exists", "CONFLICT")

    @app.exception_handler(SQLAlchemyError)
    async def database_error(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return _error(500, "Internal database error", "DATABASE_ERROR")

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error", "INTERNAL_ERROR")


def create_app() -> FastAPI:
    settings = get_settings()

    # Fail the boot, not the first request, when the vault key is missing.
    from leadhub_engine.deps import get_vault
    get_vault()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        from leadhub_engine.deps import get_db, get_task_dispatcher
        db = get_db()
        await db.init()
        await db.create_all()
        yield
        # Shutdown
        await get_task_dispatcher().drain()
        await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    # Mount routers
    from leadhub_engine.activity.router import router as activity_router
    from leadhub_engine.automation.router import router as automation_router
    from leadhub_engine.billing.router import router as billing_router
    from leadhub_engine.billing.router import webhook_router
    from leadhub_engine.credentials.router import router as credentials_router
    from leadhub_engine.cron.router import router as cron_router
    from leadhub_engine.gateway.router import router as gateway_router
    from leadhub_engine.linkpreview.router import router as link_preview_router
    from leadhub_engine.monitor.router import router as monitor_router
    from leadhub_engine.tenants.router import router as tenant_router

    prefix = settings.api_prefix
    app.include_router(webhook_router, prefix=prefix)
    app.include_router(billing_router, prefix=prefix)
    app.include_router(monitor_router, prefix=prefix)
    app.include_router(automation_router, prefix=prefix)
    app.include_router(credentials_router, prefix=prefix)
    app.include_router(gateway_router, prefix=prefix)
    app.include_router(link_preview_router, prefix=prefix)
    app.include_router(activity_router, prefix=prefix)
    app.include_router(tenant_router, prefix=prefix)
    app.include_router(cron_router, prefix=prefix)

    return app
