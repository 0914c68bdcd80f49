# backend/stayledger/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .db import init_db
from .logging_config import configure_logging
from .middleware.request_id import RequestIdMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware
from .services.report_files import report_root

from .routers.health import router as health_router
from .routers.auth import router as auth_router
from .routers.owners import router as owners_router
from .routers.listings import router as listings_router
from .routers.inventory import router as inventory_router
from .routers.expenses import router as expenses_router
from .routers.reports import router as reports_router
from .routers.shopping_lists import router as shopping_lists_router
from .routers.activity import router as activity_router
from .routers.dashboard import router as dashboard_router
from .routers.invitations import router as invitations_router
from .routers.admin import router as admin_router

API_PREFIX = "/api"

log = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Storage is resolved before the first request is served.
    if settings.app_env.strip().lower() not in ("prod", "production"):
        init_db()
    report_root()
    log.info("startup_complete", extra={"event": "startup"})
    yield


async def _validation_error(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Invalid request data", "errors": errors})


async def _unhandled_error(request: Request, exc: Exception):
    log.exception("unhandled_error", extra={"path": request.url.path, "method": request.method})
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="StayLedger",
        version=getattr(settings, "app_version", "dev"),
        lifespan=lifespan,
    )

    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(Exception, _unhandled_error)

    # Request-ID first (observability baseline)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(dashboard_router, prefix=API_PREFIX)
    app.include_router(activity_router, prefix=API_PREFIX)

    # Portfolio data
    app.include_router(owners_router, prefix=API_PREFIX)
    app.include_router(listings_router, prefix=API_PREFIX)
    app.include_router(inventory_router, prefix=API_PREFIX)
    app.include_router(expenses_router, prefix=API_PREFIX)
    app.include_router(shopping_lists_router, prefix=API_PREFIX)

    # Reports + distribution
    app.include_router(reports_router, prefix=API_PREFIX)

    # Tenancy management
    app.include_router(invitations_router, prefix=API_PREFIX)
    app.include_router(admin_router, prefix=API_PREFIX)

    return app


app = create_app()
