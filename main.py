# main.py
import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError

from orderflow.routers import (
    user_router,
    order_router,
    report_router,
    sheet_router,
    notification_router,
)

from orderflow.core.config import APP_ENV, SHEET_SYNC_ENABLED
from orderflow.core.db import dispose_engine, init_models, ping_store
from orderflow.core.scheduler import scheduler
from orderflow.core.exceptions import AppException, OrderDomainError
from orderflow.core.logging import setup_logging
from orderflow.middleware.request_logging import request_logging_middleware
from orderflow.core.error_handlers import (
    app_exception_handler,
    order_domain_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    store_error_handler,
    unhandled_exception_handler,
)

# ------------------------------------------------------------------------------
# ENV CONFIG
# ------------------------------------------------------------------------------
ENV = APP_ENV
APP_NAME = "Print Shop Order Management API"
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
ALLOWED_ORIGINS = os.getenv("CORS_ORIGINS", "").split(",")

# ------------------------------------------------------------------------------
# LOGGING
# ------------------------------------------------------------------------------
setup_logging()
logger = logging.getLogger(__name__)

# ------------------------------------------------------------------------------
# LIFESPAN
# ------------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application")

    if ENV == "development":
        await init_models()
        logger.info("Database tables initialized (development)")
    else:
        logger.info("init_models() skipped outside development")

    if SHEET_SYNC_ENABLED:
        scheduler.start()
        logger.info("Scheduler started: daily spreadsheet export")
    else:
        logger.info("Scheduler disabled (SHEET_SYNC_ENABLED=false)")

    yield

    logger.info("Shutting down application")
    if scheduler.running:
        scheduler.shutdown()
    await dispose_engine()

# ------------------------------------------------------------------------------
# APP INIT
# ------------------------------------------------------------------------------
app = FastAPI(
    title=APP_NAME,
    description="Order intake, departmental workflow, payments and reports for a print shop",
    version=APP_VERSION,
    docs_url="/docs" if ENV != "production" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# ------------------------------------------------------------------------------
# EXCEPTION HANDLERS
# ------------------------------------------------------------------------------
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(OrderDomainError, order_domain_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(SQLAlchemyError, store_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# ------------------------------------------------------------------------------
# MIDDLEWARE
# ------------------------------------------------------------------------------
app.middleware("http")(request_logging_middleware)

origins = [o.strip() for o in ALLOWED_ORIGINS if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------------------------
# HEALTH CHECK
# ------------------------------------------------------------------------------
@app.get("/", tags=["Health"])
async def health_check():
    store_ok = await ping_store()
    return {
        "status": "ok" if store_ok else "degraded",
        "store": "up" if store_ok else "down",
        "service": "orderflow-api",
        "environment": ENV,
        "version": APP_VERSION,
    }

# ------------------------------------------------------------------------------
# ROUTERS
# ------------------------------------------------------------------------------
app.include_router(user_router)
app.include_router(order_router)
app.include_router(report_router)
app.include_router(sheet_router)
app.include_router(notification_router)
