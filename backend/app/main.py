"""FastAPI main application."""

import logging
from contextlib import asynccontextmanager
from decimal import Decimal

import sentry_sdk
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from app.api.v1 import auth, categories, recurring_transactions, transactions
from app.config import settings
from app.core.database import close_db, init_db
from app.core.logging_config import setup_logging
from app.middleware.error_handler import ErrorHandlerMiddleware

logger = logging.getLogger(__name__)


def _filter_sensitive_data(event, hint):
    """Strip credentials from Sentry events before sending."""
    headers = event.get("request", {}).get("headers")
    if headers:
        for header in ("authorization", "cookie"):
            if header in headers:
                headers[header] = "[Filtered]"
    return event


if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=1.0 if settings.DEBUG else 0.1,
        send_default_pii=False,
        environment=settings.ENVIRONMENT,
        release=f"{settings.APP_NAME}@{settings.APP_VERSION}",
        before_send=_filter_sensitive_data,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting %s %s (%s)", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)

    await init_db()

    yield

    logger.info("Shutting down %s", settings.APP_NAME)
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Catch uncaught exceptions with PII redaction
app.add_middleware(ErrorHandlerMiddleware)


def _make_json_serializable(obj):
    """Recursively convert non-JSON-serializable types to serializable ones."""
    if isinstance(obj, dict):
        return {k: _make_json_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_make_json_serializable(i) for i in obj]
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Exception):
        return str(obj)
    return obj


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    logger.debug("Validation error on %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=422,
        content={"detail": _make_json_serializable(exc.errors())},
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(categories.router, prefix="/api/v1/categories", tags=["Categories"])
app.include_router(transactions.router, prefix="/api/v1/transactions", tags=["Transactions"])
app.include_router(
    recurring_transactions.router,
    prefix="/api/v1/recurring-transactions",
    tags=["Recurring Transactions"],
)
