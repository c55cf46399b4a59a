# thermogestion/main.py
import time
import uuid

import sentry_sdk
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from thermogestion import models  # noqa: F401  (registers SQLAlchemy models)
from thermogestion.core.errors import (
    CapacityError,
    InvalidOperation,
    NotFoundError,
    ThermoGestionError,
    WebhookNotConfigured,
    WebhookSignatureError,
)
from thermogestion.core.logging_config import logger, setup_logging
from thermogestion.core.rate_limit import limiter
from thermogestion.core.settings import settings
from thermogestion.db import Base, engine
from thermogestion.observability.metrics import router as metrics_router
from thermogestion.routers import (
    analytics,
    auth,
    clients,
    exports,
    i18n,
    invoices,
    oven,
    powders,
    projects,
    quotes,
    ral,
    templates,
    webhooks,
)
from thermogestion.routers import settings as settings_router

# ----------------------------------------------------
# App init
# ----------------------------------------------------
setup_logging()

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.APP_ENV,
        integrations=[FastApiIntegration()],
        traces_sample_rate=0.1,
    )

app = FastAPI(title=settings.APP_NAME, version="0.1.0")
logger.info("startup", service="thermogestion-api", env=settings.APP_ENV)


# ----------------------------------------------------
# Health
# ----------------------------------------------------
@app.get("/health", include_in_schema=True)
def health() -> dict:
    return {"status": "ok"}


# ----------------------------------------------------
# Logging middleware
# ----------------------------------------------------
@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    start = time.time()

    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id
    client_ip = request.client.host if request.client else "unknown"

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    bound_logger = logger.bind(
        ip=client_ip,
        endpoint=str(request.url.path),
        method=request.method,
    )

    bound_logger.info("request_started")
    response = await call_next(request)
    latency_ms = round((time.time() - start) * 1000, 2)

    # tenant is only known once the auth dependency ran
    tenant_id = getattr(request.state, "tenant_id", None) or "anonymous"
    bound_logger.bind(
        tenant_id=tenant_id, status_code=response.status_code, latency_ms=latency_ms
    ).info("request_finished")
    response.headers["X-Request-ID"] = request_id
    return response


# ----------------------------------------------------
# Middleware
# ----------------------------------------------------
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RateLimitExceeded)
def ratelimit_handler(request: Request, exc: RateLimitExceeded):
    return PlainTextResponse(str(exc), status_code=429)


ERROR_STATUS = {
    NotFoundError: 404,
    CapacityError: 400,
    InvalidOperation: 400,
    WebhookSignatureError: 400,
    WebhookNotConfigured: 503,
}


@app.exception_handler(ThermoGestionError)
def domain_error_handler(request: Request, exc: ThermoGestionError):
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400
    )
    logger.warning("domain_error", code=exc.code, message=exc.message, status_code=status_code)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code, "meta": exc.meta},
    )


@app.exception_handler(SQLAlchemyError)
def database_error_handler(request: Request, exc: SQLAlchemyError):
    # the session was already rolled back by get_db
    logger.error("database_error", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Database error, please retry", "code": "DATABASE_ERROR", "meta": {}},
    )


# ----------------------------------------------------
# Routers
# ----------------------------------------------------
app.include_router(auth.router)
app.include_router(clients.router)
app.include_router(quotes.router)
app.include_router(invoices.router)
app.include_router(projects.router)
app.include_router(powders.router)
app.include_router(oven.router)
app.include_router(settings_router.router)
app.include_router(ral.router)
app.include_router(analytics.router)
app.include_router(templates.router)
app.include_router(exports.router)
app.include_router(i18n.router)
app.include_router(webhooks.router)
app.include_router(metrics_router)  # /metrics


# ----------------------------------------------------
# Startup
# ----------------------------------------------------
@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
