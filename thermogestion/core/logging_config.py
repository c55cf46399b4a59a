# thermogestion/core/logging_config.py
import logging
import sys

import structlog

from thermogestion.core.settings import settings

# libraries that log every request or font lookup at INFO
NOISY_LOGGERS = ("weasyprint", "fontTools", "uvicorn.access", "stripe")


def setup_logging() -> None:
    """
    structlog on top of the standard logging module.

    JSON lines on stdout in production, coloured key/value output locally.
    Request-scoped values (request_id, tenant_id) come from contextvars
    bound by the HTTP middleware.
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if settings.APP_ENV == "local":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger("thermogestion")
