"""
Observability Middleware.

Adds correlation IDs and one structured log line per request.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from backoffice.app.core.config import settings

CORRELATION_HEADER = "X-Correlation-ID"

logger = logging.getLogger("backoffice")


def configure_logging(level: str = None) -> None:
    """Apply the configured log level to the service loggers."""
    level = (level or settings.log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger.setLevel(level)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        # Reuse the caller's correlation id so statements can be traced across services
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 2)

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Process-Time"] = str(duration_ms)

        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "query": request.url.query,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
        message = "%(method)s %(path)s -> %(status_code)s in %(duration_ms)sms [%(correlation_id)s]"

        if response.status_code >= 500:
            logger.error(message, log_data, extra={"request": log_data})
        elif response.status_code >= 400:
            logger.warning(message, log_data, extra={"request": log_data})
        else:
            logger.info(message, log_data, extra={"request": log_data})

        return response
