"""
Observability: logging setup and request middleware.

Every log record carries the correlation id of the request that produced
it, so ledger and workflow log lines can be traced back to one API call.
"""

import time
import uuid
import logging
from contextvars import ContextVar
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("backoffice.http")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] [%(correlation_id)s] %(message)s"

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

_record_factory_installed = False


def _install_record_factory() -> None:
    global _record_factory_installed
    if _record_factory_installed:
        return
    base_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = base_factory(*args, **kwargs)
        record.correlation_id = correlation_id_var.get()
        return record

    logging.setLogRecordFactory(record_factory)
    _record_factory_installed = True


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once at application start."""
    _install_record_factory()
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("backoffice").setLevel(level.upper())


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        token = correlation_id_var.set(correlation_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        finally:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            correlation_id_var.reset(token)

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time"] = str(duration_ms)

        log_data = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
        message = "%s %s -> %s (%sms) [%s]"
        args = (request.method, request.url.path, response.status_code, duration_ms, correlation_id)

        if response.status_code >= 500:
            logger.error(message, *args, extra=log_data)
        elif response.status_code >= 400:
            logger.warning(message, *args, extra=log_data)
        else:
            logger.info(message, *args, extra=log_data)

        return response
