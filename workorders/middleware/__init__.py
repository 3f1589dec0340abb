"""ASGI middleware for the work order API."""

from workorders.middleware.correlation import (
    CORRELATION_ID_HEADER,
    CorrelationIdMiddleware,
)
from workorders.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "CORRELATION_ID_HEADER",
    "CorrelationIdMiddleware",
    "SecurityHeadersMiddleware",
]
