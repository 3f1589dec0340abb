"""Request rate limiting with slowapi.

Limits are applied per endpoint with @limiter.limit(); they are switched
off under TESTING so test suites can hammer the auth routes.
"""

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from workorders.config import settings

# Login and registration
AUTH_RATE_LIMIT = "10/minute"
# Deletion code requests send mail, so keep them scarce
DELETION_CODE_RATE_LIMIT = "5/minute"


def client_ip(request: Request) -> str:
    """Real client address, honoring X-Forwarded-For behind a proxy."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


limiter = Limiter(
    key_func=client_ip,
    storage_uri="memory://",
    enabled=not settings.testing,
)


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Return a 429 JSON response when a limit is exceeded."""
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
    )
