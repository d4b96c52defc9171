import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from limits import parse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from common.config import Settings

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


def build_limiter(settings: Settings) -> Limiter:
    return Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.rate_limit_enabled,
    )


def check_rate_limit(request: Request) -> None:
    """Router dependency: count the request against the limiter's default limits.

    Raises RateLimitExceeded once the client's window is used up.
    """
    limiter: Limiter = request.app.state.limiter
    limiter._check_request_limit(request, request.scope.get("endpoint"), in_middleware=True)


def retry_after_seconds(limit_string: str) -> int:
    return int(parse(limit_string).get_expiry())


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("Rate limit exceeded for IP: %s", get_remote_address(request))
    retry_after = retry_after_seconds(request.app.state.settings.rate_limit)
    return JSONResponse(
        status_code=429,
        content={"success": False, "message": RATE_LIMIT_MESSAGE, "retryAfter": retry_after},
        headers={"Retry-After": str(retry_after)},
    )
