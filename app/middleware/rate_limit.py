"""Rate limiting using slowapi for abuse prevention on /api routes."""

import json
from typing import Any, Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address


def get_client_ip(request: Request) -> str:
    """
    Get the client IP address from the request.

    Only trusts X-Forwarded-For header from configured trusted proxies
    to prevent IP spoofing attacks.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address string
    """
    from app.config import get_settings

    direct_ip: str = get_remote_address(request)

    settings = get_settings()
    if not settings.trusted_proxies:
        return direct_ip  # Prevent spoofing

    trusted_proxy_list = [
        ip.strip() for ip in settings.trusted_proxies.split(",")
        if ip.strip()
    ]

    # Only trust X-Forwarded-For if from trusted proxy
    if direct_ip in trusted_proxy_list:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

    return direct_ip


def api_rate_limit() -> str:
    """Configured limit for /api routes, e.g. '100 per 900 seconds'.

    Resolved per request so the limit follows the current settings.
    """
    from app.config import get_settings

    return get_settings().api_rate_limit


# In-memory storage, keyed by client IP. headers_enabled adds
# X-RateLimit-* headers to every limited response.
limiter = Limiter(key_func=get_client_ip, headers_enabled=True)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """
    Custom handler for rate limit exceeded errors.

    Returns 429 Too Many Requests with appropriate headers:
    - Retry-After: Seconds until the rate limit resets
    - X-RateLimit-Limit: The rate limit that was exceeded
    - X-RateLimit-Remaining: Always 0 when exceeded

    Args:
        request: FastAPI request object
        exc: RateLimitExceeded exception with limit details

    Returns:
        Response with 429 status code and rate limit headers
    """
    retry_after = getattr(exc, "retry_after", 60)  # Default to 60 seconds

    error_body = {
        "success": False,
        "message": "Too many requests from this IP, please try again later.",
        "retry_after": retry_after,
    }

    response = Response(
        content=json.dumps(error_body),
        status_code=429,
        media_type="application/json",
    )

    response.headers["Retry-After"] = str(retry_after)
    response.headers["X-RateLimit-Remaining"] = "0"

    if hasattr(exc, "detail") and exc.detail:
        response.headers["X-RateLimit-Limit"] = exc.detail

    return response


def get_limiter() -> Any:
    """
    Get the configured limiter instance.

    This function returns the module-level limiter instance,
    allowing it to be used by route decorators.

    Returns:
        Configured Limiter instance
    """
    return limiter


def limit_api(func: Callable[..., Any]) -> Callable[..., Any]:
    """Apply the configured /api rate limit to a route.

    All /api routes draw from one per-client budget.
    """
    decorated: Callable[..., Any] = limiter.shared_limit(api_rate_limit, scope="api")(func)
    return decorated
