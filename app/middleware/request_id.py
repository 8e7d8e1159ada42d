"""Request ID middleware.

Assigns a request ID to each request and returns it in the X-Request-ID
response header. A client-supplied ID is reused when it is short and printable.
"""

import uuid
from collections.abc import Awaitable, Callable
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

MAX_REQUEST_ID_LENGTH = 128


def _usable_request_id(value: str | None) -> bool:
    return bool(value) and len(value) <= MAX_REQUEST_ID_LENGTH and value.isprintable()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware that sets request.state.request_id and adds X-Request-ID to response."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        incoming = request.headers.get("X-Request-ID")
        request_id = incoming if _usable_request_id(incoming) else str(uuid.uuid4())
        request.state.request_id = request_id
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
