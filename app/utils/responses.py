"""JSON response helpers shared by the API routers."""

import json
from typing import Any, Dict, Optional

from fastapi import Response, status


def json_response(
    body: Any,
    status_code: int = status.HTTP_200_OK,
    headers: Optional[Dict[str, str]] = None,
) -> Response:
    """Serialise ``body`` to a JSON response.

    ``default=str`` handles UUID/datetime values coming back from Supabase.
    """
    return Response(
        content=json.dumps(body, default=str),
        media_type="application/json",
        status_code=status_code,
        headers=headers,
    )


def envelope(message: str, data: Any = None, **extra: Any) -> Dict[str, Any]:
    """Standard success envelope: {success, message, data, ...}."""
    body: Dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body
