"""
Statistics API endpoints.

Aggregate task counts for dashboards.
"""

from fastapi import APIRouter, HTTPException, Request, Response, status

from app.db.errors import DatabaseError
from app.db.supabase_client import get_supabase_client
from app.db.tasks import get_task_statistics
from app.middleware.rate_limit import limit_api
from app.utils.responses import envelope, json_response

# Shares the /api/tasks prefix; included before the tasks router so that
# /statistics is not captured by /{task_id}.
router = APIRouter(prefix="/api/tasks", tags=["statistics"])


@router.get("/statistics", status_code=status.HTTP_200_OK)
@limit_api
async def get_statistics(request: Request) -> Response:
    """
    Get task counts overall and by status, category and priority.

    Example response data:
        {
            "total": 5,
            "byStatus": {"pending": 4, "in_progress": 1},
            "byCategory": {"scheduling": 1, "technical": 1, "general": 3},
            "byPriority": {"high": 2, "medium": 2, "low": 1}
        }

    Returns:
        200: Statistics
        500: Database error
    """
    supabase_client = get_supabase_client()

    try:
        stats = await get_task_statistics(supabase_client)
    except DatabaseError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database error: {str(e)}"
        )

    return json_response(envelope("Statistics retrieved successfully", stats))
