"""
Classification preview endpoint.

Runs the task classifier on a title/description without storing anything,
so clients can show the inferred category and priority before saving.
"""

import asyncio

from fastapi import APIRouter, Request, Response, status

from app.middleware.rate_limit import limit_api
from app.models.task import ClassifyRequest
from app.services.task_classifier import classify_task
from app.utils.responses import envelope, json_response

router = APIRouter(prefix="/api", tags=["classification"])


@router.post("/classify", status_code=status.HTTP_200_OK)
@limit_api
async def classify_preview(request: Request, body: ClassifyRequest) -> Response:
    """
    Classify text without creating a task.

    Returns:
        200: category, priority, extracted_entities, suggested_actions
        400: Validation error
    """
    result = await asyncio.to_thread(classify_task, body.title, body.description)
    return json_response(
        envelope("Task classified successfully", result.to_record()),
        headers={
            "X-Task-Category": result.category,
            "X-Task-Priority": result.priority,
        },
    )
