"""
Task API endpoints.

Create, list, read, update and delete tasks. Title and description are run
through the task classifier on create, and again on update when either of
them changes.
"""

import asyncio
import logging
import uuid
from typing import Dict, Optional

from fastapi import APIRouter, HTTPException, Query, Request, Response, status

from app.db.errors import DatabaseError, TaskNotFoundError
from app.db.supabase_client import get_supabase_client
from app.db.tasks import (
    create_task,
    delete_task,
    get_task,
    get_task_history,
    list_tasks,
    update_task,
)
from app.middleware.logging import get_request_id
from app.middleware.rate_limit import limit_api
from app.models.classification import ClassificationResult, TaskCategory, TaskPriority
from app.models.task import (
    Pagination,
    SortField,
    SortOrder,
    TaskCreateRequest,
    TaskFilters,
    TaskMutationResult,
    TaskStatus,
    TaskUpdateRequest,
)
from app.services.task_classifier import classify_task
from app.utils.responses import envelope, json_response

router = APIRouter(prefix="/api/tasks", tags=["tasks"])
logger = logging.getLogger(__name__)


def _validate_uuid(task_id: str) -> None:
    try:
        uuid.UUID(task_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid task ID format: {task_id}"
        )


def _result_headers(result: TaskMutationResult) -> Dict[str, str]:
    """Headers picked up by the request logger."""
    task = result.task
    return {
        "X-Task-Category": str(task.get("category", "")),
        "X-Task-Priority": str(task.get("priority", "")),
        "X-History-Status": result.history.header_value,
    }


def _report_history(request: Request, result: TaskMutationResult) -> None:
    if not result.history.recorded:
        logger.warning(
            f"[{get_request_id(request)}] Task {result.task.get('id')} saved but "
            f"'{result.history.action}' history entry was not recorded: {result.history.error}"
        )


async def _classify(title: str, description: str) -> ClassificationResult:
    return await asyncio.to_thread(classify_task, title, description)


@router.post("", status_code=status.HTTP_201_CREATED)
@limit_api
async def create_task_endpoint(request: Request, body: TaskCreateRequest) -> Response:
    """
    Create a task with auto-classification.

    Explicit ``category`` / ``priority`` in the body override the classifier;
    extracted entities and suggested actions always come from it.

    Returns:
        201: Created task plus the classifier's own category/priority
        400: Validation error
        500: Database error
    """
    classification = await _classify(body.title, body.description)

    task_data = {
        "title": body.title,
        "description": body.description,
        "assigned_to": body.assigned_to,
        "due_date": body.due_date.isoformat() if body.due_date else None,
        "category": body.category or classification.category,
        "priority": body.priority or classification.priority,
        "status": "pending",
        "extracted_entities": classification.extracted_entities.to_record(),
        "suggested_actions": list(classification.suggested_actions),
    }

    supabase_client = get_supabase_client()

    try:
        result = await create_task(supabase_client, task_data)
    except DatabaseError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database error: {str(e)}"
        )

    _report_history(request, result)
    logger.info(f"Task created successfully: {result.task.get('id')}")

    data = {
        "task": result.task,
        "classification": {
            "auto_category": classification.category,
            "auto_priority": classification.priority,
            "was_overridden": {
                "category": body.category is not None and body.category != classification.category,
                "priority": body.priority is not None and body.priority != classification.priority,
            },
        },
    }
    return json_response(
        envelope("Task created successfully", data),
        status_code=status.HTTP_201_CREATED,
        headers=_result_headers(result),
    )


@router.get("", status_code=status.HTTP_200_OK)
@limit_api
async def list_tasks_endpoint(
    request: Request,
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    category: Optional[TaskCategory] = None,
    priority: Optional[TaskPriority] = None,
    assigned_to: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    sort_by: SortField = "created_at",
    sort_order: SortOrder = "desc",
) -> Response:
    """
    List tasks with filters, sorting and pagination.

    Args:
        status, category, priority, assigned_to: Equality filters
        search: Case-insensitive match on title or description
        limit: Page size (default: 20, max: 100)
        offset: Number of tasks to skip (default: 0)
        sort_by: created_at, updated_at, due_date, priority or title
        sort_order: asc or desc

    Returns:
        200: One page of tasks with pagination metadata
        400: Invalid query parameters
        500: Database error
    """
    filters = TaskFilters(
        status=status_filter,
        category=category,
        priority=priority,
        assigned_to=assigned_to,
        search=search,
    )
    pagination = Pagination(limit=limit, offset=offset, sort_by=sort_by, sort_order=sort_order)

    supabase_client = get_supabase_client()

    try:
        page = await list_tasks(supabase_client, filters, pagination)
    except DatabaseError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database error: {str(e)}"
        )

    return json_response(
        envelope(
            "Tasks retrieved successfully",
            page.data,
            pagination={
                "total": page.total,
                "limit": page.limit,
                "offset": page.offset,
                "hasMore": page.has_more,
            },
        )
    )


@router.get("/{task_id}", status_code=status.HTTP_200_OK)
@limit_api
async def get_task_endpoint(request: Request, task_id: str) -> Response:
    """
    Retrieve a task together with its history (newest first).

    Returns:
        200: Task and history
        400: Invalid UUID format
        404: Task not found
        500: Database error
    """
    _validate_uuid(task_id)
    supabase_client = get_supabase_client()

    try:
        task = await get_task(supabase_client, task_id)
        history = await get_task_history(supabase_client, task_id)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database error: {str(e)}"
        )

    return json_response(
        envelope("Task retrieved successfully", {"task": task, "history": history})
    )


@router.patch("/{task_id}", status_code=status.HTTP_200_OK)
@limit_api
async def update_task_endpoint(request: Request, task_id: str, body: TaskUpdateRequest) -> Response:
    """
    Update a task.

    When the title and/or description changes the task is re-classified and
    its extracted entities and suggested actions are replaced. Category and
    priority are only changed when the client sends them.

    Returns:
        200: Updated task (plus the classifier's category/priority if re-classified)
        400: Invalid UUID format or validation error
        404: Task not found
        500: Database error
    """
    _validate_uuid(task_id)
    supabase_client = get_supabase_client()
    updates = body.changes()
    classification: Optional[ClassificationResult] = None

    try:
        if body.content_changed():
            existing = await get_task(supabase_client, task_id)
            new_title = body.title or existing.get("title") or ""
            new_description = body.description or existing.get("description") or ""

            classification = await _classify(new_title, new_description)
            updates["extracted_entities"] = classification.extracted_entities.to_record()
            updates["suggested_actions"] = list(classification.suggested_actions)

        result = await update_task(supabase_client, task_id, updates)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database error: {str(e)}"
        )

    _report_history(request, result)
    logger.info(f"Task updated successfully: {task_id}")

    data = {"task": result.task}
    if classification is not None:
        data["classification"] = {
            "auto_category": classification.category,
            "auto_priority": classification.priority,
        }

    return json_response(
        envelope("Task updated successfully", data),
        headers=_result_headers(result),
    )


@router.delete("/{task_id}", status_code=status.HTTP_200_OK)
@limit_api
async def delete_task_endpoint(request: Request, task_id: str) -> Response:
    """
    Delete a task.

    Returns:
        200: Task deleted
        400: Invalid UUID format
        404: Task not found
        500: Database error
    """
    _validate_uuid(task_id)
    supabase_client = get_supabase_client()

    try:
        await delete_task(supabase_client, task_id)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database error: {str(e)}"
        )

    logger.info(f"Task deleted successfully: {task_id}")
    return json_response(envelope("Task deleted successfully"))
