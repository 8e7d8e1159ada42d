"""Database functions for managing task records and their history.

This module provides CRUD operations for tasks in Supabase, the
append-only ``task_history`` audit log, and aggregate statistics.
Blocking supabase-py calls run in a worker thread via ``asyncio.to_thread``.
"""

import asyncio
import datetime
import logging
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from supabase import Client

from app.db.errors import DatabaseError, TaskNotFoundError
from app.models.task import (
    HistoryAction,
    HistoryWriteOutcome,
    PaginatedTasks,
    Pagination,
    TaskFilters,
    TaskMutationResult,
)

logger = logging.getLogger(__name__)

TASKS_TABLE = 'tasks'
HISTORY_TABLE = 'task_history'

# Characters that would break a PostgREST or() filter expression
_SEARCH_RESERVED = str.maketrans('', '', ',()')


def _utcnow_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def _validate_task_id(task_id: str) -> None:
    try:
        UUID(task_id)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid task ID format: {task_id}")


def history_action_for(old_status: Optional[str], new_status: Optional[str]) -> HistoryAction:
    """Pick the audit action for an update.

    A status change to 'completed' is 'completed', any other status change
    is 'status_changed', everything else is 'updated'.
    """
    if new_status and new_status != old_status:
        return 'completed' if new_status == 'completed' else 'status_changed'
    return 'updated'


async def record_history(
    client: Client,
    task_id: str,
    action: HistoryAction,
    old_value: Optional[Dict[str, Any]] = None,
    new_value: Optional[Dict[str, Any]] = None,
) -> HistoryWriteOutcome:
    """Append an entry to the task history log.

    This never raises: a failed write is logged and reported in the
    returned outcome so the primary mutation still succeeds.
    """
    entry = {
        'id': str(uuid4()),
        'task_id': task_id,
        'action': action,
        'old_value': old_value,
        'new_value': new_value,
        'changed_at': _utcnow_iso(),
    }

    try:
        response = await asyncio.to_thread(
            lambda: client.table(HISTORY_TABLE).insert(entry).execute()
        )
        if not response.data:
            raise DatabaseError("Insert returned no data")
    except Exception as e:
        logger.error(f"Failed to record '{action}' history for task {task_id}: {e}")
        return HistoryWriteOutcome(recorded=False, action=action, error=str(e))

    return HistoryWriteOutcome(recorded=True, action=action)


async def create_task(client: Client, data: Dict[str, Any]) -> TaskMutationResult:
    """Insert a new task and log a 'created' history entry.

    Args:
        client: Supabase client instance
        data: Task fields (title, description, category, priority,
            extracted_entities, suggested_actions, optional assigned_to,
            due_date, status)

    Returns:
        TaskMutationResult: The stored task and the history write outcome

    Raises:
        DatabaseError: If the insert fails
    """
    now = _utcnow_iso()
    record = {
        'id': str(uuid4()),
        **data,
        'status': data.get('status') or 'pending',
        'created_at': now,
        'updated_at': now,
    }

    try:
        response = await asyncio.to_thread(
            lambda: client.table(TASKS_TABLE).insert(record).execute()
        )
    except Exception as e:
        logger.error(f"Error creating task: {e}")
        raise DatabaseError(f"Failed to create task: {str(e)}") from e

    if not response.data or len(response.data) == 0:
        raise DatabaseError("Failed to create task: insert returned no data")

    task: Dict[str, Any] = response.data[0]
    history = await record_history(client, str(task['id']), 'created', new_value=task)
    return TaskMutationResult(task=task, history=history)


async def get_task(client: Client, task_id: str) -> Dict[str, Any]:
    """Retrieve a task by ID.

    Raises:
        ValueError: If task_id is not a valid UUID
        TaskNotFoundError: If no task has this ID
        DatabaseError: If the query fails
    """
    _validate_task_id(task_id)

    try:
        response = await asyncio.to_thread(
            lambda: client.table(TASKS_TABLE).select('*').eq('id', task_id).execute()
        )
    except Exception as e:
        logger.error(f"Error finding task {task_id}: {e}")
        raise DatabaseError(f"Failed to find task: {str(e)}") from e

    if not response.data or len(response.data) == 0:
        raise TaskNotFoundError(task_id)

    result: Dict[str, Any] = response.data[0]
    return result


async def list_tasks(
    client: Client,
    filters: Optional[TaskFilters] = None,
    pagination: Optional[Pagination] = None,
) -> PaginatedTasks:
    """List tasks matching the filters, sorted and paginated.

    Args:
        client: Supabase client instance
        filters: Equality filters and optional search text
        pagination: limit/offset and sort column/direction

    Returns:
        PaginatedTasks: One page of tasks plus the exact total count

    Raises:
        DatabaseError: If the query fails
    """
    filters = filters or TaskFilters()
    pagination = pagination or Pagination()

    def _run() -> Any:
        query = client.table(TASKS_TABLE).select('*', count='exact')

        for column in ('status', 'category', 'priority', 'assigned_to'):
            value = getattr(filters, column)
            if value:
                query = query.eq(column, value)

        search = (filters.search or '').translate(_SEARCH_RESERVED).strip()
        if search:
            query = query.or_(f"title.ilike.%{search}%,description.ilike.%{search}%")

        query = query.order(pagination.sort_by, desc=pagination.sort_order == 'desc')
        query = query.range(pagination.offset, pagination.offset + pagination.limit - 1)
        return query.execute()

    try:
        response = await asyncio.to_thread(_run)
    except Exception as e:
        logger.error(f"Error listing tasks: {e}")
        raise DatabaseError(f"Failed to find tasks: {str(e)}") from e

    data = response.data or []
    total = response.count if response.count is not None else len(data)
    return PaginatedTasks(
        data=data,
        total=total,
        limit=pagination.limit,
        offset=pagination.offset,
    )


async def update_task(
    client: Client,
    task_id: str,
    updates: Dict[str, Any],
) -> TaskMutationResult:
    """Apply a partial update and log the matching history entry.

    Raises:
        ValueError: If task_id is not a valid UUID
        TaskNotFoundError: If no task has this ID
        DatabaseError: If the update fails
    """
    old_task = await get_task(client, task_id)

    update_data = {**updates, 'updated_at': _utcnow_iso()}

    try:
        response = await asyncio.to_thread(
            lambda: client.table(TASKS_TABLE).update(update_data).eq('id', task_id).execute()
        )
    except Exception as e:
        logger.error(f"Error updating task {task_id}: {e}")
        raise DatabaseError(f"Failed to update task: {str(e)}") from e

    if not response.data or len(response.data) == 0:
        raise TaskNotFoundError(task_id)

    task: Dict[str, Any] = response.data[0]
    action = history_action_for(old_task.get('status'), updates.get('status'))
    history = await record_history(client, task_id, action, old_value=old_task, new_value=task)
    return TaskMutationResult(task=task, history=history)


async def delete_task(client: Client, task_id: str) -> None:
    """Delete a task. History rows go with it (ON DELETE CASCADE).

    Raises:
        ValueError: If task_id is not a valid UUID
        TaskNotFoundError: If no task has this ID
        DatabaseError: If the delete fails
    """
    await get_task(client, task_id)

    try:
        await asyncio.to_thread(
            lambda: client.table(TASKS_TABLE).delete().eq('id', task_id).execute()
        )
    except Exception as e:
        logger.error(f"Error deleting task {task_id}: {e}")
        raise DatabaseError(f"Failed to delete task: {str(e)}") from e


async def get_task_history(client: Client, task_id: str) -> List[Dict[str, Any]]:
    """Return the history entries for a task, newest first."""
    _validate_task_id(task_id)

    try:
        response = await asyncio.to_thread(
            lambda: client.table(HISTORY_TABLE)
            .select('*')
            .eq('task_id', task_id)
            .order('changed_at', desc=True)
            .execute()
        )
    except Exception as e:
        logger.error(f"Error fetching history for task {task_id}: {e}")
        raise DatabaseError(f"Failed to fetch task history: {str(e)}") from e

    return response.data if response.data else []


async def get_task_statistics(client: Client) -> Dict[str, Any]:
    """Count tasks overall and by status, category and priority.

    Returns:
        Dict with keys: total, byStatus, byCategory, byPriority

    Raises:
        DatabaseError: If the query fails
    """
    try:
        response = await asyncio.to_thread(
            lambda: client.table(TASKS_TABLE)
            .select('status, category, priority', count='exact')
            .execute()
        )
    except Exception as e:
        logger.error(f"Error getting task statistics: {e}")
        raise DatabaseError(f"Failed to get task statistics: {str(e)}") from e

    rows = response.data or []
    by_status: Dict[str, int] = {}
    by_category: Dict[str, int] = {}
    by_priority: Dict[str, int] = {}

    for row in rows:
        status = row.get('status', 'unknown')
        by_status[status] = by_status.get(status, 0) + 1

        category = row.get('category', 'unknown')
        by_category[category] = by_category.get(category, 0) + 1

        priority = row.get('priority', 'unknown')
        by_priority[priority] = by_priority.get(priority, 0) + 1

    return {
        'total': response.count if response.count is not None else len(rows),
        'byStatus': by_status,
        'byCategory': by_category,
        'byPriority': by_priority,
    }
