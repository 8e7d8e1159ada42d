"""Pydantic models for tasks, task history and the task API."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.classification import TaskCategory, TaskPriority


TaskStatus = Literal["pending", "in_progress", "completed"]
HistoryAction = Literal["created", "updated", "status_changed", "completed"]
SortField = Literal["created_at", "updated_at", "due_date", "priority", "title"]
SortOrder = Literal["asc", "desc"]

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000
ASSIGNEE_MAX_LENGTH = 100


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class TaskCreateRequest(BaseModel):
    """Request body for creating a task.

    ``category`` and ``priority`` override the classifier's values when given.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    assigned_to: Optional[str] = Field(default=None, max_length=ASSIGNEE_MAX_LENGTH)
    due_date: Optional[datetime] = Field(default=None, description="ISO 8601 timestamp")
    category: Optional[TaskCategory] = None
    priority: Optional[TaskPriority] = None


class TaskUpdateRequest(BaseModel):
    """Request body for a partial task update."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(default=None, min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    category: Optional[TaskCategory] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    assigned_to: Optional[str] = Field(default=None, max_length=ASSIGNEE_MAX_LENGTH)
    due_date: Optional[datetime] = Field(default=None, description="ISO 8601 timestamp")

    def changes(self) -> Dict[str, Any]:
        """Fields the client actually sent, JSON-ready."""
        return self.model_dump(mode="json", exclude_none=True)

    def content_changed(self) -> bool:
        return self.title is not None or self.description is not None


class ClassifyRequest(BaseModel):
    """Request body for previewing a classification without storing a task."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(default="", max_length=TITLE_MAX_LENGTH)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

class TaskFilters(BaseModel):
    """Equality filters plus a free-text search over title/description."""
    status: Optional[TaskStatus] = None
    category: Optional[TaskCategory] = None
    priority: Optional[TaskPriority] = None
    assigned_to: Optional[str] = None
    search: Optional[str] = None


class Pagination(BaseModel):
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
    sort_by: SortField = "created_at"
    sort_order: SortOrder = "desc"


class PaginatedTasks(BaseModel):
    data: List[Dict[str, Any]] = Field(default_factory=list)
    total: int = Field(ge=0)
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total


# ---------------------------------------------------------------------------
# Mutation results
# ---------------------------------------------------------------------------

class HistoryWriteOutcome(BaseModel):
    """Outcome of the best-effort audit log write that follows a mutation."""
    recorded: bool
    action: HistoryAction
    error: Optional[str] = None

    @property
    def header_value(self) -> str:
        return "recorded" if self.recorded else "failed"


class TaskMutationResult(BaseModel):
    """A stored task plus the outcome of its history entry.

    The mutation itself succeeded; a failed history write is reported
    here instead of failing the caller.
    """
    task: Dict[str, Any]
    history: HistoryWriteOutcome
