"""Pydantic models for task content classification results.

Produced by the task classifier on every create/update and stored
as-is on the task record.
"""

from typing import Any, Dict, List, Literal, Optional, Tuple, get_args

from pydantic import BaseModel, ConfigDict, Field


TaskCategory = Literal["scheduling", "finance", "technical", "safety", "general"]
TaskPriority = Literal["high", "medium", "low"]

CATEGORIES: Tuple[str, ...] = get_args(TaskCategory)
PRIORITIES: Tuple[str, ...] = get_args(TaskPriority)

DEFAULT_CATEGORY: TaskCategory = "general"
DEFAULT_PRIORITY: TaskPriority = "low"


class ExtractedEntities(BaseModel):
    """Structured mentions found in a task's text.

    A field is None when nothing matched. Serialising with ``to_record``
    drops those fields entirely, so a stored record never carries an
    empty list.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    dates: Optional[List[str]] = Field(
        default=None,
        description="Literal date/time phrases as written in the text"
    )
    persons: Optional[List[str]] = Field(
        default=None,
        description="Capitalised names following 'with', 'assign to', 'contact', ..."
    )
    locations: Optional[List[str]] = Field(
        default=None,
        description="Places following 'at', 'in', 'room', 'building', ..."
    )
    action_verbs: Optional[List[str]] = Field(
        default=None,
        alias="actionVerbs",
        description="Lower-cased verbs from the action-verb lexicon"
    )

    def to_record(self) -> Dict[str, List[str]]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def is_empty(self) -> bool:
        return not self.to_record()


class ClassificationResult(BaseModel):
    """Result of classifying a task's title and description."""

    model_config = ConfigDict(frozen=True)

    category: TaskCategory = Field(description="Winning keyword category")
    priority: TaskPriority = Field(description="Urgency tier inferred from keywords")
    extracted_entities: ExtractedEntities = Field(
        default_factory=ExtractedEntities,
        description="Dates, persons, locations and action verbs found in the text"
    )
    suggested_actions: List[str] = Field(
        description="Fixed checklist for the category"
    )

    def to_record(self) -> Dict[str, Any]:
        """JSON-ready dict with absent entity fields omitted."""
        return {
            "category": self.category,
            "priority": self.priority,
            "extracted_entities": self.extracted_entities.to_record(),
            "suggested_actions": list(self.suggested_actions),
        }
