"""Keyword tables that drive the task classifier.

Tables are built once and are read-only afterwards. Deployments or tests
that need different vocabularies build their own ``KeywordTables`` (or
use ``dataclasses.replace`` on the default) and pass it to the
classifier instead of mutating shared state.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, Tuple

from app.models.classification import CATEGORIES, DEFAULT_CATEGORY


SUGGESTED_ACTIONS_PER_CATEGORY = 4
PRIORITY_LEVELS: Tuple[str, ...] = ("high", "medium")


def _normalize_words(words: Iterable[str]) -> Tuple[str, ...]:
    return tuple(w.strip().lower() for w in words if w and w.strip())


@dataclass(frozen=True)
class KeywordTables:
    """Immutable vocabularies for category, priority and action detection.

    Attributes:
        category_keywords: Category -> keywords scored by prefix match.
            ``general`` must have no keywords; it is the fallback.
        priority_keywords: 'high' / 'medium' -> substrings; 'low' is implicit.
        suggested_actions: Category -> exactly four action labels.
        action_verbs: Lexicon of verbs reported as entities.
    """

    category_keywords: Mapping[str, Tuple[str, ...]]
    priority_keywords: Mapping[str, Tuple[str, ...]]
    suggested_actions: Mapping[str, Tuple[str, ...]]
    action_verbs: FrozenSet[str]

    def __post_init__(self) -> None:
        category_keywords = {
            category: _normalize_words(self.category_keywords.get(category, ()))
            for category in CATEGORIES
        }
        unknown = set(self.category_keywords) - set(CATEGORIES)
        if unknown:
            raise ValueError(f"Unknown categories in keyword table: {', '.join(sorted(unknown))}")
        if category_keywords[DEFAULT_CATEGORY]:
            raise ValueError(f"'{DEFAULT_CATEGORY}' is the fallback category and cannot have keywords")

        unknown_levels = set(self.priority_keywords) - set(PRIORITY_LEVELS)
        if unknown_levels:
            raise ValueError(
                f"Invalid priority levels {', '.join(sorted(unknown_levels))}. "
                f"Must be one of: {', '.join(PRIORITY_LEVELS)}"
            )
        priority_keywords = {
            level: _normalize_words(self.priority_keywords.get(level, ()))
            for level in PRIORITY_LEVELS
        }

        suggested_actions = {}
        for category in CATEGORIES:
            actions = tuple(self.suggested_actions.get(category, ()))
            if len(actions) != SUGGESTED_ACTIONS_PER_CATEGORY:
                raise ValueError(
                    f"Category '{category}' needs exactly {SUGGESTED_ACTIONS_PER_CATEGORY} "
                    f"suggested actions (got {len(actions)})"
                )
            suggested_actions[category] = actions

        object.__setattr__(self, "category_keywords", MappingProxyType(category_keywords))
        object.__setattr__(self, "priority_keywords", MappingProxyType(priority_keywords))
        object.__setattr__(self, "suggested_actions", MappingProxyType(suggested_actions))
        object.__setattr__(self, "action_verbs", frozenset(_normalize_words(self.action_verbs)))


DEFAULT_KEYWORD_TABLES = KeywordTables(
    category_keywords={
        "scheduling": (
            "meeting", "schedule", "call", "appointment", "deadline", "calendar",
            "meet", "conference", "discussion", "session", "reminder", "event",
        ),
        "finance": (
            "payment", "invoice", "bill", "budget", "cost", "expense", "financial",
            "pay", "purchase", "spending", "money", "price", "fund", "salary",
        ),
        "technical": (
            "bug", "fix", "error", "install", "repair", "maintain", "debug",
            "code", "deploy", "server", "database", "api", "software", "system",
        ),
        "safety": (
            "safety", "hazard", "inspection", "compliance", "ppe", "risk",
            "security", "emergency", "incident", "accident", "protocol", "regulation",
        ),
        "general": (),
    },
    priority_keywords={
        "high": (
            "urgent", "asap", "immediately", "today", "critical", "emergency",
            "priority", "now", "crucial", "vital",
        ),
        "medium": (
            "soon", "this week", "important", "upcoming", "moderate",
        ),
    },
    suggested_actions={
        "scheduling": ("Block calendar", "Send invite", "Prepare agenda", "Set reminder"),
        "finance": ("Check budget", "Get approval", "Generate invoice", "Update records"),
        "technical": ("Diagnose issue", "Check resources", "Assign technician", "Document fix"),
        "safety": ("Conduct inspection", "File report", "Notify supervisor", "Update checklist"),
        "general": ("Review details", "Assign owner", "Set deadline", "Track progress"),
    },
    action_verbs=frozenset({
        "schedule", "prepare", "review", "complete", "submit", "send",
        "update", "fix", "repair", "install", "check", "verify",
        "approve", "confirm", "notify", "contact", "assign",
    }),
)
