"""Rule-based task content classifier.

Turns the free-text title and description of a task into structured data
using four independent analyses over the same text:

1. Category: keyword prefix scoring, a strict winner or ``general``
2. Priority: two-tier short-circuit keyword scan
3. Entities: dates, persons, locations and action verbs
4. Suggested actions: fixed checklist looked up by category

All functions are pure. The keyword tables are read-only and the date
parser is used as a reentrant function, so concurrent requests can call
``classify_task`` without coordination.
"""

import functools
import logging
import re
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Pattern, Sequence, Tuple

import dateparser
from dateparser.search import search_dates

from app.models.classification import (
    DEFAULT_CATEGORY,
    DEFAULT_PRIORITY,
    ClassificationResult,
    ExtractedEntities,
    TaskCategory,
    TaskPriority,
)
from app.services.keyword_tables import DEFAULT_KEYWORD_TABLES, PRIORITY_LEVELS, KeywordTables

logger = logging.getLogger(__name__)

DateSearcher = Callable[[str], Optional[Sequence[Tuple[str, datetime]]]]
DateParser = Callable[[str], Optional[datetime]]

_EDGE_PUNCTUATION = ",.;:!?()[]\"'"

# A phrase is kept only if one of its words names a point in time
_MONTHS = {
    "january", "february", "march", "april", "june", "july",
    "august", "september", "october", "november", "december",
}
_WEEKDAYS = {"monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"}
_RELATIVE_WORDS = {
    "today", "tonight", "tomorrow", "yesterday", "now", "noon", "midnight",
    "morning", "afternoon", "evening", "night", "weekend",
    "day", "days", "week", "weeks", "month", "months", "year", "years",
    "hour", "hours", "minutes",
}
# Ordinary English words unless capitalised, such as "may" and "sat"
_CAPITALISED_ONLY = {
    "may", "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "sept",
    "oct", "nov", "dec", "mon", "tue", "tues", "wed", "thu", "thur", "thurs",
    "fri", "sat", "sun",
}

_RELATIVE_MODIFIER = re.compile(r"\b(?:next|this|last|coming)\s+$", re.IGNORECASE)
_MODIFIABLE = _MONTHS | _WEEKDAYS | {"may", "week", "weekend", "month", "year"}


def _is_time_word(token: str) -> bool:
    word = token.strip(_EDGE_PUNCTUATION)
    if any(ch.isdigit() for ch in word):
        return True
    lower = word.lower()
    if lower in _MONTHS or lower in _WEEKDAYS or lower in _RELATIVE_WORDS:
        return True
    return word[:1].isupper() and lower in _CAPITALISED_ONLY


def tighten_date_phrase(phrase: str, moment: datetime, parse: DateParser) -> str:
    """Drop edge words while the shorter span still parses to ``moment``.

    "today about" becomes "today" and "Friday in" becomes "Friday", while
    "Friday at 3pm" stays whole because "Friday" alone is a different time.
    """
    tokens = phrase.split()

    def same_moment(candidate: List[str]) -> bool:
        return parse(" ".join(candidate).strip(_EDGE_PUNCTUATION)) == moment

    while len(tokens) > 1 and same_moment(tokens[:-1]):
        tokens.pop()
    while len(tokens) > 1 and same_moment(tokens[1:]):
        tokens.pop(0)
    return " ".join(tokens).strip(_EDGE_PUNCTUATION)


def refine_date_matches(
    text: str,
    matches: Sequence[Tuple[str, datetime]],
    parse: DateParser,
) -> List[Tuple[str, datetime]]:
    """Tighten raw parser matches into literal date phrases of ``text``.

    Each match is trimmed to its shortest equivalent span, extended left
    over a preceding "next"/"this"/"last"/"coming" when it starts with a
    weekday, month or calendar unit and the longer span still parses,
    and dropped when no word in it names a time.
    """
    refined: List[Tuple[str, datetime]] = []
    cursor = 0

    for raw, moment in matches:
        start = text.find(raw, cursor)
        if start >= 0:
            cursor = start + len(raw)

        phrase = tighten_date_phrase(raw, moment, parse)
        if not phrase or not any(_is_time_word(token) for token in phrase.split()):
            continue

        offset = raw.find(phrase) if start >= 0 else -1
        if offset >= 0 and phrase.split()[0].lower() in _MODIFIABLE:
            phrase_start = start + offset
            modifier = _RELATIVE_MODIFIER.search(text[:phrase_start])
            if modifier:
                extended = text[modifier.start():phrase_start + len(phrase)]
                extended_moment = parse(extended)
                if extended_moment is not None:
                    phrase, moment = extended, extended_moment

        refined.append((phrase, moment))

    return refined


def search_english_dates(text: str) -> Optional[Sequence[Tuple[str, datetime]]]:
    """Default date searcher: dateparser restricted to English.

    A single relative base is shared by the search and by the re-parses in
    ``refine_date_matches`` so that equal phrases compare equal.
    """
    settings = {"PREFER_DATES_FROM": "future", "RELATIVE_BASE": datetime.now()}
    matches = search_dates(text, languages=["en"], settings=settings)
    if not matches:
        return matches

    def parse(phrase: str) -> Optional[datetime]:
        return dateparser.parse(phrase, languages=["en"], settings=settings)

    return refine_date_matches(text, matches, parse)


def _unique(items: Iterable[str]) -> List[str]:
    """De-duplicate, keeping the order of first occurrence."""
    return list(dict.fromkeys(items))


# ---------------------------------------------------------------------------
# Category detection
# ---------------------------------------------------------------------------

@functools.lru_cache(maxsize=512)
def _keyword_pattern(keyword: str) -> Pattern[str]:
    # Prefix match: 'meet' also counts 'meeting' and 'meetings'
    return re.compile(rf"\b{re.escape(keyword)}\w*\b")


def score_categories(
    content: str,
    tables: KeywordTables = DEFAULT_KEYWORD_TABLES,
) -> Dict[str, int]:
    """Count keyword prefix matches per category (case-insensitive)."""
    text = content.lower()
    return {
        category: sum(len(_keyword_pattern(kw).findall(text)) for kw in keywords)
        for category, keywords in tables.category_keywords.items()
    }


def detect_category(
    content: str,
    tables: KeywordTables = DEFAULT_KEYWORD_TABLES,
) -> TaskCategory:
    """Return the category with the strictly highest score.

    Any tie for the top score, including all categories scoring zero,
    resolves to ``general``. The result does not depend on the order the
    categories are iterated in.
    """
    best_category: str = DEFAULT_CATEGORY
    best_score = 0
    tied = False

    for category, score in score_categories(content, tables).items():
        if score > best_score:
            best_category, best_score, tied = category, score, False
        elif score == best_score and score > 0:
            tied = True

    if tied:
        return DEFAULT_CATEGORY
    return best_category  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Priority detection
# ---------------------------------------------------------------------------

def detect_priority(
    content: str,
    tables: KeywordTables = DEFAULT_KEYWORD_TABLES,
) -> TaskPriority:
    """Substring scan: any 'high' keyword wins, then any 'medium', else 'low'."""
    text = content.lower()
    for level in PRIORITY_LEVELS:
        for keyword in tables.priority_keywords[level]:
            if keyword in text:
                return level  # type: ignore[return-value]
    return DEFAULT_PRIORITY


# ---------------------------------------------------------------------------
# Entity extraction
# ---------------------------------------------------------------------------

# One or more capitalised words: "John", "John Smith"
_NAME = r"([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)"

# Triggers match whole words only: "Standby Alice" and "Admin Portal" capture nothing
_PERSON_PATTERNS = (
    re.compile(r"\b(?:with|by|assign(?:ed)?(?:\s+to\b)?)\s+" + _NAME),
    re.compile(r"\b(?:contact|reach\s+out\s+to|notify|inform)\s+" + _NAME),
)

_LOCATION_PATTERNS = (
    # "at Main Office", "location: Conference Hall 2"
    re.compile(r"\b(?:at|in|location:|venue:)\s+([A-Z][a-z]+(?:\s+[A-Z0-9][a-z0-9]*)*)"),
    # "room 301", "Building B" (trigger and token in any case)
    re.compile(r"\b(?:room|office|building|floor)\s+([A-Z0-9]+)", re.IGNORECASE),
)

_NON_LETTERS = re.compile(r"[^a-z]")


def _collect_matches(patterns: Sequence[Pattern[str]], text: str) -> List[str]:
    found: List[str] = []
    for pattern in patterns:
        found.extend(m.group(1) for m in pattern.finditer(text) if m.group(1))
    return _unique(found)


def extract_dates(text: str, date_searcher: Optional[DateSearcher] = None) -> List[str]:
    """Return the literal date/time phrases the parser finds, in parser order.

    Parser failures are logged and treated as "no dates" so that
    classification never fails.
    """
    if not text or not text.strip():
        return []

    searcher = date_searcher or search_english_dates
    try:
        matches = searcher(text)
    except Exception as e:
        logger.warning(f"Date parser failed, skipping date extraction: {e}")
        return []

    return [matched for matched, _ in matches or []]


def extract_persons(text: str) -> List[str]:
    """Names after 'with', 'by', 'assign(ed) to', 'contact', 'reach out to', 'notify', 'inform'."""
    return _collect_matches(_PERSON_PATTERNS, text)


def extract_locations(text: str) -> List[str]:
    """Capitalised places after 'at'/'in'/'location:'/'venue:', plus room/office/building/floor tokens."""
    return _collect_matches(_LOCATION_PATTERNS, text)


def extract_action_verbs(
    text: str,
    tables: KeywordTables = DEFAULT_KEYWORD_TABLES,
) -> List[str]:
    """Whitespace tokens that, lower-cased and stripped of non-letters, are lexicon verbs."""
    found = []
    for token in text.lower().split():
        word = _NON_LETTERS.sub("", token)
        if word in tables.action_verbs:
            found.append(word)
    return _unique(found)


def extract_entities(
    text: str,
    tables: KeywordTables = DEFAULT_KEYWORD_TABLES,
    date_searcher: Optional[DateSearcher] = None,
) -> ExtractedEntities:
    """Run all four extractors. Fields without matches are left unset."""
    return ExtractedEntities(
        dates=extract_dates(text, date_searcher) or None,
        persons=extract_persons(text) or None,
        locations=extract_locations(text) or None,
        action_verbs=extract_action_verbs(text, tables) or None,
    )


# ---------------------------------------------------------------------------
# Suggested actions
# ---------------------------------------------------------------------------

def get_suggested_actions(
    category: str,
    tables: KeywordTables = DEFAULT_KEYWORD_TABLES,
) -> List[str]:
    return list(tables.suggested_actions[category])


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

def classify_task(
    title: str,
    description: str,
    tables: KeywordTables = DEFAULT_KEYWORD_TABLES,
    date_searcher: Optional[DateSearcher] = None,
) -> ClassificationResult:
    """Classify a task from its title and description.

    Never raises for string input: empty text yields ``general`` / ``low``
    with no entities.

    Args:
        title: Task title (may be empty).
        description: Task description (may be empty).
        tables: Keyword tables to classify against.
        date_searcher: Optional replacement for the dateparser-based searcher.

    Returns:
        ClassificationResult with category, priority, entities and actions.
    """
    full_text = f"{title or ''} {description or ''}"

    category = detect_category(full_text, tables)
    priority = detect_priority(full_text, tables)
    entities = extract_entities(full_text, tables, date_searcher)

    return ClassificationResult(
        category=category,
        priority=priority,
        extracted_entities=entities,
        suggested_actions=get_suggested_actions(category, tables),
    )
