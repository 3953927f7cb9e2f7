"""Keyword heuristics for turning free-text thoughts into issue metadata.

Pure functions, no I/O.
"""

import re
from typing import Iterable, List

CATEGORY_TAGS = (
    "architecture",
    "feature-idea",
    "technical-debt",
    "process-improvement",
    "research-topic",
    "bug-insight",
    "optimization",
)

# Checked in order; first hit wins.
_CATEGORY_KEYWORDS = (
    ("architecture", ("architecture", "system design", "microservice")),
    ("bug-insight", ("bug", "error", "issue")),
    ("technical-debt", ("debt", "refactor", "cleanup")),
    ("optimization", ("performance", "optimize", "faster")),
    ("feature-idea", ("feature", "new", "add")),
    ("process-improvement", ("process", "workflow", "improve")),
    ("research-topic", ("research", "investigate", "explore")),
)

_CATEGORY_TO_TYPE = {
    "architecture": "Improvement",
    "feature": "Feature",
    "feature-idea": "Feature",
    "urgent": "Bug Fix",
    "bug-insight": "Bug Fix",
    "technical-debt": "Improvement",
    "process-improvement": "Improvement",
    "optimization": "Improvement",
    "research-topic": "Documentation",
    "general": "Improvement",
}

_COMPLEXITY_INDICATORS = (
    ("high", ("system", "architecture", "refactor", "migration", "breaking", "multiple", "across")),
    ("medium", ("feature", "implement", "integration", "api", "database")),
)

MAX_TITLE_LENGTH = 60
_SENTENCE_END = re.compile(r"[.!?\n]")


def detect_thought_category(content: str, tags: Iterable[str] = ()) -> str:
    for tag in tags or ():
        if tag in CATEGORY_TAGS:
            return tag
    lowered = (content or "").lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(word in lowered for word in keywords):
            return category
    return "feature-idea"


def derive_issue_title(content: str) -> str:
    """First sentence (or line) of the text, capped at 60 chars and capitalised."""
    text = content or ""
    first = _SENTENCE_END.split(text, maxsplit=1)[0].strip()
    title = first or text.strip()
    if len(title) > MAX_TITLE_LENGTH:
        title = title[: MAX_TITLE_LENGTH - 3] + "..."
    return title[:1].upper() + title[1:]


def map_category_to_issue_type(category: str) -> str:
    return _CATEGORY_TO_TYPE.get(category, "Improvement")


def analyze_initial_complexity(text: str) -> str:
    lowered = (text or "").lower()
    for level, indicators in _COMPLEXITY_INDICATORS:
        if any(word in lowered for word in indicators):
            return level
    return "low"


def category_labels(category: str, priority: str = "medium") -> List[str]:
    return [category.lower(), f"{(priority or 'medium').lower()}-priority"]
