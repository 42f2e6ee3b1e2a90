from __future__ import annotations

from typing import Dict, Optional

from utils.validation import DEFAULT_CATEGORY, TEMPLATE_CATEGORIES

CATEGORY_KEYWORDS = {
    "reading": ("read", "book", "pdf", "article", "text", "document", "chapter", "passage"),
    "problem-solving": (
        "problem", "solving", "solve", "exercise", "question",
        "practice", "case", "analyze", "calculate", "math",
    ),
    "lecture": ("lecture", "video", "watch", "viewing", "presentation", "lesson", "tutorial", "recording"),
}

CATEGORY_ICONS = {
    "reading": ("book", "book-open", "file-text", "file-document", "text"),
    "problem-solving": ("math", "calculator", "brain", "puzzle", "lightbulb"),
    "lecture": ("video", "play", "monitor", "presentation", "youtube"),
}

NAME_WEIGHT = 2
DESCRIPTION_WEIGHT = 1
ICON_WEIGHT = 3

# Checked in this order when scores tie
TIE_ORDER = ("problem-solving", "lecture", "reading")


def score_categories(name: str, description: str, icon: str) -> Dict[str, int]:
    name_lower = (name or "").lower()
    description_lower = (description or "").lower()
    icon_lower = (icon or "").lower()
    scores = {category: 0 for category in TEMPLATE_CATEGORIES}
    for category, keywords in CATEGORY_KEYWORDS.items():
        for keyword in keywords:
            if keyword in name_lower:
                scores[category] += NAME_WEIGHT
            if keyword in description_lower:
                scores[category] += DESCRIPTION_WEIGHT
        if any(hint in icon_lower for hint in CATEGORY_ICONS[category]):
            scores[category] += ICON_WEIGHT
    return scores


def infer_category(name: str, description: str, icon: str, declared: Optional[str] = None) -> str:
    """Pick a template category from keywords in its name/description and its icon."""
    if declared in TEMPLATE_CATEGORIES:
        return declared
    scores = score_categories(name, description, icon)
    best = max(scores.values())
    if best == 0:
        return DEFAULT_CATEGORY
    for category in TIE_ORDER:
        if scores[category] == best:
            return category
    return DEFAULT_CATEGORY
