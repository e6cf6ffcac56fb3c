"""
Tag-derived urgency.

Urgency is not stored; it is read off a box's (or backlog item's) tags using
the synonym table in `timebox/data/urgency_synonyms.json`.
"""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from typing import Iterable

from timebox.models.enums import Urgency

# Higher ranks are scheduled first
URGENCY_RANK = {
    Urgency.URGENT: 2,
    Urgency.IMPORTANT: 1,
    Urgency.NORMAL: 0,
}

DEFAULT_URGENCY = Urgency.IMPORTANT
DEFAULT_URGENCY_TAG = "#important"


@lru_cache()
def load_synonyms() -> dict[Urgency, frozenset[str]]:
    """Load the synonym table shipped with the package."""
    raw = json.loads(
        resources.files("timebox.data").joinpath("urgency_synonyms.json").read_text(encoding="utf-8")
    )
    return {Urgency(level): frozenset(word.lower() for word in words) for level, words in raw.items()}


def _normalized(tags: Iterable[str]) -> set[str]:
    return {tag.strip().lower() for tag in tags if tag and tag.strip()}


def has_urgency_tag(tags: Iterable[str]) -> bool:
    normalized = _normalized(tags)
    return any(normalized & words for words in load_synonyms().values())


def classify_urgency(tags: Iterable[str]) -> Urgency:
    """
    Classify tags into an urgency level.

    The most urgent matching level wins. Tags matching no synonym (or no tags
    at all) yield IMPORTANT.
    """
    normalized = _normalized(tags)
    synonyms = load_synonyms()
    for level in sorted(URGENCY_RANK, key=URGENCY_RANK.get, reverse=True):
        if normalized & synonyms.get(level, frozenset()):
            return level
    return DEFAULT_URGENCY


def urgency_rank(tags: Iterable[str]) -> int:
    return URGENCY_RANK[classify_urgency(tags)]


def with_default_urgency_tag(tags: Iterable[str]) -> list[str]:
    """Copy of `tags` with `#important` appended when no urgency tag is present."""
    result = list(tags)
    if not has_urgency_tag(result):
        result.append(DEFAULT_URGENCY_TAG)
    return result
