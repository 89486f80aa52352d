"""Keyword dictionary: emotion weights, affect emoji, topics, category markers.

The dictionary is plain data loaded from YAML and handed to the memory
factory, so it can be localized or swapped for a synthetic one in tests.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from attune.errors import ValidationError
from attune.memory.models import MemoryCategory

logger = logging.getLogger(__name__)

DEFAULT_DICTIONARY_PATH = Path(__file__).resolve().parent.parent / "data" / "keywords.yaml"


@lru_cache(maxsize=512)
def _term_pattern(term: str) -> re.Pattern[str] | None:
    """Whole-word pattern for ASCII terms; None means plain substring matching."""
    if not term.isascii():
        return None
    return re.compile(r"\b" + re.escape(term) + r"\b")


def contains_term(lowered: str, term: str) -> bool:
    """Whether *term* occurs in already-lowercased text.

    Japanese terms match anywhere; English terms only as whole words, so
    "love" does not fire inside "gloves".
    """
    pattern = _term_pattern(term)
    if pattern is None:
        return term in lowered
    return pattern.search(lowered) is not None


class KeywordDictionary(BaseModel):
    """Read-only phrase tables used to score and classify memories."""

    model_config = ConfigDict(frozen=True)

    emotion_keywords: dict[str, float] = Field(default_factory=dict)
    affect_emoji: list[str] = Field(default_factory=list)
    topic_patterns: list[list[str]] = Field(default_factory=list)
    category_markers: dict[MemoryCategory, list[str]] = Field(default_factory=dict)

    @field_validator("emotion_keywords")
    @classmethod
    def _lower_keywords(cls, value: dict[str, float]) -> dict[str, float]:
        return {k.lower(): float(w) for k, w in value.items() if k.strip()}

    @field_validator("category_markers")
    @classmethod
    def _lower_markers(
        cls, value: dict[MemoryCategory, list[str]]
    ) -> dict[MemoryCategory, list[str]]:
        return {cat: [m.lower() for m in markers if m.strip()] for cat, markers in value.items()}

    # -- Loading ---------------------------------------------------------------

    @classmethod
    def load(cls, path: Path) -> KeywordDictionary:
        """Load a dictionary from a YAML file.

        Raises ``ValidationError`` if the file is missing or malformed.
        """
        if not path.exists():
            msg = f"Keyword dictionary not found: {path}"
            raise ValidationError(msg)
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            msg = f"Keyword dictionary is not valid YAML: {path}"
            raise ValidationError(msg) from exc
        dictionary = cls.model_validate(data)
        logger.debug(
            "Loaded keyword dictionary from %s (%d keywords, %d topic groups)",
            path,
            len(dictionary.emotion_keywords),
            len(dictionary.topic_patterns),
        )
        return dictionary

    @classmethod
    def default(cls) -> KeywordDictionary:
        """Load the dictionary bundled with the package."""
        return cls.load(DEFAULT_DICTIONARY_PATH)

    # -- Matching --------------------------------------------------------------

    def matched_keywords(self, text: str) -> list[str]:
        """Dictionary keywords contained in *text*, in dictionary order."""
        lowered = text.lower()
        return [k for k in self.emotion_keywords if contains_term(lowered, k)]

    def count_emoji(self, text: str) -> int:
        return sum(text.count(e) for e in self.affect_emoji)

    def topic_matches(self, text: str) -> list[str]:
        """First (leftmost) match of each topic group found in *text*."""
        lowered = text.lower()
        found: list[str] = []
        for group in self.topic_patterns:
            alternatives = [re.escape(term.lower()) for term in group if term.strip()]
            if not alternatives:
                continue
            match = re.search("|".join(alternatives), lowered)
            if match:
                found.append(match.group(0))
        return found

    def has_marker(self, category: MemoryCategory, text: str) -> bool:
        lowered = text.lower()
        markers = self.category_markers.get(category, [])
        return any(contains_term(lowered, marker) for marker in markers)
