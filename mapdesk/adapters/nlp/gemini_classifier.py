"""Location type inference through Gemini."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ...config import DEFAULT_CATEGORIES
from ..gemini.client import GeminiClient

CATEGORY_GUIDE = {
    "location": "Major settlements, towns, or important named areas",
    "poi": "Points of interest, landmarks, special objects, or minor locations",
    "quest": "Quest locations, NPCs, or quest-related objectives",
    "camp": "Camps, resting areas, or outposts",
    "dungeon": "Dungeons, caves, ruins, or challenging areas with enemies",
    "resource": "Gathering spots, harvestable items, or crafting materials",
    "user_submitted": "Default type when unclear (only use if absolutely necessary)",
}

PROMPT_TEMPLATE = """You are a game map categorization assistant. Based on the name and \
description of a location marker, determine the most appropriate type.
Choose ONE type from this list: {categories}

Guidelines for types:
{guide}

Marker name: "{name}"
User description: "{description}"

Return ONLY the type name without any additional text, explanation, or punctuation."""


@dataclass
class GeminiTypeClassifier:
    """TypeClassifierPort asking Gemini for one category label.

    Attributes:
        client: Shared Gemini client
        categories: Allowed labels; anything else counts as "unsure"
        timeout_seconds: Per-call timeout
    """

    client: GeminiClient
    categories: List[str] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    timeout_seconds: float = 3.0

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def build_prompt(self, name: str, description: str) -> str:
        guide = "\n".join(
            f"- {c}: {CATEGORY_GUIDE[c]}" for c in self.categories if c in CATEGORY_GUIDE
        )
        return PROMPT_TEMPLATE.format(
            categories=", ".join(self.categories),
            guide=guide,
            name=name,
            description=description,
        )

    def classify(self, name: str, description: str) -> Optional[str]:
        if not name.strip() or not description.strip():
            return None

        answer = self.client.generate(
            self.build_prompt(name, description), timeout=self.timeout_seconds
        )
        label = answer.strip().strip(".").lower()
        if label in self.categories:
            self._logger.info(
                "Predicted location type", extra={"name": name, "type": label}
            )
            return label

        self._logger.info(
            "Classifier answered outside the category list",
            extra={"name": name, "answer": answer[:50]},
        )
        return None
