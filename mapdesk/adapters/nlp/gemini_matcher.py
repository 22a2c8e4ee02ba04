"""Semantic name matching through Gemini."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Sequence

from ..gemini.client import GeminiClient

NO_MATCHES = "NO_MATCHES_FOUND"
_NUMBERING = re.compile(r"^\s*\d+[.)]\s*")

PROMPT_TEMPLATE = """You are a marker name matching assistant. From the list of available \
marker names below, find the {limit} best matches for the user's query.
Return ONLY the exact marker names as a numbered list without any explanation or \
additional text.
If there are no good matches, return "{no_matches}".

User query: "{query}"

Available marker names: {names}"""


@dataclass
class GeminiNameMatcher:
    """NameMatcherPort backed by an LLM prompt.

    Answers are parsed as a numbered list; any line that is not exactly
    one of the offered names is discarded.
    """

    client: GeminiClient
    timeout_seconds: float = 5.0

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def match(self, query: str, names: Sequence[str], limit: int) -> List[str]:
        if not query.strip() or not names or limit <= 0:
            return []

        prompt = PROMPT_TEMPLATE.format(
            limit=limit, no_matches=NO_MATCHES, query=query, names=", ".join(names)
        )
        answer = self.client.generate(prompt, timeout=self.timeout_seconds)
        return parse_numbered_answer(answer, names, limit)


def parse_numbered_answer(answer: str, names: Sequence[str], limit: int) -> List[str]:
    if answer.strip() == NO_MATCHES:
        return []
    known = set(names)
    matches: List[str] = []
    for line in answer.splitlines():
        candidate = _NUMBERING.sub("", line).strip().strip('"')
        if candidate in known and candidate not in matches:
            matches.append(candidate)
    return matches[:limit]
