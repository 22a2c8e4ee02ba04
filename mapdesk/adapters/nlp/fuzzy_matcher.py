"""Offline name matching with rapidfuzz.

Catches typos and word-order differences ("mil old", "Old Mil") that
prefix and substring matching miss.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from rapidfuzz import fuzz, process, utils

# Minimum similarity score (0-100) to consider a match
MIN_SIMILARITY_SCORE = 70


@dataclass
class FuzzyNameMatcher:
    """NameMatcherPort using rapidfuzz WRatio scoring."""

    min_score: float = MIN_SIMILARITY_SCORE

    def match(self, query: str, names: Sequence[str], limit: int) -> List[str]:
        if not query.strip() or not names or limit <= 0:
            return []
        results = process.extract(
            query,
            list(names),
            scorer=fuzz.WRatio,
            processor=utils.default_process,
            limit=limit,
            score_cutoff=self.min_score,
        )
        return [name for name, _score, _index in results]
