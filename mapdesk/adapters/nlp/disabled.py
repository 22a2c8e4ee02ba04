"""Adapters for the "none" strategies: never classify, never match."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence


@dataclass
class DisabledTypeClassifier:
    def classify(self, name: str, description: str) -> Optional[str]:
        return None


@dataclass
class DisabledNameMatcher:
    def match(self, query: str, names: Sequence[str], limit: int) -> List[str]:
        return []
