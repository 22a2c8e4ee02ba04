"""NLP ports - type classification and semantic name matching.

Both are best-effort helpers: the workflow treats any failure as a
signal to fall back (default category, direct matches only).
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence


class TypeClassifierPort(Protocol):
    """Port for inferring a location category.

    Implementations:
    - adapters/nlp/gemini_classifier.py (GeminiTypeClassifier)
    - adapters/nlp/hf_type_classifier.py (HuggingFaceTypeClassifier)
    """

    def classify(self, name: str, description: str) -> Optional[str]:
        """Return one of the configured categories, or None if unsure.

        Raises:
            DependencyError: If the backing service fails.
        """
        ...


class NameMatcherPort(Protocol):
    """Port for semantic matching of a query against known names.

    Implementations:
    - adapters/nlp/gemini_matcher.py (GeminiNameMatcher)
    - adapters/nlp/fuzzy_matcher.py (FuzzyNameMatcher)
    """

    def match(self, query: str, names: Sequence[str], limit: int) -> List[str]:
        """Return up to ``limit`` names from ``names``, best first.

        Raises:
            DependencyError: If the backing service fails.
        """
        ...
