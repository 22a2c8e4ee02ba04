"""NLP adapters - type classification and semantic name matching.

Available implementations:
- GeminiTypeClassifier: LLM category prediction
- HuggingFaceTypeClassifier: zero-shot classification (transformers, optional)
- GeminiNameMatcher: LLM name matching
- FuzzyNameMatcher: rapidfuzz similarity matching
- DisabledTypeClassifier / DisabledNameMatcher: the "none" strategies
"""

from .disabled import DisabledNameMatcher, DisabledTypeClassifier
from .fuzzy_matcher import FuzzyNameMatcher
from .gemini_classifier import GeminiTypeClassifier
from .gemini_matcher import GeminiNameMatcher
from .hf_type_classifier import HuggingFaceTypeClassifier

__all__ = [
    "DisabledNameMatcher",
    "DisabledTypeClassifier",
    "FuzzyNameMatcher",
    "GeminiNameMatcher",
    "GeminiTypeClassifier",
    "HuggingFaceTypeClassifier",
]
