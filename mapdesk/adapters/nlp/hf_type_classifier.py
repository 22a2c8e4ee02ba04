"""HuggingFace zero-shot location type classifier.

Runs fully offline once the model is downloaded. The pipeline is
loaded lazily on first use and kept in the injected cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ...config import DEFAULT_CATEGORIES
from ...domain.errors import DependencyError
from ...ports.cache import CachePort
from ..cache.memory_cache import InMemoryCache


@dataclass
class HuggingFaceTypeClassifier:
    """Zero-shot TypeClassifierPort over the configured categories.

    Attributes:
        model_id: HuggingFace NLI model identifier
        categories: Candidate labels
        cache: Cache for the pipeline instance
        confidence_threshold: Minimum top score for a confident label
    """

    model_id: str = "facebook/bart-large-mnli"
    categories: List[str] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    cache: CachePort[Any] = field(
        default_factory=lambda: InMemoryCache(name="hf_type_classifier")
    )
    confidence_threshold: float = 0.3

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def _get_classifier(self) -> Any:
        """Get or lazily load the zero-shot classification pipeline.

        Raises:
            DependencyError: If the model cannot be loaded.
        """
        cache_key = f"classifier:{self.model_id}"

        def load_pipeline() -> Any:
            self._logger.info(
                "Loading HuggingFace type classifier (lazy)",
                extra={"model": self.model_id},
            )
            try:
                from transformers import pipeline

                return pipeline("zero-shot-classification", model=self.model_id)
            except Exception as e:
                raise DependencyError(
                    f"Failed to load HF model {self.model_id}",
                    cause=e,
                    service="hf_zero_shot",
                )

        return self.cache.get_or_compute(cache_key, load_pipeline)

    def classify(self, name: str, description: str) -> Optional[str]:
        if not name.strip():
            return None

        # The catch-all label is never offered to the model.
        labels = [c for c in self.categories if c != "user_submitted"]
        text = f"{name}. {description}".strip()
        try:
            classifier = self._get_classifier()
            result = classifier(
                text, labels, hypothesis_template="This map marker is a {}."
            )
        except DependencyError:
            raise
        except Exception as e:
            raise DependencyError(
                "HF type classification failed", cause=e, service="hf_zero_shot"
            )

        top_label = result["labels"][0]
        top_score = result["scores"][0]
        self._logger.debug(
            "Classification result",
            extra={"label": top_label, "score": top_score},
        )
        if top_score < self.confidence_threshold:
            return None
        return top_label

    def unload(self) -> None:
        """Clear the cached pipeline."""
        cleared = self.cache.clear()
        self._logger.info("HF type pipeline unloaded", extra={"cleared": cleared})
