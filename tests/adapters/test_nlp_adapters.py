"""Tests for the type classifiers and name matchers."""

from unittest.mock import MagicMock, patch

import pytest

from mapdesk.adapters.nlp import (
    DisabledNameMatcher,
    DisabledTypeClassifier,
    FuzzyNameMatcher,
    GeminiNameMatcher,
    GeminiTypeClassifier,
    HuggingFaceTypeClassifier,
)
from mapdesk.adapters.nlp.gemini_matcher import NO_MATCHES, parse_numbered_answer
from mapdesk.domain.errors import DependencyError

NAMES = ["Old Mill", "Mill Pond", "Watchtower", "Iron Vein"]


class TestFuzzyNameMatcher:
    def test_typo_is_matched(self):
        assert FuzzyNameMatcher().match("Old Mil", NAMES, 3)[0] == "Old Mill"

    def test_word_order_is_ignored(self):
        assert "Iron Vein" in FuzzyNameMatcher().match("vein iron", NAMES, 3)

    def test_unrelated_query_matches_nothing(self):
        assert FuzzyNameMatcher().match("qqqqzz", NAMES, 3) == []

    def test_limit_is_respected(self):
        assert len(FuzzyNameMatcher(min_score=0).match("mill", NAMES, 2)) == 2

    @pytest.mark.parametrize("query,names,limit", [("", NAMES, 3), ("mill", [], 3), ("mill", NAMES, 0)])
    def test_degenerate_input(self, query, names, limit):
        assert FuzzyNameMatcher().match(query, names, limit) == []


def test_disabled_strategies_answer_nothing():
    assert DisabledNameMatcher().match("mill", NAMES, 5) == []
    assert DisabledTypeClassifier().classify("Old Mill", "A mill") is None


class TestHuggingFaceTypeClassifier:
    @pytest.fixture
    def classifier_with_mock(self):
        mock_pipeline = MagicMock()
        with patch.object(
            HuggingFaceTypeClassifier, "_get_classifier", return_value=mock_pipeline
        ):
            yield HuggingFaceTypeClassifier(), mock_pipeline

    def test_empty_name_skips_model(self):
        with patch.object(HuggingFaceTypeClassifier, "_get_classifier") as mock_get:
            assert HuggingFaceTypeClassifier().classify("  ", "desc") is None
            mock_get.assert_not_called()

    def test_confident_label_is_returned(self, classifier_with_mock):
        clf, mock_pipeline = classifier_with_mock
        mock_pipeline.return_value = {"labels": ["dungeon", "camp"], "scores": [0.8, 0.1]}
        assert clf.classify("Spider Cave", "Full of spiders") == "dungeon"

        labels = mock_pipeline.call_args.args[1]
        assert "user_submitted" not in labels
        assert "dungeon" in labels

    def test_low_confidence_is_unsure(self, classifier_with_mock):
        clf, mock_pipeline = classifier_with_mock
        mock_pipeline.return_value = {"labels": ["camp"], "scores": [0.2]}
        assert clf.classify("Thing", "") is None

    def test_pipeline_error_becomes_dependency_error(self, classifier_with_mock):
        clf, mock_pipeline = classifier_with_mock
        mock_pipeline.side_effect = RuntimeError("CUDA out of memory")
        with pytest.raises(DependencyError) as exc_info:
            clf.classify("Thing", "desc")
        assert exc_info.value.service == "hf_zero_shot"

    def test_unload_clears_cached_pipeline(self):
        clf = HuggingFaceTypeClassifier()
        clf.cache.set("classifier:x", object())
        clf.unload()
        assert clf.cache.size() == 0


class TestGeminiTypeClassifier:
    def test_valid_answer(self):
        client = MagicMock()
        client.generate.return_value = " Camp.\n"
        clf = GeminiTypeClassifier(client=client)
        assert clf.classify("Ranger Outpost", "Tents and a fire") == "camp"
        prompt = client.generate.call_args.args[0]
        assert '"Ranger Outpost"' in prompt
        assert "- camp:" in prompt

    def test_answer_outside_categories_is_unsure(self):
        client = MagicMock()
        client.generate.return_value = "castle"
        assert GeminiTypeClassifier(client=client).classify("Keep", "Big walls") is None

    def test_missing_description_skips_call(self):
        client = MagicMock()
        assert GeminiTypeClassifier(client=client).classify("Keep", " ") is None
        client.generate.assert_not_called()

    def test_client_errors_propagate(self):
        client = MagicMock()
        client.generate.side_effect = DependencyError("down", service="gemini")
        with pytest.raises(DependencyError):
            GeminiTypeClassifier(client=client).classify("Keep", "Big walls")


class TestGeminiNameMatcher:
    def test_numbered_answer_is_parsed(self):
        client = MagicMock()
        client.generate.return_value = '1. Old Mill\n2) "Mill Pond"\n3. Castle'
        assert GeminiNameMatcher(client=client).match("mill", NAMES, 5) == ["Old Mill", "Mill Pond"]

    def test_no_matches_marker(self):
        assert parse_numbered_answer(NO_MATCHES, NAMES, 5) == []

    def test_duplicates_and_limit(self):
        answer = "1. Watchtower\n2. Watchtower\n3. Iron Vein\n4. Old Mill"
        assert parse_numbered_answer(answer, NAMES, 2) == ["Watchtower", "Iron Vein"]

    def test_empty_query_skips_call(self):
        client = MagicMock()
        assert GeminiNameMatcher(client=client).match(" ", NAMES, 5) == []
        client.generate.assert_not_called()
