"""Tests for name resolution and candidate expansion."""

import pytest

from mapdesk.adapters.cache import InMemoryCache
from mapdesk.adapters.nlp import DisabledNameMatcher
from mapdesk.adapters.storage import InMemoryLocationStore
from mapdesk.config import ResolverConfig
from mapdesk.domain.errors import NotFoundError, ValidationError
from mapdesk.domain.models import WILDCARD
from mapdesk.services.name_resolver import NameResolver, rank_direct, sample_names


def build(locations, matcher=None, **config):
    return NameResolver(
        locations=locations,
        matcher=matcher or DisabledNameMatcher(),
        cache=InMemoryCache(name="names"),
        config=ResolverConfig(**config),
    )


class TestRankDirect:
    def test_tiers_exact_prefix_substring(self):
        names = ["Old Mill", "Mill Pond", "Mill"]
        assert rank_direct("mill", names) == ["Mill", "Mill Pond", "Old Mill"]

    def test_alphabetical_within_tier(self):
        assert rank_direct("mill", ["Old Mill", "Big Mill"]) == ["Big Mill", "Old Mill"]

    def test_case_insensitive(self):
        assert rank_direct("OLD", ["old mill"]) == ["old mill"]

    def test_empty_query_matches_nothing(self):
        assert rank_direct("  ", ["a"]) == []

    def test_duplicates_collapse(self):
        assert rank_direct("a", ["Alpha", "Alpha"]) == ["Alpha"]


def test_sample_names_takes_head_middle_tail():
    names = [f"n{i}" for i in range(10)]
    assert sample_names(names, 6) == ["n0", "n1", "n4", "n5", "n8", "n9"]


def test_sample_names_small_list_is_unchanged():
    assert sample_names(["a", "b"], 500) == ["a", "b"]


class TestResolve:
    def test_multi_point_expands_wildcard_first(self, locations):
        candidates = build(locations).resolve("iron")
        assert [c.coordinate_index for c in candidates] == [WILDCARD, 0, 1, 2]
        assert candidates[0].label == "Iron Vein * (All 3 points)"
        assert [c.label for c in candidates[1:]] == ["Iron Vein #1", "Iron Vein #2", "Iron Vein #3"]
        assert [c.rank for c in candidates] == [0, 1, 2, 3]

    def test_direct_tier_order(self, locations):
        names = [c.name for c in build(locations).resolve("mill")]
        assert names == ["Mill Pond", "Old Mill"]

    def test_result_is_capped(self, locations):
        assert len(build(locations, max_choices=3).resolve("iron")) == 3

    def test_limit_counts_distinct_names(self, locations):
        names = [c.name for c in build(locations).resolve("mill", limit=1)]
        assert names == ["Mill Pond"]

    def test_empty_query_lists_alphabetically(self, locations):
        names = build(locations).match_names("", limit=3)
        assert names == ["Iron Vein", "Mill Pond", "Old Mill"]

    def test_index_marker_is_ignored_when_matching(self, locations):
        names = build(locations).match_names("Iron Vein #2", limit=5)
        assert names == ["Iron Vein"]

    def test_semantic_matcher_supplements(self, locations, make_matcher):
        matcher = make_matcher(["Watchtower", "Not A Place"])
        resolver = build(locations, matcher=matcher)
        assert resolver.match_names("lookout", limit=5) == ["Watchtower"]
        query, sent, limit = matcher.calls[0]
        assert query == "lookout"
        assert limit == 5
        assert "Watchtower" in sent

    def test_semantic_results_never_duplicate_direct_ones(self, locations, make_matcher):
        resolver = build(locations, matcher=make_matcher(["Old Mill", "Watchtower"]))
        assert resolver.match_names("mill", limit=5) == ["Mill Pond", "Old Mill", "Watchtower"]

    def test_semantic_can_be_skipped(self, locations, make_matcher):
        matcher = make_matcher(["Watchtower"])
        assert build(locations, matcher=matcher).match_names("lookout", 5, semantic=False) == []
        assert matcher.calls == []

    def test_matcher_failure_only_shortens_results(self, locations, make_matcher):
        resolver = build(locations, matcher=make_matcher(error=TimeoutError("slow")))
        assert resolver.match_names("mill", limit=5) == ["Mill Pond", "Old Mill"]

    def test_matcher_not_called_when_direct_fills_limit(self, locations, make_matcher):
        matcher = make_matcher(["Watchtower"])
        build(locations, matcher=matcher).match_names("mill", limit=2)
        assert matcher.calls == []

    def test_multi_point_variant_preferred(self, make_single, make_multi):
        store = InMemoryLocationStore.with_locations(
            make_single("Camp", 1, 1, location_id="c1"),
            make_multi("Camp", (2, 2), (3, 3), location_id="c2"),
        )
        candidates = build(store).resolve("camp")
        assert {c.location_id for c in candidates} == {"c2"}


class TestNameCache:
    def test_names_are_cached_until_invalidated(self, locations, make_single):
        resolver = build(locations)
        assert "Harbor" not in resolver.names()
        locations.create(make_single("Harbor", 0, 0))
        assert "Harbor" not in resolver.names()
        resolver.invalidate_names()
        assert "Harbor" in resolver.names()


class TestFindTarget:
    def test_external_point_number(self, locations):
        location, index = build(locations).find_target("Iron Vein #2")
        assert location.name == "Iron Vein"
        assert index == 1

    def test_choice_value(self, locations):
        _, index = build(locations).find_target("Iron Vein|*")
        assert index is WILDCARD

    def test_bare_multi_point_name_has_no_index(self, locations):
        _, index = build(locations).find_target("Iron Vein")
        assert index is None

    def test_single_point_ignores_wildcard(self, locations):
        location, index = build(locations).find_target("Old Mill|*")
        assert location.name == "Old Mill"
        assert index is None

    def test_out_of_range_index(self, locations):
        with pytest.raises(ValidationError):
            build(locations).find_target("Iron Vein #9")

    def test_partial_name_uses_best_direct_match(self, locations):
        location, _ = build(locations).find_target("watch")
        assert location.name == "Watchtower"

    def test_unknown_name(self, locations):
        with pytest.raises(NotFoundError):
            build(locations).find_target("Atlantis")

    def test_stale_cached_name_is_skipped(self, locations):
        resolver = build(locations)
        resolver.names()
        locations.delete("mill-pond")
        location, _ = resolver.find_target("mill")
        assert location.name == "Old Mill"

    def test_find_near_match(self, locations):
        assert build(locations).find_near_match("old mill").id == "old-mill"
        assert build(locations).find_near_match("Harbor") is None

    def test_typo_falls_back_to_semantic_matcher(self, locations, make_matcher):
        matcher = make_matcher(["Watchtower"])
        location, index = build(locations, matcher=matcher).find_target("Watchtowr")
        assert location.name == "Watchtower"
        assert index is None
        query, _, limit = matcher.calls[0]
        assert query == "Watchtowr"
        assert limit == 1

    def test_semantic_fallback_keeps_point_index(self, locations, make_matcher):
        resolver = build(locations, matcher=make_matcher(["Iron Vein"]))
        location, index = resolver.find_target("Iorn Vien #3")
        assert location.name == "Iron Vein"
        assert index == 2

    def test_direct_match_skips_semantic_matcher(self, locations, make_matcher):
        matcher = make_matcher(["Watchtower"])
        location, _ = build(locations, matcher=matcher).find_target("Old Mill")
        assert location.name == "Old Mill"
        assert matcher.calls == []

    def test_semantic_failure_still_reports_not_found(self, locations, make_matcher):
        resolver = build(locations, matcher=make_matcher(error=TimeoutError("slow")))
        with pytest.raises(NotFoundError):
            resolver.find_target("Watchtowr")

    def test_near_match_uses_semantic_matcher(self, locations, make_matcher):
        resolver = build(locations, matcher=make_matcher(["Old Mill"]))
        assert resolver.find_near_match("Olde Mil").id == "old-mill"

    def test_near_match_ignores_unknown_semantic_answers(self, locations, make_matcher):
        resolver = build(locations, matcher=make_matcher(["Harbor"]))
        assert resolver.find_near_match("Harbour") is None
