"""Name resolution for autocomplete and target lookup.

Turns a free-text query into an ordered, capped list of selectable
candidates. Direct matching comes first, in three tiers:

1. exact (case-insensitive)
2. prefix
3. substring

Names inside a tier are sorted alphabetically. When direct matching
finds fewer names than requested, a semantic matcher may supplement the
list; its failures only shorten the result. Multi-point locations are
expanded into a wildcard candidate followed by one candidate per point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from ..config import ResolverConfig
from ..domain.addressing import parse_selection, strip_index_marker
from ..domain.coordinates import check_index
from ..domain.errors import NotFoundError
from ..domain.models import WILDCARD, CoordinateIndex, Location, ResolvedCandidate
from ..ports.cache import CachePort
from ..ports.nlp import NameMatcherPort
from ..ports.stores import LocationStorePort

NAMES_CACHE_KEY = "location_names"


def _alpha(name: str) -> Tuple[str, str]:
    return (name.casefold(), name)


def rank_direct(query: str, names: Sequence[str]) -> List[str]:
    """Order names matching ``query`` by tier, alphabetically within a tier."""
    needle = query.strip().casefold()
    if not needle:
        return []
    exact: List[str] = []
    prefix: List[str] = []
    contains: List[str] = []
    for name in dict.fromkeys(names):
        folded = name.casefold()
        if folded == needle:
            exact.append(name)
        elif folded.startswith(needle):
            prefix.append(name)
        elif needle in folded:
            contains.append(name)
    return sorted(exact, key=_alpha) + sorted(prefix, key=_alpha) + sorted(contains, key=_alpha)


def sample_names(names: Sequence[str], size: int) -> List[str]:
    """Bound the list sent to the semantic matcher.

    Takes thirds from the head, middle and tail so that the sample is
    not biased towards the start of the alphabet.
    """
    if len(names) <= size:
        return list(names)
    third = size // 3
    middle_start = len(names) // 2 - third // 2
    tail_size = size - 2 * third
    picked = (
        list(names[:third])
        + list(names[middle_start : middle_start + third])
        + list(names[-tail_size:])
    )
    return list(dict.fromkeys(picked))


@dataclass
class NameResolver:
    """Resolves queries against location names.

    Attributes:
        locations: The Location Store
        matcher: Semantic matcher used to supplement direct matches
        cache: Holds the name list between refreshes
        config: Limits, TTL and sample size
    """

    locations: LocationStorePort
    matcher: NameMatcherPort
    cache: CachePort[Any]
    config: ResolverConfig = field(default_factory=ResolverConfig)

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def names(self) -> List[str]:
        return self.cache.get_or_compute(NAMES_CACHE_KEY, self.locations.list_names)

    def invalidate_names(self) -> None:
        """Forget the cached name list after a Location Store mutation."""
        self.cache.invalidate(NAMES_CACHE_KEY)

    def match_names(self, query: str, limit: int, semantic: bool = True) -> List[str]:
        """Distinct location names for ``query``, best first, at most ``limit``."""
        names = self.names()
        needle = strip_index_marker(query)
        if not needle:
            return sorted(names, key=_alpha)[:limit]

        matched = rank_direct(needle, names)[:limit]
        if len(matched) < limit and semantic:
            matched.extend(self._semantic_matches(needle, names, matched, limit - len(matched)))
        return matched[:limit]

    def _semantic_matches(
        self, query: str, names: Sequence[str], already: Sequence[str], needed: int
    ) -> List[str]:
        taken = set(already)
        remaining = [n for n in names if n not in taken]
        if not remaining:
            return []
        sample = sample_names(remaining, self.config.semantic_sample_size)
        try:
            answers = self.matcher.match(query, sample, needed)
        except Exception as e:
            self._logger.warning(
                "Semantic matcher failed, using direct matches only",
                extra={"query": query, "error": str(e)},
            )
            return []

        known = set(sample)
        supplement: List[str] = []
        for name in answers:
            if name in known and name not in taken:
                supplement.append(name)
                taken.add(name)
        return supplement[:needed]

    def resolve(
        self, query: str, limit: Optional[int] = None, semantic: bool = True
    ) -> List[ResolvedCandidate]:
        """Ordered candidates for ``query``, capped at the choice limit.

        Args:
            query: Free text, optionally carrying an index marker.
            limit: Maximum number of distinct names to consider.
            semantic: Allow the semantic matcher to supplement results.
                Autocomplete passes False to stay within its deadline.
        """
        limit = limit or self.config.default_limit
        cap = self.config.max_choices
        candidates: List[ResolvedCandidate] = []
        for name in self.match_names(query, limit, semantic=semantic):
            for location in self._preferred_variants(name):
                candidates.extend(self._expand(location, start_rank=len(candidates)))
                if len(candidates) >= cap:
                    return candidates[:cap]
        return candidates

    def _preferred_variants(self, name: str) -> List[Location]:
        variants = self.locations.find_by_name(name)
        multi = [loc for loc in variants if loc.is_multi_point]
        return multi or variants

    def _expand(self, location: Location, start_rank: int) -> List[ResolvedCandidate]:
        if not location.is_multi_point:
            return [
                ResolvedCandidate(
                    name=location.name,
                    location_id=location.id,
                    rank=start_rank,
                )
            ]
        count = location.point_count
        expanded = [
            ResolvedCandidate(
                name=location.name,
                location_id=location.id,
                coordinate_index=WILDCARD,
                is_multi_point=True,
                point_count=count,
                rank=start_rank,
            )
        ]
        for index in range(count):
            expanded.append(
                ResolvedCandidate(
                    name=location.name,
                    location_id=location.id,
                    coordinate_index=index,
                    is_multi_point=True,
                    point_count=count,
                    rank=start_rank + index + 1,
                )
            )
        return expanded

    def find_target(self, selection: str) -> Tuple[Location, CoordinateIndex]:
        """Resolve a selection string to a location and point index.

        Exact names win, then the best direct match, then the semantic
        matcher as a last resort.

        Raises:
            NotFoundError: If nothing matches.
            ValidationError: If the point index is out of range.
        """
        parsed = parse_selection(selection)
        location = self._first_location([parsed.name] + rank_direct(parsed.name, self.names()))
        if location is None:
            location = self._semantic_location(parsed.name)
        if location is None:
            raise NotFoundError(
                f"No location named '{parsed.name}' was found.",
                entity="location",
                key=parsed.name,
            )

        index = parsed.index
        if not location.is_multi_point and index in (WILDCARD, 0):
            index = None
        if isinstance(index, int):
            check_index(location.coordinates, index)
        return location, index

    def find_near_match(self, name: str) -> Optional[Location]:
        """Existing entry a proposed new name probably refers to, if any."""
        return self._first_location(rank_direct(name, self.names())) or self._semantic_location(
            name
        )

    def _semantic_location(self, name: str) -> Optional[Location]:
        if not name.strip():
            return None
        return self._first_location(self._semantic_matches(name, self.names(), (), 1))

    def _first_location(self, names: Sequence[str]) -> Optional[Location]:
        # The cached name list can lag behind the store.
        for name in names:
            variants = self._preferred_variants(name)
            if variants:
                return variants[0]
        return None
