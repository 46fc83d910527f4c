"""
================================================================================
GameShelf v1.0 - Result Reconciler
================================================================================
Merges Wikidata and Wikipedia candidates into one ranked list.

Problem:
  Searching "Doom" can return the same game from both sources, titled
  "DOOM" on one and "Doom" on the other.

Solution:
  1. A Wikipedia candidate similar to a Wikidata one enhances it
     (description, attribution, series, modes) instead of being listed
  2. Exact duplicates (title, release date, platforms) are dropped
  3. Remaining results are sorted by confidence, completeness, then source
  4. Top 10 are returned

Similarity is deliberately loose: equal titles, one title containing the
other, or the same release year on a shared platform. Short titles can
over-merge ("It" is contained in many titles).
================================================================================
"""

from dataclasses import replace
from functools import cmp_to_key
from typing import List, Optional, Sequence
import logging
import re

from ..metadata.models import Candidate, RankedResult, GameSource, DataSource, SearchMetadata
from .scoring import ConfidenceScorer

logger = logging.getLogger(__name__)


YEAR_RE = re.compile(r'(\d{4})')

# Score differences at or below this are treated as ties
TIE_BAND = 0.1

# Source preference for the final tie-break (lower = better)
SOURCE_PRIORITY = {
    GameSource.WIKIDATA: 1,
    GameSource.WIKIPEDIA: 2,
}


def extract_year(date_string: Optional[str]) -> Optional[int]:
    """First 4-digit run of a date string."""
    if not date_string:
        return None
    match = YEAR_RE.search(date_string)
    return int(match.group(1)) if match else None


class ResultReconciler:
    """
    Combines candidates from both sources into a deduplicated ranking.
    """

    def __init__(self, scorer: Optional[ConfidenceScorer] = None, max_results: int = 10):
        """
        Args:
            scorer: Completeness scorer used by the ranking
            max_results: Length cap of the ranked list
        """
        self.scorer = scorer or ConfidenceScorer()
        self.max_results = max_results

    # =========================================================================
    # SIMILARITY
    # =========================================================================

    def are_similar(self, first: Candidate, second: Candidate) -> bool:
        """
        Whether two candidates describe the same game.

        True on equal titles (case-insensitive, trimmed), when one title
        contains the other, or when both have the same release year and at
        least one platform in common.
        """
        title1 = (first.title or '').lower().strip()
        title2 = (second.title or '').lower().strip()

        if title1 == title2:
            return True

        if title1 in title2 or title2 in title1:
            return True

        year1 = extract_year(first.release_date)
        year2 = extract_year(second.release_date)

        if year1 and year2 and year1 == year2:
            platforms1 = {p.lower() for p in first.platforms}
            platforms2 = {p.lower() for p in second.platforms}
            if platforms1 & platforms2:
                return True

        return False

    # =========================================================================
    # MERGE
    # =========================================================================

    def enhance(self, primary: Candidate, secondary: Candidate) -> Candidate:
        """
        Copy of the primary candidate filled in from a similar secondary one.

        Fills a missing description, series and modes, records the
        secondary's attribution as a fallback source, and flags the result
        as enhanced.
        """
        updates = {}

        if not primary.description and secondary.description:
            updates['description'] = secondary.description

        if secondary.attribution or (secondary.data_source and secondary.data_source.attribution):
            data_source = primary.data_source or DataSource(primary=primary.source.value)
            updates['data_source'] = replace(
                data_source,
                fallback=secondary.source.value,
                wikipedia_attribution=secondary.attribution
            )

        if secondary.series and not primary.series:
            updates['series'] = secondary.series

        if secondary.modes and not primary.modes:
            updates['modes'] = list(secondary.modes)

        metadata = primary.search_metadata or SearchMetadata(
            source=primary.source.value,
            query=secondary.search_metadata.query if secondary.search_metadata else ''
        )
        updates['search_metadata'] = replace(metadata, enhanced_with_wikipedia=True)

        return replace(primary, **updates)

    def merge(
        self,
        primary: Sequence[Candidate],
        secondary: Sequence[Candidate]
    ) -> List[Candidate]:
        """
        Union of both candidate lists.

        A secondary candidate similar to a primary one is folded into the
        first such primary (see enhance()) and left out; the rest are
        appended after the primary candidates.

        Args:
            primary: Wikidata candidates
            secondary: Wikipedia candidates

        Returns:
            Merged, unranked list
        """
        merged = list(primary)
        appended: List[Candidate] = []

        for candidate in secondary:
            match_index = next(
                (i for i, existing in enumerate(primary) if self.are_similar(existing, candidate)),
                None
            )
            if match_index is None:
                appended.append(candidate)
                continue

            logger.debug(
                f"Enhancing '{merged[match_index].title}' with "
                f"{candidate.source.value} result '{candidate.title}'"
            )
            merged[match_index] = self.enhance(merged[match_index], candidate)

        return merged + appended

    # =========================================================================
    # RANKING
    # =========================================================================

    @staticmethod
    def dedup_key(candidate: Candidate) -> str:
        platforms = ','.join(sorted(candidate.platforms))
        return f"{candidate.title.lower()}_{candidate.release_date}_{platforms}"

    def remove_duplicates(self, candidates: Sequence[Candidate]) -> List[Candidate]:
        """Drop exact duplicates (title, release date, platforms); first one wins."""
        seen = set()
        unique = []
        for candidate in candidates:
            key = self.dedup_key(candidate)
            if key in seen:
                continue
            seen.add(key)
            unique.append(candidate)
        return unique

    def compare_tied(self, a: Candidate, b: Candidate) -> float:
        """
        Comparator for candidates whose confidence is tied.

        Completeness first (0.1 tie band), then Wikidata before Wikipedia.
        Negative when a ranks above b.
        """
        completeness_diff = self.scorer.completeness(b) - self.scorer.completeness(a)
        if abs(completeness_diff) > TIE_BAND:
            return completeness_diff

        return SOURCE_PRIORITY.get(a.source, 99) - SOURCE_PRIORITY.get(b.source, 99)

    def rank(self, candidates: Sequence[Candidate]) -> List[Candidate]:
        """
        Order candidates best first.

        Candidates are sorted by confidence and cut into tie groups: a group
        holds every candidate within 0.1 of the group's highest confidence.
        Each group is then ordered with compare_tied(). Adjacent results
        therefore never differ by more than 0.1 in the wrong direction.
        """
        by_confidence = sorted(candidates, key=lambda c: c.confidence, reverse=True)

        groups: List[List[Candidate]] = []
        for candidate in by_confidence:
            if groups and groups[-1][0].confidence - candidate.confidence <= TIE_BAND:
                groups[-1].append(candidate)
            else:
                groups.append([candidate])

        ordered: List[Candidate] = []
        for group in groups:
            ordered.extend(sorted(group, key=cmp_to_key(self.compare_tied)))
        return ordered

    def rank_and_deduplicate(self, candidates: Sequence[Candidate]) -> List[RankedResult]:
        """
        Final result list: deduplicated, ranked, truncated.

        Args:
            candidates: Merged candidates

        Returns:
            At most max_results RankedResults, best first
        """
        unique = self.remove_duplicates(candidates)
        ordered = self.rank(unique)

        results = [
            RankedResult.from_candidate(candidate, rank=position)
            for position, candidate in enumerate(ordered[:self.max_results], start=1)
        ]

        logger.debug(f"Ranked {len(candidates)} candidates into {len(results)} results")
        return results
