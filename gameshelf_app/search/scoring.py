"""
Confidence and completeness scoring for search candidates.

Completeness is the share of an 8-field checklist that is filled in.
Confidence mixes title match, completeness and source-specific signals:

  Wikidata:  exact title 0.5 / substring 0.3, completeness x 0.3,
             entity id present 0.2
  Wikipedia: exact title 0.4 / substring 0.25, completeness x 0.25,
             attribution link 0.15, description over 50 chars 0.2

Both are capped at 1.0.
"""

from dataclasses import replace
from typing import List, Sequence
import time

from ..metadata.models import Candidate, GameSource, SearchMetadata


# "Good enough to skip the fallback" thresholds
GOOD_CONFIDENCE = 0.7
GOOD_COMPLETENESS = 0.5


class ConfidenceScorer:
    """Scores how well a Candidate answers a query."""

    def completeness(self, candidate: Candidate) -> float:
        fields = [
            candidate.title,
            candidate.release_date,
            candidate.developer,
            candidate.publisher,
            bool(candidate.platforms),
            bool(candidate.genre),
            candidate.cover_image,
            candidate.description,
        ]
        return sum(1 for item in fields if item) / len(fields)

    @staticmethod
    def _title_match(candidate: Candidate, query: str) -> str:
        """'exact', 'partial' or '' for the candidate title against the query."""
        query_lower = query.lower()
        title_lower = (candidate.title or '').lower()

        if title_lower == query_lower:
            return 'exact'
        if title_lower and (query_lower in title_lower or title_lower in query_lower):
            return 'partial'
        return ''

    def score_wikidata(self, candidate: Candidate, query: str) -> float:
        confidence = 0.0

        match = self._title_match(candidate, query)
        if match == 'exact':
            confidence += 0.5
        elif match == 'partial':
            confidence += 0.3

        confidence += self.completeness(candidate) * 0.3

        if candidate.source_id:
            confidence += 0.2

        return min(confidence, 1.0)

    def score_wikipedia(self, candidate: Candidate, query: str) -> float:
        confidence = 0.0

        match = self._title_match(candidate, query)
        if match == 'exact':
            confidence += 0.4  # Slightly lower than Wikidata for exact match
        elif match == 'partial':
            confidence += 0.25

        confidence += self.completeness(candidate) * 0.25

        if candidate.data_source and candidate.data_source.attribution:
            confidence += 0.15

        if candidate.description and len(candidate.description) > 50:
            confidence += 0.2

        return min(confidence, 1.0)

    def score(self, candidate: Candidate, query: str) -> float:
        """Confidence in [0, 1], using the rules of the candidate's source."""
        if candidate.source == GameSource.WIKIPEDIA:
            return self.score_wikipedia(candidate, query)
        return self.score_wikidata(candidate, query)

    def annotate(self, candidates: Sequence[Candidate], query: str) -> List[Candidate]:
        """
        Copies of the candidates carrying SearchMetadata for this query.

        Args:
            candidates: Provider output
            query: Normalized search query

        Returns:
            New Candidate instances; the inputs are left untouched
        """
        now = time.time()
        return [
            replace(
                candidate,
                search_metadata=SearchMetadata(
                    source=candidate.source.value,
                    query=query,
                    confidence=self.score(candidate, query),
                    timestamp=now
                )
            )
            for candidate in candidates
        ]

    def has_good_quality(self, candidates: Sequence[Candidate]) -> bool:
        """True when at least one candidate is both confident and complete."""
        return any(
            candidate.confidence > GOOD_CONFIDENCE
            and self.completeness(candidate) > GOOD_COMPLETENESS
            for candidate in candidates
        )
