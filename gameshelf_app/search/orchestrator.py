"""
================================================================================
GameShelf v1.0 - Search Orchestrator
================================================================================
Tiered game search: Wikidata first, Wikipedia only when needed.

Flow:
  1. Reject queries shorter than 2 characters
  2. Return a cached result list if one is younger than 5 minutes
  3. Query Wikidata and score every candidate
  4. Good enough (confidence > 0.7 and completeness > 0.5)? Rank and return
  5. Otherwise query Wikipedia, merge into the Wikidata results, rank
  6. Cache whatever came out (including an empty list)

If the Wikidata call itself blows up, Wikipedia is tried on its own; if that
fails too the search returns [] without caching. search() never raises.

Usage:
    async with SearchOrchestrator() as orchestrator:
        results = await orchestrator.search("Breath of the Wild")
================================================================================
"""

from typing import List, Optional, Dict, Any
import logging
import time

from .. import config
from ..log import log, debug_log_event
from ..metadata.models import Candidate, RankedResult
from ..metadata.providers.base import BaseMetadataProvider
from ..metadata.providers.wikidata import WikidataProvider
from ..metadata.providers.wikipedia import WikipediaProvider
from .cache import SearchCache
from .reconciler import ResultReconciler
from .scoring import ConfidenceScorer

logger = logging.getLogger(__name__)


MIN_QUERY_LENGTH = 2


class SearchOrchestrator:
    """
    Runs the primary/fallback search strategy and owns the result cache.
    """

    def __init__(
        self,
        primary: Optional[BaseMetadataProvider] = None,
        fallback: Optional[BaseMetadataProvider] = None,
        scorer: Optional[ConfidenceScorer] = None,
        reconciler: Optional[ResultReconciler] = None,
        cache: Optional[SearchCache] = None
    ):
        """
        Args:
            primary: Primary provider (default: Wikidata)
            fallback: Fallback provider (default: Wikipedia)
            scorer: Confidence scorer
            reconciler: Merge/rank component
            cache: Result cache (default: 5 minute TTL)
        """
        self.primary = primary if primary is not None else WikidataProvider()
        self.fallback = fallback if fallback is not None else WikipediaProvider()
        self.scorer = scorer or ConfidenceScorer()
        self.reconciler = reconciler or ResultReconciler(self.scorer, max_results=config.MAX_RESULTS)
        self.cache = cache if cache is not None else SearchCache()

        self._searches = 0
        self._fallback_searches = 0

    async def __aenter__(self) -> 'SearchOrchestrator':
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        """Close provider HTTP clients."""
        for provider in (self.primary, self.fallback):
            close = getattr(provider, 'close', None)
            if close:
                await close()

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search(self, query: str) -> List[RankedResult]:
        """
        Search both knowledge bases for a game title.

        Args:
            query: What the user typed

        Returns:
            Up to 10 ranked results, best first ([] for short queries or
            when both sources fail)
        """
        if not query or len(query.strip()) < MIN_QUERY_LENGTH:
            return []

        normalized = query.strip()

        cached = self.cache.get(normalized)
        if cached is not None:
            logger.info(f"Cache HIT for query '{normalized}' ({len(cached)} results)")
            return cached

        logger.info(f"Cache MISS - searching for '{normalized}'")
        self._searches += 1
        start_time = time.time()

        primary_count = 0
        fallback_count = 0

        try:
            primary_results = await self._execute_primary(normalized)
        except Exception as e:
            logger.error(f"Search failed: {e}")

            # Try the fallback as a last resort
            try:
                fallback_results = await self._execute_fallback(normalized)
            except Exception as fallback_error:
                logger.error(f"Fallback search also failed: {fallback_error}")
                self._record(normalized, 'both_failed', 0, 0, 0, start_time)
                return []

            fallback_count = len(fallback_results)
            results = self.reconciler.rank_and_deduplicate(fallback_results)
            path = 'fallback_only'
        else:
            primary_count = len(primary_results)

            if primary_results and self.scorer.has_good_quality(primary_results):
                results = self.reconciler.rank_and_deduplicate(primary_results)
                path = 'primary'
            else:
                log(f"Wikidata results insufficient for '{normalized}', falling back to Wikipedia")
                try:
                    fallback_results = await self._execute_fallback(normalized)
                except Exception as e:
                    logger.warning(f"Wikipedia fallback search failed: {e}")
                    fallback_results = []

                fallback_count = len(fallback_results)
                merged = self.reconciler.merge(primary_results, fallback_results)
                results = self.reconciler.rank_and_deduplicate(merged)
                path = 'merged'

        self.cache.set(normalized, results)
        self._record(normalized, path, primary_count, fallback_count, len(results), start_time)
        return results

    def _usable(self, candidates: Optional[List[Candidate]]) -> List[Candidate]:
        return [c for c in (candidates or []) if c.title and c.title.strip()]

    async def _execute_primary(self, query: str) -> List[Candidate]:
        """Primary provider results, scored. Exceptions propagate."""
        candidates = self._usable(await self.primary.fetch(query))
        return self.scorer.annotate(candidates, query)

    async def _execute_fallback(self, query: str) -> List[Candidate]:
        """Fallback provider results, scored. Exceptions propagate."""
        if self.fallback is None:
            return []
        self._fallback_searches += 1
        candidates = self._usable(await self.fallback.fetch(query))
        return self.scorer.annotate(candidates, query)

    def _record(
        self,
        query: str,
        path: str,
        primary_count: int,
        fallback_count: int,
        result_count: int,
        start_time: float
    ):
        elapsed_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Search '{query}' completed via {path}: {result_count} results in {elapsed_ms}ms"
        )
        debug_log_event({
            'event': 'search',
            'query': query,
            'path': path,
            'primary_count': primary_count,
            'fallback_count': fallback_count,
            'result_count': result_count,
            'elapsed_ms': elapsed_ms,
        })

    # =========================================================================
    # CACHE MANAGEMENT
    # =========================================================================

    def clear_cache(self):
        """Clear all cached results."""
        self.cache.clear()

    def get_search_statistics(self) -> Dict[str, Any]:
        """Cache and search counters."""
        stats = self.cache.stats()
        return {
            'cache_size': stats['size'],
            'cache_timeout': self.cache.ttl,
            'cache_hits': stats['hits'],
            'cache_misses': stats['misses'],
            'cache_hit_rate': stats['hit_rate'],
            'searches': self._searches,
            'fallback_searches': self._fallback_searches,
        }


# =============================================================================
# GLOBAL SINGLETON
# =============================================================================

_orchestrator: Optional[SearchOrchestrator] = None


def get_search_orchestrator() -> SearchOrchestrator:
    """Get or create the global SearchOrchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = SearchOrchestrator()
    return _orchestrator
