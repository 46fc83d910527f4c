"""
================================================================================
GameShelf v1.0 - Search Package
================================================================================
Multi-source game search with merge, dedup and ranking.

Components:
  - scoring.py - Confidence / completeness scores and the quality gate
  - reconciler.py - Cross-source merge, dedup and ranking
  - cache.py - Search result caching (5 minute TTL)
  - orchestrator.py - Wikidata first, Wikipedia fallback, cache
================================================================================
"""

from .cache import SearchCache
from .scoring import ConfidenceScorer
from .reconciler import ResultReconciler
from .orchestrator import SearchOrchestrator, get_search_orchestrator

__all__ = [
    'SearchCache', 'ConfidenceScorer', 'ResultReconciler',
    'SearchOrchestrator', 'get_search_orchestrator',
]
