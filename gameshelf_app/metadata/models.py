"""
================================================================================
GameShelf v1.0 - Metadata Models
================================================================================
Value types shared by the search pipeline.

  - Candidate      one provider's proposed record for a search query
  - RankedResult   a Candidate after merge, dedup and ordering
  - DataSource / Attribution / SearchMetadata   provenance carried with both

Candidates are passed between components by value: anything that needs a
changed copy uses dataclasses.replace() instead of mutating the original.
================================================================================
"""

from dataclasses import dataclass, field, replace, asdict
from typing import Optional, List, Dict
from enum import Enum
import time


# =============================================================================
# ENUMS
# =============================================================================

class GameSource(str, Enum):
    """Knowledge base a Candidate came from."""
    WIKIDATA = "wikidata"
    WIKIPEDIA = "wikipedia"


# Stores recognised in official-website links
STORE_NAMES = ('steam', 'playstation', 'nintendo', 'xbox', 'epic', 'gog')


def empty_store_links() -> Dict[str, Optional[str]]:
    return {store: None for store in STORE_NAMES}


# =============================================================================
# PROVENANCE
# =============================================================================

@dataclass
class Attribution:
    """CC BY-SA attribution for reused encyclopedia content."""
    text: str
    url: Optional[str]
    license: str = "CC BY-SA 3.0"
    license_url: str = "https://creativecommons.org/licenses/by-sa/3.0/"


@dataclass
class DataSource:
    """Where a record's data came from."""
    primary: str  # "wikidata" or "wikipedia"
    wikidata_id: Optional[str] = None
    attribution: Optional[str] = None  # Article URL (Wikipedia records)
    fallback: Optional[str] = None  # Set when a second source enhanced the record
    wikipedia_attribution: Optional[Attribution] = None
    last_updated: float = field(default_factory=time.time)


@dataclass
class SearchMetadata:
    """Scoring context attached by the orchestrator."""
    source: str
    query: str
    confidence: float = 0.0
    timestamp: float = field(default_factory=time.time)
    enhanced_with_wikipedia: bool = False


@dataclass
class DataCompleteness:
    """Field presence flags computed by the providers."""
    has_title: bool = False
    has_release_date: bool = False
    has_platforms: bool = False
    has_developer: bool = False
    has_publisher: bool = False
    has_cover_image: bool = False
    has_store_links: bool = False
    completeness_score: int = 0  # 0-100


# =============================================================================
# CANDIDATE
# =============================================================================

@dataclass
class Candidate:
    """
    A game record proposed by one metadata provider.

    Absence semantics: optional scalars are None, collections are empty.
    release_date is an ISO day string when it could be parsed; Wikipedia
    records may keep the raw infobox text when no date pattern matched.
    """

    id: str
    title: str
    source: GameSource

    # Wikidata Q-number or Wikipedia page title
    source_id: Optional[str] = None

    # =========================================================================
    # DESCRIPTIVE FIELDS
    # =========================================================================

    platforms: List[str] = field(default_factory=list)
    release_date: Optional[str] = None
    release_year: Optional[int] = None

    developer: Optional[str] = None  # Primary developer
    publisher: Optional[str] = None  # Primary publisher
    developers: List[str] = field(default_factory=list)
    publishers: List[str] = field(default_factory=list)

    genre: List[str] = field(default_factory=list)

    cover_image: Optional[str] = None
    cover_image_thumbnail: Optional[str] = None

    description: Optional[str] = None

    official_websites: List[str] = field(default_factory=list)
    official_store_links: Dict[str, Optional[str]] = field(default_factory=empty_store_links)

    # Infobox extras (Wikipedia)
    series: Optional[str] = None
    engine: Optional[str] = None
    modes: List[str] = field(default_factory=list)
    credits: Dict[str, str] = field(default_factory=dict)
    # Example: {'director': 'Hidemaro Fujibayashi', 'composer': 'Manaka Kataoka'}

    # =========================================================================
    # PROVENANCE
    # =========================================================================

    data_source: Optional[DataSource] = None
    attribution: Optional[Attribution] = None
    search_metadata: Optional[SearchMetadata] = None

    data_completeness: Optional[DataCompleteness] = None
    fallback_needed: Dict[str, bool] = field(default_factory=dict)

    @property
    def confidence(self) -> float:
        return self.search_metadata.confidence if self.search_metadata else 0.0

    @property
    def wikidata_id(self) -> Optional[str]:
        if self.source == GameSource.WIKIDATA:
            return self.source_id
        return self.data_source.wikidata_id if self.data_source else None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data['source'] = self.source.value
        return data


@dataclass
class RankedResult(Candidate):
    """A Candidate in its final position (1-based) of a search result list."""

    rank: int = 0

    @classmethod
    def from_candidate(cls, candidate: Candidate, rank: int) -> 'RankedResult':
        if isinstance(candidate, RankedResult):
            return replace(candidate, rank=rank)
        values = {name: getattr(candidate, name) for name in candidate.__dataclass_fields__}
        return cls(rank=rank, **values)
