"""
================================================================================
GameShelf v1.0 - Wikidata Provider
================================================================================
SPARQL client for the Wikidata Query Service.

Wikidata Features:
  - Structured, CC0 data (no attribution required)
  - Entity IDs (Q-numbers) that stay stable across renames
  - Release date (P577), platform (P400), developer (P178), publisher (P123),
    genre (P136), image (P18), official website (P856)

A SPARQL SELECT returns one row per combination of multi-valued properties,
so a game on 3 platforms with 2 genres comes back as 6 rows. Rows are grouped
per entity and the multi-valued properties are accumulated.

Endpoint: https://query.wikidata.org/sparql
================================================================================
"""

from typing import List, Optional, Dict, Iterable
from urllib.parse import urlparse
from datetime import datetime
import logging
import re

from .base import BaseMetadataProvider
from ... import config
from ..errors import NoMatch, MalformedUpstreamData
from ..models import Candidate, GameSource, DataSource, empty_store_links

logger = logging.getLogger(__name__)


ENTITY_PREFIX = "http://www.wikidata.org/entity/"

QID_RE = re.compile(r'^Q\d+$')

# Common platform name normalizations
PLATFORM_MAPPINGS = {
    'Microsoft Windows': 'PC',
    'Windows': 'PC',
    'Steam': 'PC',
    'Epic Games Store': 'PC',
    'Xbox Series X and Series S': 'Xbox Series X/S',
}

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.gif', '.webp', '.svg')

# Store detection for deep-linking (first match per store wins)
STORE_PATTERNS = {
    'steam': re.compile(r'store\.steampowered\.com', re.I),
    'playstation': re.compile(r'store\.playstation\.com', re.I),
    'nintendo': re.compile(r'(nintendo\.com|nintendo\.co\.jp)', re.I),
    'xbox': re.compile(r'microsoft\.com.*xbox', re.I),
    'epic': re.compile(r'store\.epicgames\.com', re.I),
    'gog': re.compile(r'gog\.com', re.I),
}


# =============================================================================
# VALUE HELPERS
# =============================================================================

def binding_value(binding: Optional[dict]) -> Optional[str]:
    """Extract the value from a SPARQL binding cell."""
    if binding and binding.get('value'):
        return binding['value']
    return None


def parse_wikidata_date(raw: Optional[str]) -> Optional[str]:
    """
    Normalize a Wikidata time value to YYYY-MM-DD.

    Wikidata prefixes times with a sign ("+2017-03-03T00:00:00Z"). Values
    that cannot be parsed (e.g. month precision "+2017-03-00...") give None.
    """
    if not raw:
        return None

    clean = raw.strip().lstrip('+')
    if clean.startswith('-'):  # BCE dates never describe a video game
        return None
    clean = clean.replace('Z', '+00:00')

    try:
        return datetime.fromisoformat(clean).date().isoformat()
    except ValueError:
        pass

    try:
        return datetime.strptime(clean[:10], '%Y-%m-%d').date().isoformat()
    except ValueError:
        logger.debug(f"Unparseable Wikidata date: {raw}")
        return None


def normalize_platform(platform: str) -> str:
    return PLATFORM_MAPPINGS.get(platform, platform)


def is_valid_image_url(url: Optional[str]) -> bool:
    """https URL whose path carries a recognised image extension."""
    if not url:
        return False
    parsed = urlparse(url)
    path = parsed.path.lower()
    return parsed.scheme == 'https' and any(ext in path for ext in IMAGE_EXTENSIONS)


def secure_commons_url(url: Optional[str]) -> Optional[str]:
    """Query service image values use http://commons...; Commons serves them over https."""
    if url and url.startswith('http://commons.wikimedia.org/'):
        return 'https://' + url[len('http://'):]
    return url


def generate_thumbnail_url(image_url: Optional[str]) -> Optional[str]:
    """300px thumbnail for images hosted on Wikimedia Commons."""
    if image_url and 'commons.wikimedia.org' in image_url:
        filename = image_url.rstrip('/').split('/')[-1]
        return image_url.replace('/commons/', '/commons/thumb/') + '/300px-' + filename
    return image_url


def detect_store_type(url: str) -> Optional[str]:
    for store, pattern in STORE_PATTERNS.items():
        if pattern.search(url):
            return store
    return None


def _ordered_unique(values: Iterable[Optional[str]]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in values:
        if value and value.strip():
            seen.setdefault(value.strip(), None)
    return list(seen)


# =============================================================================
# PROVIDER
# =============================================================================

class WikidataProvider(BaseMetadataProvider):
    """
    Wikidata Query Service provider.

    Primary search tier: fast, structured, and usually complete enough
    that the Wikipedia fallback is never needed.
    """

    id = "wikidata"
    name = "Wikidata"
    rate_limit = 60
    accept = "application/sparql-results+json"

    # Label service languages
    languages = "en,ja"

    SEARCH_QUERY = """
SELECT DISTINCT ?game ?gameLabel ?releaseDate ?platformLabel ?developerLabel ?publisherLabel ?genreLabel ?image ?officialWebsite ?wikidataId WHERE {{
    ?game wdt:P31 wd:Q7889 .  # Instance of video game

    # Search by label (case-insensitive)
    ?game rdfs:label ?label .
    FILTER(CONTAINS(LCASE(?label), LCASE("{title}")))

    OPTIONAL {{ ?game wdt:P577 ?releaseDate . }}
    OPTIONAL {{ ?game wdt:P400 ?platform . }}
    OPTIONAL {{ ?game wdt:P178 ?developer . }}
    OPTIONAL {{ ?game wdt:P123 ?publisher . }}
    OPTIONAL {{ ?game wdt:P136 ?genre . }}
    OPTIONAL {{ ?game wdt:P18 ?image . }}
    OPTIONAL {{ ?game wdt:P856 ?officialWebsite . }}

    BIND(STRAFTER(STR(?game), "{prefix}") AS ?wikidataId)

    SERVICE wikibase:label {{
        bd:serviceParam wikibase:language "{languages}" .
    }}
}}
ORDER BY ?gameLabel
LIMIT {limit}
"""

    DETAIL_QUERY = """
SELECT ?game ?gameLabel ?releaseDate ?platformLabel ?developerLabel ?publisherLabel ?genreLabel ?image ?officialWebsite ?description ?wikidataId WHERE {{
    BIND(wd:{qid} AS ?game)
    ?game wdt:P31 wd:Q7889 .  # Verify it's a video game

    OPTIONAL {{ ?game wdt:P577 ?releaseDate . }}
    OPTIONAL {{ ?game wdt:P400 ?platform . }}
    OPTIONAL {{ ?game wdt:P178 ?developer . }}
    OPTIONAL {{ ?game wdt:P123 ?publisher . }}
    OPTIONAL {{ ?game wdt:P136 ?genre . }}
    OPTIONAL {{ ?game wdt:P18 ?image . }}
    OPTIONAL {{ ?game wdt:P856 ?officialWebsite . }}
    OPTIONAL {{ ?game schema:description ?description . FILTER(LANG(?description) = "en") }}

    BIND("{qid}" AS ?wikidataId)

    SERVICE wikibase:label {{
        bd:serviceParam wikibase:language "{languages}" .
    }}
}}
"""

    def __init__(self, *args, endpoint: Optional[str] = None, limit: int = 20, **kwargs):
        super().__init__(*args, **kwargs)
        self.base_url = endpoint or config.WIKIDATA_SPARQL_URL
        self.limit = limit

    # =========================================================================
    # QUERIES
    # =========================================================================

    def build_search_query(self, title: str) -> str:
        escaped = title.replace('\\', '\\\\').replace('"', '\\"')
        return self.SEARCH_QUERY.format(
            title=escaped,
            prefix=ENTITY_PREFIX,
            languages=self.languages,
            limit=self.limit
        ).strip()

    def build_detail_query(self, wikidata_id: str) -> str:
        return self.DETAIL_QUERY.format(qid=wikidata_id, languages=self.languages).strip()

    async def _run_query(self, query: str) -> List[dict]:
        response = await self._request(
            "GET",
            self.base_url,
            params={'query': query, 'format': 'json'}
        )
        try:
            bindings = response['results']['bindings']
        except (KeyError, TypeError) as e:
            raise MalformedUpstreamData(self.id, "response has no results.bindings") from e
        if not isinstance(bindings, list):
            raise MalformedUpstreamData(self.id, "results.bindings is not a list")
        return bindings

    async def search_games(self, title: str) -> List[Candidate]:
        """
        Search Wikidata for video games whose label contains the title.

        Args:
            title: Game title

        Returns:
            One Candidate per matching entity
        """
        bindings = await self._run_query(self.build_search_query(title))
        if not bindings:
            raise NoMatch(self.id, f"no video game labels contain '{title}'")

        candidates = self.parse_bindings(bindings)
        logger.info(f"{self.id}: {len(candidates)} games from {len(bindings)} rows for '{title}'")
        return candidates

    async def get_by_id(self, wikidata_id: str) -> Optional[Candidate]:
        """
        Get a single game by Q-number (includes the English description).

        Args:
            wikidata_id: Wikidata entity ID, e.g. "Q22101565"

        Returns:
            Candidate or None
        """
        if not wikidata_id or not QID_RE.match(wikidata_id):
            logger.warning(f"{self.id}: Invalid entity ID '{wikidata_id}'")
            return None

        try:
            bindings = await self._run_query(self.build_detail_query(wikidata_id))
        except Exception as e:
            logger.error(f"{self.id}: Get by ID failed for '{wikidata_id}': {e}")
            return None

        candidates = self.parse_bindings(bindings)
        return candidates[0] if candidates else None

    # =========================================================================
    # PARSING
    # =========================================================================

    def parse_bindings(self, bindings: List[dict]) -> List[Candidate]:
        """
        Group SPARQL rows by entity and build one Candidate per game.

        Rows without an entity id, or whose label is missing (the label
        service falls back to the bare Q-number), are dropped.
        """
        grouped: Dict[str, List[dict]] = {}
        for binding in bindings:
            wikidata_id = binding_value(binding.get('wikidataId'))
            if not wikidata_id or not binding_value(binding.get('game')):
                continue
            grouped.setdefault(wikidata_id, []).append(binding)

        candidates = []
        for wikidata_id, rows in grouped.items():
            candidate = self._parse_game(wikidata_id, rows)
            if candidate is None:
                logger.debug(f"{self.id}: Dropped {wikidata_id} (no label)")
                continue
            candidates.append(self.add_fallback_indicators(candidate))
        return candidates

    def _parse_game(self, wikidata_id: str, rows: List[dict]) -> Optional[Candidate]:
        first = rows[0]

        title = binding_value(first.get('gameLabel'))
        if not title or not title.strip() or title == wikidata_id:
            return None

        def collect(key: str) -> List[str]:
            return _ordered_unique(binding_value(row.get(key)) for row in rows)

        platforms = _ordered_unique(normalize_platform(p) for p in collect('platformLabel'))
        developers = collect('developerLabel')
        publishers = collect('publisherLabel')
        genres = collect('genreLabel')

        release_date = None
        for raw in collect('releaseDate'):
            release_date = parse_wikidata_date(raw)
            if release_date:
                break
        release_year = int(release_date[:4]) if release_date else None

        cover_image = None
        for image in (secure_commons_url(i) for i in collect('image')):
            if is_valid_image_url(image):
                cover_image = image
                break
            logger.debug(f"{self.id}: Rejected image URL for {wikidata_id}: {image}")

        websites = collect('officialWebsite')
        store_links = empty_store_links()
        for website in websites:
            store = detect_store_type(website)
            if store and not store_links[store]:
                store_links[store] = website

        return Candidate(
            id=wikidata_id,
            title=title.strip(),
            source=GameSource.WIKIDATA,
            source_id=wikidata_id,
            platforms=platforms,
            release_date=release_date,
            release_year=release_year,
            developer=developers[0] if developers else None,
            publisher=publishers[0] if publishers else None,
            developers=developers,
            publishers=publishers,
            genre=genres,
            cover_image=cover_image,
            cover_image_thumbnail=generate_thumbnail_url(cover_image),
            description=binding_value(first.get('description')),
            official_websites=websites,
            official_store_links=store_links,
            data_source=DataSource(
                primary=GameSource.WIKIDATA.value,
                wikidata_id=wikidata_id
            )
        )
