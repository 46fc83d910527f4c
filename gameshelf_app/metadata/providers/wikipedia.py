"""
================================================================================
GameShelf v1.0 - Wikipedia Provider
================================================================================
Fallback provider using the MediaWiki action API.

Used when Wikidata results are missing or too thin. Yields at most one
Candidate per search: the best-scoring article for "<title> video game".

Flow:
  1. list=search for the title (main namespace, top 10 hits)
  2. Score hits by title match and game keywords in the snippet
  3. Fetch the lead extract / image / URL and the raw wikitext in parallel
  4. Parse the infobox out of the wikitext (see metadata/infobox.py)

Wikipedia text is CC BY-SA: every Candidate carries an Attribution.

API Docs: https://www.mediawiki.org/wiki/API:Main_page
================================================================================
"""

from typing import List, Optional, Dict
import asyncio
import logging
import random
import re
import string
import time

from bs4 import BeautifulSoup

from .base import BaseMetadataProvider
from ... import config
from ..errors import NoMatch, MalformedUpstreamData, SourceUnavailable
from ..infobox import parse_infobox, CREDIT_FIELDS
from ..models import Candidate, GameSource, DataSource, Attribution, empty_store_links
from .wikidata import is_valid_image_url, generate_thumbnail_url, detect_store_type

logger = logging.getLogger(__name__)


GAME_KEYWORDS = ['video game', 'game', 'developed', 'published', 'platform', 'console']

WHITESPACE_RE = re.compile(r'\s+')


def html_to_text(markup: Optional[str]) -> str:
    """Plain text from a MediaWiki HTML fragment (snippets, extracts)."""
    if not markup:
        return ''
    text = BeautifulSoup(markup, 'html.parser').get_text()
    return WHITESPACE_RE.sub(' ', text).strip()


def generate_result_id() -> str:
    """Unique id for records that have no stable upstream identifier."""
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"search_{int(time.time() * 1000)}_{suffix}"


def score_search_hit(query: str, hit_title: str, snippet: str) -> int:
    """
    Relevance of one search hit.

    +100 exact title match, +50 when either title contains the other,
    +10 per game keyword found in the snippet.
    """
    query_lower = query.lower().strip()
    title_lower = (hit_title or '').lower().strip()
    snippet_lower = html_to_text(snippet).lower()

    score = 0
    if title_lower and title_lower == query_lower:
        score += 100
    if title_lower and query_lower and (query_lower in title_lower or title_lower in query_lower):
        score += 50
    for keyword in GAME_KEYWORDS:
        if keyword in snippet_lower:
            score += 10
    return score


class WikipediaProvider(BaseMetadataProvider):
    """
    MediaWiki API provider (English Wikipedia).

    Three requests per search: search, page content, wikitext.
    """

    id = "wikipedia"
    name = "Wikipedia"
    rate_limit = 200

    search_limit = 10

    def __init__(self, *args, api_url: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.base_url = api_url or config.WIKIPEDIA_API_URL

    # =========================================================================
    # API CALLS
    # =========================================================================

    async def _query(self, params: Dict) -> Dict:
        response = await self._request(
            "GET",
            self.base_url,
            params={'action': 'query', 'format': 'json', **params}
        )
        if not isinstance(response, dict):
            raise MalformedUpstreamData(self.id, "response is not an object")
        if 'error' in response:
            info = response['error'].get('info', 'unknown error')
            raise SourceUnavailable(self.id, f"API error: {info}")
        return response

    def _single_page(self, response: Dict, page_title: str) -> Dict:
        pages = (response.get('query') or {}).get('pages')
        if not pages:
            raise MalformedUpstreamData(self.id, f"no page data returned for '{page_title}'")

        # formatversion=1 returns {pageid: page}, formatversion=2 a list
        page = pages[0] if isinstance(pages, list) else next(iter(pages.values()))
        if 'missing' in page:
            raise NoMatch(self.id, f"page '{page_title}' not found")
        return page

    async def search_pages(self, title: str) -> List[Dict]:
        """
        Full-text search for game articles.

        Returns:
            Search hits ({'title', 'snippet', ...}), best first
        """
        response = await self._query({
            'list': 'search',
            'srsearch': f"{title} video game",
            'srlimit': self.search_limit,
            'srnamespace': 0,  # Main namespace only
        })
        return (response.get('query') or {}).get('search') or []

    async def get_page_content(self, page_title: str) -> Dict:
        """Lead extract (plain text), original image and canonical URL."""
        response = await self._query({
            'titles': page_title,
            'prop': 'extracts|pageimages|info',
            'exintro': 1,
            'piprop': 'original',
            'inprop': 'url',
        })
        page = self._single_page(response, page_title)

        return {
            'title': page.get('title') or page_title,
            'extract': html_to_text(page.get('extract')),
            'image': (page.get('original') or {}).get('source'),
            'url': page.get('fullurl'),
            'page_id': page.get('pageid'),
        }

    async def get_page_wikitext(self, page_title: str) -> str:
        """Raw wikitext of the current revision."""
        response = await self._query({
            'titles': page_title,
            'prop': 'revisions',
            'rvprop': 'content',
            'rvslots': 'main',
        })
        page = self._single_page(response, page_title)

        revisions = page.get('revisions') or [{}]
        main = (revisions[0].get('slots') or {}).get('main') or {}
        content = main.get('*') or main.get('content')
        if not content:
            raise MalformedUpstreamData(self.id, f"no wikitext for '{page_title}'")
        return content

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def find_game_page(self, title: str) -> Optional[Dict]:
        """
        Best-scoring search hit for the title, or None when every hit scores 0.
        """
        hits = await self.search_pages(title)
        if not hits:
            return None

        scored = [
            (score_search_hit(title, hit.get('title', ''), hit.get('snippet', '')), index, hit)
            for index, hit in enumerate(hits)
        ]
        # Highest score first, search rank breaks ties
        scored.sort(key=lambda item: (-item[0], item[1]))

        best_score, _, best_hit = scored[0]
        logger.debug(f"{self.id}: Best hit for '{title}': {best_hit.get('title')} (score={best_score})")
        return best_hit if best_score > 0 else None

    async def search_games(self, title: str) -> List[Candidate]:
        """
        Find the best article for a game title and extract its metadata.

        Args:
            title: Game title

        Returns:
            A single-element list with the extracted Candidate
        """
        page_hit = await self.find_game_page(title)
        if not page_hit:
            raise NoMatch(self.id, f"no relevant article for '{title}'")

        page_title = page_hit['title']
        content, wikitext = await asyncio.gather(
            self.get_page_content(page_title),
            self.get_page_wikitext(page_title),
            return_exceptions=True
        )

        if isinstance(content, BaseException):
            raise content

        if isinstance(wikitext, BaseException):
            logger.warning(f"{self.id}: Wikitext unavailable for '{page_title}': {wikitext}")
            infobox = {}
        else:
            infobox = parse_infobox(wikitext)

        if not infobox:
            logger.info(f"{self.id}: No infobox data for '{page_title}', using page summary only")

        return [self.add_fallback_indicators(self.map_to_candidate(infobox, content))]

    # =========================================================================
    # MAPPING
    # =========================================================================

    def map_to_candidate(self, infobox: Dict, page: Dict) -> Candidate:
        """
        Build a Candidate from parsed infobox fields plus page data.

        Args:
            infobox: Output of parse_infobox()
            page: Output of get_page_content()
        """
        title = infobox.get('title') or page.get('title') or ''
        url = page.get('url')

        developer = infobox.get('developer') or None
        publisher = infobox.get('publisher') or None
        release_date = infobox.get('release_date') or None

        year_match = re.search(r'\d{4}', release_date) if release_date else None

        credits = {
            role: infobox[role]
            for role in CREDIT_FIELDS
            if infobox.get(role)
        }

        cover_image = page.get('image')
        if cover_image and not is_valid_image_url(cover_image):
            logger.debug(f"{self.id}: Rejected image URL for {page.get('title')}: {cover_image}")
            cover_image = None

        # Infobox links like [https://x Official site] clean down to their label
        websites = [
            w for w in (infobox.get('website') or '').split(', ')
            if w.startswith(('http://', 'https://'))
        ]
        store_links = empty_store_links()
        for website in websites:
            store = detect_store_type(website)
            if store and not store_links[store]:
                store_links[store] = website

        return Candidate(
            id=generate_result_id(),
            title=title,
            source=GameSource.WIKIPEDIA,
            source_id=page.get('title'),
            platforms=list(infobox.get('platforms') or []),
            release_date=release_date,
            release_year=int(year_match.group(0)) if year_match else None,
            developer=developer,
            publisher=publisher,
            developers=developer.split(', ') if developer else [],
            publishers=publisher.split(', ') if publisher else [],
            genre=list(infobox.get('genre') or []),
            cover_image=cover_image or None,
            cover_image_thumbnail=generate_thumbnail_url(cover_image) if cover_image else None,
            description=page.get('extract') or None,
            official_websites=websites,
            official_store_links=store_links,
            series=infobox.get('series') or None,
            engine=infobox.get('engine') or None,
            modes=list(infobox.get('modes') or []),
            credits=credits,
            data_source=DataSource(
                primary=GameSource.WIKIPEDIA.value,
                attribution=url
            ),
            attribution=self.generate_attribution(url, title)
        )

    @staticmethod
    def generate_attribution(url: Optional[str], title: str) -> Attribution:
        """Attribution for CC BY-SA compliance."""
        return Attribution(
            text=f'Information about "{title}" from Wikipedia',
            url=url
        )
