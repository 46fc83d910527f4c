"""
================================================================================
GameShelf v1.0 - Base Metadata Provider
================================================================================
Abstract base class for the external knowledge bases we search:
  - Wikidata (SPARQL)
  - Wikipedia (MediaWiki action API)

Providers implement search_games(), which may raise the errors in
metadata/errors.py. Callers use fetch(), which never raises: every failure is
logged and turned into an empty result list.
================================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from typing import List, Optional, Dict
import time
import asyncio
import logging

import httpx

from ... import config
from ..errors import MetadataError, SourceUnavailable, NoMatch, MalformedUpstreamData
from ..models import Candidate, DataCompleteness


logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Minimum-interval rate limiter for API requests.

    Keeps us polite towards the public endpoints:
      - Wikidata Query Service: 60/min
      - MediaWiki API: 200/min
    """

    def __init__(self, requests_per_minute: int):
        """
        Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests allowed per minute (0 = unlimited)
        """
        self.requests_per_minute = requests_per_minute
        self.min_interval = 60.0 / requests_per_minute if requests_per_minute > 0 else 0.0
        self.last_request = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self):
        """Wait until a request slot is available."""
        if not self.min_interval:
            return

        async with self._lock:
            now = time.time()
            time_since_last = now - self.last_request

            if time_since_last < self.min_interval:
                wait_time = self.min_interval - time_since_last
                logger.debug(f"Rate limit: waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)

            self.last_request = time.time()


class BaseMetadataProvider(ABC):
    """
    Abstract base class for metadata providers.

    Providers handle:
      - Rate limiting
      - Retries on 429 / 5xx / transport errors
      - Response parsing to Candidate
      - Completeness flags for the scorer
    """

    # Provider identification
    id: str = "base"
    name: str = "Base Provider"

    # API configuration
    base_url: str = ""

    # Rate limiting (requests per minute)
    rate_limit: int = 60

    # Retry configuration
    max_retries: int = 3
    retry_delay: float = 1.0

    # Response format
    accept: str = "application/json"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        rate_limit: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None
    ):
        """
        Initialize provider with rate limiter and HTTP client.

        Args:
            client: Pre-built HTTP client (tests inject one with a mock transport)
            rate_limit: Override for requests per minute (0 disables limiting)
            max_retries: Override for attempts per request
            retry_delay: Override for base delay between attempts (seconds)
        """
        if rate_limit is not None:
            self.rate_limit = rate_limit
        if max_retries is not None:
            self.max_retries = max_retries
        if retry_delay is not None:
            self.retry_delay = retry_delay

        self.timeout = config.HTTP_TIMEOUT
        self.user_agent = config.USER_AGENT
        self.rate_limiter = RateLimiter(self.rate_limit)
        self._client: Optional[httpx.AsyncClient] = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={
                    'User-Agent': self.user_agent,
                    'Accept': self.accept
                }
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        url: str,
        **kwargs
    ) -> Dict:
        """
        Make rate-limited HTTP request with retries.

        Args:
            method: HTTP method (GET, POST)
            url: Full URL
            **kwargs: Additional arguments for httpx

        Returns:
            JSON response as dict

        Raises:
            SourceUnavailable: On request failure after retries
            MalformedUpstreamData: If the body is not JSON
        """
        client = await self._get_client()
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                # Rate limit
                await self.rate_limiter.acquire()

                # Make request
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()

            except httpx.HTTPStatusError as e:
                last_error = e
                status = e.response.status_code
                if attempt < self.max_retries - 1:
                    if status == 429:  # Rate limited
                        wait_time = self.retry_delay * (2 ** attempt)  # Exponential backoff
                        logger.warning(f"{self.id}: Rate limited (429), waiting {wait_time}s")
                        await asyncio.sleep(wait_time)
                        continue
                    if status >= 500:  # Server error
                        logger.warning(
                            f"{self.id}: Server error ({status}), "
                            f"retry {attempt + 1}/{self.max_retries}"
                        )
                        await asyncio.sleep(self.retry_delay)
                        continue
                raise SourceUnavailable(self.id, f"HTTP {status} from {url}") from e

            except httpx.RequestError as e:
                last_error = e
                if attempt < self.max_retries - 1:
                    logger.warning(
                        f"{self.id}: Request error ({e}), "
                        f"retry {attempt + 1}/{self.max_retries}"
                    )
                    await asyncio.sleep(self.retry_delay)
                    continue
                raise SourceUnavailable(self.id, f"request to {url} failed: {e}") from e

            try:
                return response.json()
            except ValueError as e:
                raise MalformedUpstreamData(self.id, f"invalid JSON from {url}") from e

        raise SourceUnavailable(self.id, f"max retries exceeded ({last_error})")

    # =========================================================================
    # ABSTRACT METHODS (must be implemented by providers)
    # =========================================================================

    @abstractmethod
    async def search_games(self, title: str) -> List[Candidate]:
        """
        Search the knowledge base for games matching a title.

        May raise SourceUnavailable, NoMatch or MalformedUpstreamData.
        """
        pass

    # =========================================================================
    # PUBLIC ENTRY POINT
    # =========================================================================

    async def fetch(self, title: str) -> List[Candidate]:
        """
        Search by title without ever raising.

        Args:
            title: Game title to search for

        Returns:
            Candidates with a usable title (empty on any failure)
        """
        try:
            candidates = await self.search_games(title)
        except NoMatch as e:
            logger.info(f"No match: {e}")
            return []
        except MalformedUpstreamData as e:
            logger.warning(f"Malformed upstream data: {e}")
            return []
        except SourceUnavailable as e:
            logger.error(f"Source unavailable: {e}")
            return []
        except MetadataError as e:
            logger.error(f"{self.id}: Search failed for '{title}': {e}")
            return []
        except Exception as e:
            logger.error(f"{self.id}: Unexpected search failure for '{title}': {e}")
            return []

        usable = [c for c in candidates if c.title and c.title.strip()]
        if len(usable) < len(candidates):
            logger.debug(f"{self.id}: Discarded {len(candidates) - len(usable)} untitled candidates")
        return usable

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    @staticmethod
    def add_fallback_indicators(candidate: Candidate) -> Candidate:
        """
        Attach field-presence flags used by the scorer and the UI.

        Returns:
            Copy of the candidate with data_completeness and fallback_needed set
        """
        checklist = [
            candidate.title,
            candidate.release_date,
            candidate.platforms,
            candidate.developer,
            candidate.publisher,
            candidate.cover_image,
            candidate.description,
            candidate.genre,
        ]
        score = round(sum(1 for item in checklist if item) / len(checklist) * 100)

        completeness = DataCompleteness(
            has_title=bool(candidate.title),
            has_release_date=bool(candidate.release_date),
            has_platforms=bool(candidate.platforms),
            has_developer=bool(candidate.developer),
            has_publisher=bool(candidate.publisher),
            has_cover_image=bool(candidate.cover_image),
            has_store_links=any(candidate.official_store_links.values()),
            completeness_score=score
        )
        fallback_needed = {
            'release_date': not candidate.release_date,
            'platforms': not candidate.platforms,
            'developer': not candidate.developer,
            'publisher': not candidate.publisher,
            'cover_image': not candidate.cover_image,
            'description': not candidate.description,
        }
        return replace(candidate, data_completeness=completeness, fallback_needed=fallback_needed)

    def __repr__(self):
        return f"<{self.__class__.__name__}(id='{self.id}', rate_limit={self.rate_limit}/min)>"
