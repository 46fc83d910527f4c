from .base import BaseMetadataProvider, RateLimiter
from .wikidata import WikidataProvider
from .wikipedia import WikipediaProvider

__all__ = ['BaseMetadataProvider', 'RateLimiter', 'WikidataProvider', 'WikipediaProvider']
