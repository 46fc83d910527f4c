"""
================================================================================
GameShelf v1.0 - Metadata Package
================================================================================
Providers for the external knowledge bases and the value types they produce.

Components:
  - models.py - Candidate / RankedResult and provenance records
  - errors.py - Failure kinds raised inside providers
  - infobox.py - Wikipedia infobox extraction
  - providers/ - Wikidata (primary) and Wikipedia (fallback)
================================================================================
"""

from .models import (
    Attribution,
    Candidate,
    DataCompleteness,
    DataSource,
    GameSource,
    RankedResult,
    SearchMetadata,
)
from .errors import MetadataError, SourceUnavailable, NoMatch, MalformedUpstreamData

__all__ = [
    'Attribution', 'Candidate', 'DataCompleteness', 'DataSource', 'GameSource',
    'RankedResult', 'SearchMetadata',
    'MetadataError', 'SourceUnavailable', 'NoMatch', 'MalformedUpstreamData',
]
