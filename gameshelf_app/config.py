"""
Runtime settings read from the environment.

A `.env` file in the working directory is loaded by the package on import
(see gameshelf_app/__init__.py), so every value below can be set there too.
"""

import os

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes', 'on')


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


# Logging
LOG_DIR = os.environ.get('GAMESHELF_LOG_DIR', os.path.join(BASE_DIR, 'instance'))
DEBUG_LOGGING = _env_bool('DEBUG_LOGGING', 'true')

# HTTP
HTTP_TIMEOUT = _env_float('GAMESHELF_HTTP_TIMEOUT', 10.0)
USER_AGENT = os.environ.get(
    'GAMESHELF_USER_AGENT',
    'GameShelf/1.0 (https://github.com/gameshelf/gameshelf)'
)

# Upstream endpoints
WIKIDATA_SPARQL_URL = os.environ.get('WIKIDATA_SPARQL_URL', 'https://query.wikidata.org/sparql')
WIKIPEDIA_API_URL = os.environ.get('WIKIPEDIA_API_URL', 'https://en.wikipedia.org/w/api.php')

# Search
SEARCH_CACHE_TTL = _env_int('GAMESHELF_SEARCH_CACHE_TTL', 5 * 60)  # 5 minutes
SEARCH_CACHE_SIZE = _env_int('GAMESHELF_SEARCH_CACHE_SIZE', 1000)
MAX_RESULTS = _env_int('GAMESHELF_MAX_RESULTS', 10)
