# Load environment variables FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

from .metadata.models import Candidate, RankedResult, GameSource
from .search.orchestrator import SearchOrchestrator, get_search_orchestrator
from .library import GameLibrary

__version__ = "1.0.0"

__all__ = [
    'Candidate', 'RankedResult', 'GameSource',
    'SearchOrchestrator', 'get_search_orchestrator',
    'GameLibrary',
]
