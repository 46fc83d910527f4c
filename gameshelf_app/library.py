"""
================================================================================
GameShelf v1.0 - Game Library
================================================================================
The user's game collection: an in-memory list of game records with optional
JSON file persistence.

Records are plain dicts. A search result added here keeps everything the
search pipeline attached to it (data_source, attribution, store links,
search_metadata), plus a user_metadata block the user edits afterwards.
================================================================================
"""

import os
import json
import time
import random
import string
import threading
from copy import deepcopy
from typing import Dict, List, Optional, Any, Union

from .log import log
from .metadata.models import Candidate, empty_store_links


class InvalidGameError(ValueError):
    """Game record without a title."""


class DuplicateGameError(ValueError):
    """Same title and platforms already in the collection."""


class GameNotFoundError(KeyError):
    """No game with the given id."""


COMPLETION_STATUSES = ('not_started', 'playing', 'completed', 'dropped', 'wishlist')

# Keys the library manages itself; never copied from incoming data
_MANAGED_KEYS = ('id', 'rank', 'user_metadata')


def generate_game_id() -> str:
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"game_{int(time.time() * 1000)}_{suffix}"


def default_user_metadata(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    overrides = overrides or {}
    return {
        'rating': overrides.get('rating') or 0,
        'notes': overrides.get('notes') or '',
        'completion_status': overrides.get('completion_status') or 'not_started',
        'date_added': time.time(),
        'play_time': overrides.get('play_time') or 0,
        'tags': list(overrides.get('tags') or []),
        'favorite': bool(overrides.get('favorite', False)),
    }


def _platform_key(platforms) -> List[str]:
    return sorted(platforms or [])


class GameLibrary:
    """Manages the user's game collection, optionally backed by a JSON file."""

    def __init__(self, filepath: Optional[str] = None):
        """
        Args:
            filepath: JSON file to persist to (None keeps everything in memory)
        """
        self.filepath = filepath
        self._lock = threading.RLock()
        self._games: List[Dict[str, Any]] = []
        self._last_updated: Optional[float] = None

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def load(self) -> int:
        """
        Replace the in-memory collection with the file's contents.

        A missing or unreadable file leaves an empty collection.

        Returns:
            Number of games loaded
        """
        with self._lock:
            self._games = []
            if not self.filepath or not os.path.exists(self.filepath):
                return 0
            try:
                with open(self.filepath, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                log(f"⚠️ Could not read game library {self.filepath}: {e}")
                return 0

            games = data.get('games') if isinstance(data, dict) else None
            if not isinstance(games, list):
                return 0

            for game in games:
                if not isinstance(game, dict) or not game.get('title'):
                    continue
                game.setdefault('id', generate_game_id())
                game['user_metadata'] = {
                    **default_user_metadata(game.get('user_metadata')),
                    **(game.get('user_metadata') or {}),
                }
                self._games.append(game)

            self._last_updated = data.get('metadata', {}).get('last_updated')
            return len(self._games)

    def save(self) -> None:
        """Write the collection to the file (no-op without a filepath)."""
        with self._lock:
            if not self.filepath:
                return
            directory = os.path.dirname(self.filepath)
            if directory:
                os.makedirs(directory, exist_ok=True)
            data = {'games': self._games, 'metadata': self.statistics()}
            with open(self.filepath, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=4, ensure_ascii=False)

    def _touch(self):
        self._last_updated = time.time()
        self.save()

    # =========================================================================
    # CRUD
    # =========================================================================

    def add_game(self, game: Union[Candidate, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Add a search result (or a hand-written record) to the collection.

        Args:
            game: Candidate/RankedResult or a dict in Candidate.to_dict() shape

        Returns:
            The stored record

        Raises:
            InvalidGameError: No title
            DuplicateGameError: Same title and platforms already stored
        """
        if isinstance(game, Candidate):
            wikidata_id = game.wikidata_id
            data = game.to_dict()
            data['wikidata_id'] = wikidata_id
        else:
            data = deepcopy(dict(game))

        title = (data.get('title') or '').strip()
        if not title:
            raise InvalidGameError('Game title is required')

        with self._lock:
            platforms = _platform_key(data.get('platforms'))
            for existing in self._games:
                if (existing['title'].lower() == title.lower()
                        and _platform_key(existing.get('platforms')) == platforms):
                    raise DuplicateGameError(f"'{title}' already exists in your collection")

            record = {k: v for k, v in data.items() if k not in _MANAGED_KEYS}
            record['id'] = generate_game_id()
            record['title'] = title
            record.setdefault('wikidata_id', None)
            record['platforms'] = list(data.get('platforms') or [])
            record['genre'] = list(data.get('genre') or [])
            record['official_store_links'] = data.get('official_store_links') or empty_store_links()
            if not record.get('data_source'):
                record['data_source'] = {
                    'primary': 'manual',
                    'fallback': None,
                    'attribution': None,
                    'last_updated': time.time(),
                }
            record['user_metadata'] = default_user_metadata(data.get('user_metadata'))

            self._games.append(record)
            self._touch()

        log(f"🎮 Added to library: {title}")
        return record

    def get_game(self, game_id: str) -> Dict[str, Any]:
        """Raises GameNotFoundError for unknown ids."""
        with self._lock:
            for game in self._games:
                if game['id'] == game_id:
                    return game
        raise GameNotFoundError(game_id)

    def update_game(self, game_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply updates to a stored game.

        user_metadata and data_source are merged key by key; every other key
        is replaced. The id cannot be changed.
        """
        with self._lock:
            game = self.get_game(game_id)
            for key, value in updates.items():
                if key == 'id':
                    continue
                if key == 'user_metadata':
                    status = value.get('completion_status')
                    if status is not None and status not in COMPLETION_STATUSES:
                        raise InvalidGameError(f"Unknown completion status: {status}")
                    game['user_metadata'] = {**game.get('user_metadata', {}), **value}
                elif key == 'data_source':
                    game['data_source'] = {**(game.get('data_source') or {}), **value}
                    game['data_source']['last_updated'] = time.time()
                else:
                    game[key] = value
            self._touch()
            return game

    def remove_game(self, game_id: str) -> None:
        with self._lock:
            game = self.get_game(game_id)
            self._games.remove(game)
            self._touch()
        log(f"🗑️ Removed from library: {game['title']}")

    def list_games(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._games)

    def find_games(self, query: str) -> List[Dict[str, Any]]:
        """Games whose title, developer or publisher contains the query."""
        needle = (query or '').lower().strip()
        if not needle:
            return self.list_games()

        def matches(game: Dict[str, Any]) -> bool:
            fields = (game.get('title'), game.get('developer'), game.get('publisher'))
            return any(value and needle in value.lower() for value in fields)

        with self._lock:
            return [game for game in self._games if matches(game)]

    def statistics(self) -> Dict[str, Any]:
        """Collection totals, split by the source each record came from."""
        with self._lock:
            primaries = [(g.get('data_source') or {}).get('primary') for g in self._games]
            return {
                'total_games': len(self._games),
                'manually_added': primaries.count('manual'),
                'imported_from_wikidata': primaries.count('wikidata'),
                'imported_from_wikipedia': primaries.count('wikipedia'),
                'last_updated': self._last_updated,
            }

    def __len__(self) -> int:
        return len(self._games)
