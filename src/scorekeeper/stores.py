"""
Persistence collaborators for ratings and matches.

The core only talks to the two protocols below. In-memory implementations
back the tests; the YAML implementations keep data in the data directory and
guard every read-modify-write with a file lock.
"""
import logging
import os
from typing import Dict, Iterable, List, Optional, Protocol

import yaml
from filelock import FileLock

from .errors import MatchNotFound
from .models import Match, PlayerRatingStats

logger = logging.getLogger(__name__)

LOCK_TIMEOUT = 10


class PlayerRatingStore(Protocol):
    def fetch_all(self) -> Dict[str, PlayerRatingStats]:
        ...

    def fetch(self, player_id: str) -> Optional[PlayerRatingStats]:
        ...

    def persist(self, player_id: str, stats: PlayerRatingStats) -> bool:
        ...


class MatchStore(Protocol):
    def persist_batch(self, matches: List[Match]):
        ...

    def fetch_by_id(self, match_id: str) -> Match:
        ...

    def fetch_tournament(self, tournament_id: str) -> List[Match]:
        ...

    def save(self, match: Match):
        ...

    def save_many(self, matches: Iterable[Match]):
        ...


class InMemoryPlayerRatingStore:
    def __init__(self, players: Optional[Dict[str, PlayerRatingStats]] = None):
        self._players: Dict[str, PlayerRatingStats] = {
            player_id: stats.copy() for player_id, stats in (players or {}).items()
        }

    def fetch_all(self) -> Dict[str, PlayerRatingStats]:
        return {player_id: stats.copy() for player_id, stats in self._players.items()}

    def fetch(self, player_id: str) -> Optional[PlayerRatingStats]:
        stats = self._players.get(player_id)
        return stats.copy() if stats is not None else None

    def persist(self, player_id: str, stats: PlayerRatingStats) -> bool:
        self._players[player_id] = stats.copy()
        return True


class InMemoryMatchStore:
    def __init__(self):
        self._tournaments: Dict[str, List[str]] = {}
        self._matches: Dict[str, Match] = {}

    def persist_batch(self, matches: List[Match]):
        for match in matches:
            self._tournaments.setdefault(match.tournament_id, []).append(match.id)
            self._matches[match.id] = match.copy()

    def fetch_by_id(self, match_id: str) -> Match:
        match = self._matches.get(match_id)
        if match is None:
            raise MatchNotFound(match_id)
        return match.copy()

    def fetch_tournament(self, tournament_id: str) -> List[Match]:
        return [self._matches[match_id].copy() for match_id in self._tournaments.get(tournament_id, [])]

    def save(self, match: Match):
        if match.id not in self._matches:
            raise MatchNotFound(match.id)
        self._matches[match.id] = match.copy()

    def save_many(self, matches: Iterable[Match]):
        matches = list(matches)
        for match in matches:
            if match.id not in self._matches:
                raise MatchNotFound(match.id)
        for match in matches:
            self._matches[match.id] = match.copy()


def _read_yaml(path: str) -> Dict:
    if not os.path.exists(path):
        return {}
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    return data or {}


def _write_yaml(path: str, data: Dict):
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


class YamlPlayerRatingStore:
    """Ratings in a YAML file: ``{players: {id: {rating, games_played, ...}}}``."""

    def __init__(self, path: str, initial_rating: float = 1200.0):
        self.path = path
        self.initial_rating = initial_rating
        self._lock = FileLock(f"{path}.lock", timeout=LOCK_TIMEOUT)

    def _load_players(self) -> Dict[str, Dict]:
        return _read_yaml(self.path).get('players') or {}

    def fetch_all(self) -> Dict[str, PlayerRatingStats]:
        try:
            with self._lock:
                players = self._load_players()
        except yaml.YAMLError as e:
            logger.warning(f"Failed to parse {self.path}: {e}")
            return {}
        return {
            str(player_id): PlayerRatingStats.from_dict(data, self.initial_rating)
            for player_id, data in players.items()
        }

    def fetch(self, player_id: str) -> Optional[PlayerRatingStats]:
        return self.fetch_all().get(player_id)

    def persist(self, player_id: str, stats: PlayerRatingStats) -> bool:
        with self._lock:
            try:
                players = self._load_players()
            except yaml.YAMLError as e:
                logger.warning(f"Not saving rating for {player_id}, failed to parse {self.path}: {e}")
                return False
            players[player_id] = stats.to_dict()
            _write_yaml(self.path, {'players': players})
        return True


class YamlMatchStore:
    """Matches in a YAML file: ``{tournaments: {tournament_id: [match, ...]}}``."""

    def __init__(self, path: str):
        self.path = path
        self._lock = FileLock(f"{path}.lock", timeout=LOCK_TIMEOUT)

    def _load(self) -> Dict[str, List[Dict]]:
        return _read_yaml(self.path).get('tournaments') or {}

    def _dump(self, tournaments: Dict[str, List[Dict]]):
        _write_yaml(self.path, {'tournaments': tournaments})

    def persist_batch(self, matches: List[Match]):
        with self._lock:
            tournaments = self._load()
            for match in matches:
                tournaments.setdefault(match.tournament_id, []).append(match.to_dict())
            self._dump(tournaments)

    def fetch_by_id(self, match_id: str) -> Match:
        with self._lock:
            tournaments = self._load()
        for matches in tournaments.values():
            for data in matches:
                if data.get('id') == match_id:
                    return Match.from_dict(data)
        raise MatchNotFound(match_id)

    def fetch_tournament(self, tournament_id: str) -> List[Match]:
        with self._lock:
            tournaments = self._load()
        return [Match.from_dict(data) for data in tournaments.get(tournament_id, [])]

    def save(self, match: Match):
        self.save_many([match])

    def save_many(self, matches: Iterable[Match]):
        with self._lock:
            tournaments = self._load()
            for match in matches:
                stored = tournaments.get(match.tournament_id, [])
                index = next((i for i, data in enumerate(stored) if data.get('id') == match.id), None)
                if index is None:
                    raise MatchNotFound(match.id)
                stored[index] = match.to_dict()
            self._dump(tournaments)
