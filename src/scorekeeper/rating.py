"""
Elo rating engine with tiered K-factor and a daily movement cap.

Implements:
- Expected score: E = 1 / (1 + 10^((R_loser - R_winner) / scale))
- Rating update: R_new = R_old + K * (S - E), K picked by games played
- Daily clamp: the total movement of one player within a calendar day never
  exceeds ``max_daily_delta`` in either direction
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional, Union

from .errors import UnknownPlayer
from .models import PlayerRatingStats, RatingUpdate

logger = logging.getLogger(__name__)

MatchDate = Union[date, datetime, str]


@dataclass
class RatingOptions:
    initial_rating: float = 1200.0
    k_newbie: float = 32.0
    k_intermediate: float = 16.0
    k_veteran: float = 8.0
    newbie_threshold: int = 30
    veteran_threshold: int = 90
    max_daily_delta: float = 100.0
    scale: float = 400.0


def day_key(match_date: MatchDate) -> str:
    """Calendar day of a match as 'YYYY-MM-DD'."""
    if isinstance(match_date, datetime):
        return match_date.date().isoformat()
    if isinstance(match_date, date):
        return match_date.isoformat()
    return date.fromisoformat(str(match_date).strip()[:10]).isoformat()


def check_match_date(match_date: MatchDate) -> str:
    """Day key of a match, rejecting dates after today."""
    if match_date is None:
        raise ValueError("Match date is required")
    day = day_key(match_date)
    if day > date.today().isoformat():
        raise ValueError(f"Wrong date specified: {day} is in the future")
    return day


class RatingEngine:
    """
    In-memory rating state for every known player.

    The optional ``store`` is the PlayerRatingStore collaborator: it seeds the
    engine (``load_from_store``), resolves players the engine has not seen yet,
    and receives both updated stats after every rated match.
    """

    def __init__(self, store=None, options: Optional[RatingOptions] = None):
        self.store = store
        self.options = options or RatingOptions()
        self._players: Dict[str, PlayerRatingStats] = {}

    # -- player management --------------------------------------------------

    def ensure_player(self, player_id: str) -> PlayerRatingStats:
        if player_id not in self._players:
            self._players[player_id] = PlayerRatingStats(rating=self.options.initial_rating)
        return self._players[player_id]

    def load(self, stats_by_id: Dict[str, Union[PlayerRatingStats, Dict]]):
        """Replace the engine state with a snapshot."""
        self._players.clear()
        for player_id, stats in stats_by_id.items():
            if isinstance(stats, PlayerRatingStats):
                self._players[player_id] = stats.copy()
            else:
                self._players[player_id] = PlayerRatingStats.from_dict(stats, self.options.initial_rating)

    def load_from_store(self) -> int:
        if self.store is None:
            raise RuntimeError("RatingEngine has no PlayerRatingStore to load from")
        self.load(self.store.fetch_all())
        logger.info(f"Rating engine loaded {len(self._players)} players")
        return len(self._players)

    def has_player(self, player_id: str) -> bool:
        return player_id in self._players

    def player_count(self) -> int:
        return len(self._players)

    def get_player_stats(self, player_id: str) -> Optional[PlayerRatingStats]:
        stats = self._players.get(player_id)
        return stats.copy() if stats is not None else None

    def get_rating(self, player_id: str) -> float:
        return self.ensure_player(player_id).rating

    def freeze(self) -> Dict[str, PlayerRatingStats]:
        return {player_id: stats.copy() for player_id, stats in self._players.items()}

    def get_leaderboard(self) -> List[Dict]:
        """Players sorted by rating, highest first; ties keep insertion order."""
        entries = [{'id': player_id, 'stats': stats.copy()} for player_id, stats in self._players.items()]
        return sorted(entries, key=lambda entry: -entry['stats'].rating)

    def get_top_players(self, limit: int = 10) -> List[Dict]:
        return self.get_leaderboard()[:limit]

    # -- formula ------------------------------------------------------------

    def k_factor(self, games_played: int) -> float:
        if games_played < self.options.newbie_threshold:
            return self.options.k_newbie
        if games_played < self.options.veteran_threshold:
            return self.options.k_intermediate
        return self.options.k_veteran

    def expected_score(self, rating: float, opponent_rating: float) -> float:
        return 1.0 / (1.0 + 10 ** ((opponent_rating - rating) / self.options.scale))

    def _clamp(self, stats: PlayerRatingStats, delta: float) -> float:
        cap = self.options.max_daily_delta
        clamped = max(-cap - stats.daily_delta, min(cap - stats.daily_delta, delta))
        # never flip the direction of a result, only shrink it
        if delta >= 0:
            return max(0.0, clamped)
        return min(0.0, clamped)

    # -- updates ------------------------------------------------------------

    def _lookup(self, player_id: str) -> PlayerRatingStats:
        stats = self._players.get(player_id)
        if stats is not None:
            return stats
        if self.store is not None:
            stored = self.store.fetch(player_id)
            if stored is not None:
                return stored
        raise UnknownPlayer(player_id)

    def update_after_match(self, winner_id: str, loser_id: str, match_date: MatchDate) -> Optional[RatingUpdate]:
        """
        Rate one completed match.

        Returns the update, or None when either player cannot be resolved, in
        which case nothing is changed and nothing is persisted.
        """
        if winner_id == loser_id:
            raise ValueError(f"Player {winner_id} cannot play against themselves")
        day = check_match_date(match_date)
        try:
            winner = self._lookup(winner_id).copy()
            loser = self._lookup(loser_id).copy()
        except UnknownPlayer as e:
            logger.warning(f"Rating update skipped for {winner_id} vs {loser_id}: {e}")
            return None

        for stats in (winner, loser):
            if stats.last_match_day != day:
                stats.daily_delta = 0.0
                stats.last_match_day = day

        expected_winner = self.expected_score(winner.rating, loser.rating)
        winner_delta = self._clamp(winner, self.k_factor(winner.games_played) * (1.0 - expected_winner))
        loser_delta = self._clamp(loser, self.k_factor(loser.games_played) * (0.0 - (1.0 - expected_winner)))

        for stats, delta in ((winner, winner_delta), (loser, loser_delta)):
            stats.rating += delta
            stats.daily_delta += delta
            stats.games_played += 1

        self._players[winner_id] = winner
        self._players[loser_id] = loser

        results = [self._persist(winner_id, winner), self._persist(loser_id, loser)]
        logger.info(f"Rated {winner_id} ({winner_delta:+.1f}) vs {loser_id} ({loser_delta:+.1f})")
        return RatingUpdate(
            winner_id=winner_id,
            loser_id=loser_id,
            winner=winner.copy(),
            loser=loser.copy(),
            winner_delta=winner_delta,
            loser_delta=loser_delta,
            expected_winner=expected_winner,
            persisted=all(results),
        )

    def _persist(self, player_id: str, stats: PlayerRatingStats) -> bool:
        if self.store is None:
            return True
        if not self.store.persist(player_id, stats.copy()):
            logger.warning(f"Failed to persist rating for {player_id}")
            return False
        return True
