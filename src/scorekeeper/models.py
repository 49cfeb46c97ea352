"""
Data models for bracket matches and player rating statistics.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional


class Bracket(str, Enum):
    WINNERS = 'winners'
    LOSERS = 'losers'
    GRAND_FINAL = 'grand_final'


class MatchStatus(str, Enum):
    PENDING = 'pending'
    COMPLETED = 'completed'
    VOID = 'void'  # never contested: untriggered if-game or a losers match fed only by byes


@dataclass
class Match:
    """A single node of the bracket graph.

    ``next_match_id`` is where the winner goes, ``loser_next_match_id`` where
    the loser goes (double elimination winners bracket only).
    """
    id: str
    tournament_id: str
    bracket: Bracket
    round: int
    player1_id: Optional[str] = None
    player2_id: Optional[str] = None
    status: MatchStatus = MatchStatus.PENDING
    winner_id: Optional[str] = None
    next_match_id: Optional[str] = None
    loser_next_match_id: Optional[str] = None
    is_if_game: bool = False
    match_number: int = 1
    match_code: str = ''

    @property
    def players(self) -> List[str]:
        return [p for p in (self.player1_id, self.player2_id) if p is not None]

    @property
    def is_bye(self) -> bool:
        """Completed with a single competitor (round-1 bye or losers walkover)."""
        return self.status == MatchStatus.COMPLETED and len(self.players) == 1

    @property
    def loser_id(self) -> Optional[str]:
        if self.status != MatchStatus.COMPLETED or self.is_bye:
            return None
        return self.player2_id if self.winner_id == self.player1_id else self.player1_id

    @property
    def is_playable(self) -> bool:
        return self.status == MatchStatus.PENDING and len(self.players) == 2

    def copy(self) -> 'Match':
        return replace(self)

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'bracket': self.bracket.value,
            'round': self.round,
            'match_number': self.match_number,
            'match_code': self.match_code,
            'player1_id': self.player1_id,
            'player2_id': self.player2_id,
            'status': self.status.value,
            'winner_id': self.winner_id,
            'next_match_id': self.next_match_id,
            'loser_next_match_id': self.loser_next_match_id,
            'is_if_game': self.is_if_game,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Match':
        return cls(
            id=data['id'],
            tournament_id=data['tournament_id'],
            bracket=Bracket(data['bracket']),
            round=int(data['round']),
            player1_id=data.get('player1_id'),
            player2_id=data.get('player2_id'),
            status=MatchStatus(data.get('status', MatchStatus.PENDING.value)),
            winner_id=data.get('winner_id'),
            next_match_id=data.get('next_match_id'),
            loser_next_match_id=data.get('loser_next_match_id'),
            is_if_game=bool(data.get('is_if_game', False)),
            match_number=int(data.get('match_number', 1)),
            match_code=data.get('match_code', ''),
        )


@dataclass
class PlayerRatingStats:
    rating: float = 1200.0
    games_played: int = 0
    daily_delta: float = 0.0
    last_match_day: str = ''

    def copy(self) -> 'PlayerRatingStats':
        return replace(self)

    def to_dict(self) -> Dict:
        return {
            'rating': self.rating,
            'games_played': self.games_played,
            'daily_delta': self.daily_delta,
            'last_match_day': self.last_match_day,
        }

    @classmethod
    def from_dict(cls, data: Dict, initial_rating: float = 1200.0) -> 'PlayerRatingStats':
        rating = data.get('rating')
        return cls(
            rating=float(initial_rating if rating is None else rating),
            games_played=int(data.get('games_played') or 0),
            daily_delta=float(data.get('daily_delta') or 0.0),
            last_match_day=str(data.get('last_match_day') or ''),
        )


@dataclass
class RatingUpdate:
    """Outcome of one rated match."""
    winner_id: str
    loser_id: str
    winner: PlayerRatingStats
    loser: PlayerRatingStats
    winner_delta: float
    loser_delta: float
    expected_winner: float
    persisted: bool = field(default=True)

    def to_dict(self) -> Dict:
        return {
            'winner_id': self.winner_id,
            'loser_id': self.loser_id,
            'winner': self.winner.to_dict(),
            'loser': self.loser.to_dict(),
            'winner_delta': self.winner_delta,
            'loser_delta': self.loser_delta,
            'expected_winner': self.expected_winner,
            'persisted': self.persisted,
        }
