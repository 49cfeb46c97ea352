"""
Orchestration of the core: generate and persist a bracket, record a result,
advance it through the bracket and rate the two players.
"""
import logging
from datetime import date
from typing import Dict, List, Optional, Sequence

from .errors import TournamentExists, TournamentNotFound
from .formats import generate, index_by_round, parse_format
from .models import Match
from .progression import MatchGraph
from .rating import MatchDate, RatingEngine, check_match_date

logger = logging.getLogger(__name__)


class TournamentService:
    def __init__(self, match_store, rating_engine: Optional[RatingEngine] = None):
        self.match_store = match_store
        self.rating_engine = rating_engine

    def create_bracket(self, tournament_id: str, format, player_ids: Sequence[str]) -> List[Match]:
        """Generate and persist the bracket of a tournament.

        Nothing is persisted if generation fails. Players new to the rating
        engine are registered with the initial rating.
        """
        if self.match_store.fetch_tournament(tournament_id):
            raise TournamentExists(tournament_id)
        tournament_format = parse_format(format)
        matches = generate(tournament_format, tournament_id, player_ids)
        self._register_players(player_ids)
        self.match_store.persist_batch(matches)
        logger.info(f"Created {tournament_format.value} bracket {tournament_id} with {len(matches)} matches")
        return matches

    def _register_players(self, player_ids: Sequence[str]):
        engine = self.rating_engine
        if engine is None:
            return
        for player_id in player_ids:
            if engine.has_player(player_id):
                continue
            if engine.store is not None:
                stored = engine.store.fetch(player_id)
                if stored is not None:
                    continue
                engine.ensure_player(player_id)
                if not engine.store.persist(player_id, engine.get_player_stats(player_id)):
                    logger.warning(f"Failed to persist initial rating for {player_id}")
            else:
                engine.ensure_player(player_id)

    def load_graph(self, tournament_id: str) -> MatchGraph:
        matches = self.match_store.fetch_tournament(tournament_id)
        if not matches:
            raise TournamentNotFound(tournament_id)
        return MatchGraph(matches)

    def describe(self, tournament_id: str) -> Dict:
        graph = self.load_graph(tournament_id)
        matches = graph.to_list()
        return {
            'tournament_id': tournament_id,
            'matches': [m.to_dict() for m in matches],
            'rounds': {
                bracket.value: {str(round_num): [m.id for m in round_matches]
                                for round_num, round_matches in sorted(rounds.items())}
                for bracket, rounds in index_by_round(matches).items()
            },
            'playable': [m.id for m in graph.playable_matches()],
            'champion': graph.champion(),
            'complete': graph.is_complete(),
        }

    def record_result(self, match_id: str, winner_id: str, match_date: Optional[MatchDate] = None) -> Dict:
        """Record the winner of a match, persist the advancement and rate it."""
        match_date = check_match_date(match_date or date.today())
        match = self.match_store.fetch_by_id(match_id)
        graph = self.load_graph(match.tournament_id)
        changed = graph.record_result(match_id, winner_id)
        self.match_store.save_many(changed)

        recorded = changed[0]
        rating_update = None
        if self.rating_engine is not None:
            rating_update = self.rating_engine.update_after_match(
                recorded.winner_id, recorded.loser_id, match_date
            )
        return {
            'match': recorded,
            'changed': changed,
            'rating_update': rating_update,
            'champion': graph.champion(),
            'complete': graph.is_complete(),
        }
