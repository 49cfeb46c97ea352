"""
Tests for TournamentService orchestration.
"""
from datetime import date, timedelta

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from scorekeeper.errors import (
    InsufficientPlayers,
    InvalidResult,
    MatchNotFound,
    TournamentExists,
    TournamentNotFound,
)
from scorekeeper.models import MatchStatus, PlayerRatingStats
from scorekeeper.rating import RatingEngine
from scorekeeper.service import TournamentService


@pytest.fixture
def service(match_store, rating_engine):
    return TournamentService(match_store, rating_engine)


def first_playable(service, tournament_id):
    return service.load_graph(tournament_id).playable_matches()[0]


class TestCreateBracket:
    """Tests for TournamentService.create_bracket."""

    def test_persists_generated_matches(self, service, match_store, eight_players):
        matches = service.create_bracket('t1', 'double_elimination', eight_players)
        assert len(matches) == 15
        assert [m.id for m in match_store.fetch_tournament('t1')] == [m.id for m in matches]

    def test_registers_new_players(self, service, rating_store):
        service.create_bracket('t1', 'single', ['a', 'b', 'c'])
        assert set(rating_store.fetch_all()) == {'a', 'b', 'c'}
        assert rating_store.fetch('a').rating == 1200.0

    def test_known_players_not_reset(self, match_store, rating_store):
        rating_store.persist('a', PlayerRatingStats(rating=1500.0, games_played=12))
        rating_store.persist_calls.clear()
        service = TournamentService(match_store, RatingEngine(store=rating_store))
        service.create_bracket('t1', 'single', ['a', 'b'])
        assert rating_store.fetch('a').rating == 1500.0
        assert [player_id for player_id, _ in rating_store.persist_calls] == ['b']

    def test_existing_tournament_rejected(self, service, match_store):
        service.create_bracket('t1', 'single', ['a', 'b'])
        with pytest.raises(TournamentExists):
            service.create_bracket('t1', 'single', ['c', 'd'])
        assert len(match_store.fetch_tournament('t1')) == 1

    def test_failed_player_registration_still_creates_bracket(self, match_store, rating_store):
        rating_store.accept = False
        service = TournamentService(match_store, RatingEngine(store=rating_store))
        service.create_bracket('t1', 'single', ['a', 'b'])
        assert len(match_store.fetch_tournament('t1')) == 1
        assert [player_id for player_id, _ in rating_store.persist_calls] == ['a', 'b']

    def test_invalid_input_persists_nothing(self, service, match_store, rating_store):
        with pytest.raises(InsufficientPlayers):
            service.create_bracket('t1', 'double', ['a', 'b', 'c'])
        assert match_store.fetch_tournament('t1') == []
        assert rating_store.persist_calls == []

    def test_without_rating_engine(self, match_store):
        matches = TournamentService(match_store).create_bracket('t1', 'single', ['a', 'b'])
        assert len(matches) == 1


class TestRecordResult:
    """Tests for TournamentService.record_result."""

    def test_records_advances_and_rates(self, service, match_store, rating_store):
        service.create_bracket('t1', 'single', ['a', 'b', 'c', 'd'])
        rating_store.persist_calls.clear()
        match = first_playable(service, 't1')

        outcome = service.record_result(match.id, 'b', date(2024, 5, 1))

        assert outcome['match'].winner_id == 'b'
        assert outcome['match'].status == MatchStatus.COMPLETED
        assert [m.id for m in outcome['changed']][0] == match.id
        assert outcome['rating_update'].winner_delta == pytest.approx(16.0)
        assert outcome['champion'] is None
        assert outcome['complete'] is False

        stored = match_store.fetch_by_id(match.next_match_id)
        assert stored.player1_id == 'b'
        assert [player_id for player_id, _ in rating_store.persist_calls] == ['b', 'a']
        assert rating_store.fetch('b').last_match_day == '2024-05-01'

    def test_defaults_to_today(self, service, rating_store):
        service.create_bracket('t1', 'single', ['a', 'b'])
        match = first_playable(service, 't1')
        service.record_result(match.id, 'a')
        assert rating_store.fetch('a').last_match_day == date.today().isoformat()

    def test_champion_reported(self, service):
        service.create_bracket('t1', 'single', ['a', 'b'])
        match = first_playable(service, 't1')
        outcome = service.record_result(match.id, 'a', date(2024, 5, 1))
        assert outcome['champion'] == 'a'
        assert outcome['complete'] is True

    def test_invalid_result_changes_nothing(self, service, match_store, rating_store):
        service.create_bracket('t1', 'single', ['a', 'b', 'c', 'd'])
        before = [m.to_dict() for m in match_store.fetch_tournament('t1')]
        rating_store.persist_calls.clear()
        match = first_playable(service, 't1')
        with pytest.raises(InvalidResult):
            service.record_result(match.id, 'd')
        assert [m.to_dict() for m in match_store.fetch_tournament('t1')] == before
        assert rating_store.persist_calls == []

    def test_unknown_match(self, service):
        with pytest.raises(MatchNotFound):
            service.record_result('missing', 'a')

    def test_future_date_changes_nothing(self, service, match_store, rating_store):
        service.create_bracket('t1', 'single', ['a', 'b', 'c', 'd'])
        before = [m.to_dict() for m in match_store.fetch_tournament('t1')]
        rating_store.persist_calls.clear()
        match = first_playable(service, 't1')
        with pytest.raises(ValueError):
            service.record_result(match.id, 'a', date.today() + timedelta(days=1))
        assert [m.to_dict() for m in match_store.fetch_tournament('t1')] == before
        assert rating_store.persist_calls == []

    def test_full_double_elimination(self, service):
        players = [f"p{i}" for i in range(1, 7)]
        service.create_bracket('t1', 'double', players)
        outcome = None
        while True:
            graph = service.load_graph('t1')
            if graph.is_complete():
                break
            match = graph.playable_matches()[0]
            outcome = service.record_result(match.id, match.player1_id, date(2024, 5, 1))
        assert outcome['complete'] is True
        assert outcome['champion'] == 'p1'


class TestQueries:
    def test_unknown_tournament(self, service):
        with pytest.raises(TournamentNotFound):
            service.load_graph('nope')

    def test_describe(self, service):
        service.create_bracket('t1', 'single', ['a', 'b', 'c'])
        bracket = service.describe('t1')
        assert len(bracket['matches']) == 3
        assert bracket['rounds']['winners']['1'] == [m['id'] for m in bracket['matches'][:2]]
        assert len(bracket['playable']) == 1
        assert bracket['champion'] is None
        assert bracket['complete'] is False
