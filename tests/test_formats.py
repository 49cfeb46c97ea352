"""
Tests for tournament formats and the generation entry point.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from scorekeeper.errors import InsufficientPlayers
from scorekeeper.formats import TournamentFormat, describe_round, generate, index_by_round, parse_format
from scorekeeper.models import Bracket


class TestParseFormat:
    def test_canonical_names(self):
        assert parse_format('single_elimination') == TournamentFormat.SINGLE_ELIMINATION
        assert parse_format('double_elimination') == TournamentFormat.DOUBLE_ELIMINATION

    def test_aliases(self):
        assert parse_format('single') == TournamentFormat.SINGLE_ELIMINATION
        assert parse_format('Double-Elimination') == TournamentFormat.DOUBLE_ELIMINATION

    def test_enum_passthrough(self):
        assert parse_format(TournamentFormat.DOUBLE_ELIMINATION) == TournamentFormat.DOUBLE_ELIMINATION

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            parse_format('round_robin')


class TestGenerate:
    """Tests for the generate dispatcher."""

    def test_single(self):
        matches = generate('single_elimination', 't1', ['a', 'b', 'c', 'd'])
        assert len(matches) == 3

    def test_double(self):
        matches = generate(TournamentFormat.DOUBLE_ELIMINATION, 't1', ['a', 'b', 'c', 'd'])
        assert len(matches) == 7

    def test_double_requires_four(self):
        with pytest.raises(InsufficientPlayers):
            generate('double', 't1', ['a', 'b', 'c'])

    def test_unknown_format_builds_nothing(self):
        with pytest.raises(ValueError):
            generate('swiss', 't1', ['a', 'b'])


class TestRoundIndex:
    def test_index_by_round(self):
        index = index_by_round(generate('double', 't1', [f"p{i}" for i in range(1, 9)]))
        assert {round_num: len(ms) for round_num, ms in index[Bracket.WINNERS].items()} == {1: 4, 2: 2, 3: 1}
        assert {round_num: len(ms) for round_num, ms in index[Bracket.LOSERS].items()} == {1: 2, 2: 2, 3: 1, 4: 1}
        assert [m.match_number for m in index[Bracket.WINNERS][1]] == [1, 2, 3, 4]
        assert len(index[Bracket.GRAND_FINAL][1]) == 1

    def test_describe_round(self):
        assert describe_round(Bracket.WINNERS, 1, 8) == "Quarterfinal"
        assert describe_round(Bracket.WINNERS, 3, 8) == "Final"
        assert describe_round(Bracket.WINNERS, 2, 8, double=True) == "Winners Semifinal"
        assert describe_round(Bracket.LOSERS, 1, 8) == "Losers Round 1"
        assert describe_round(Bracket.LOSERS, 4, 8) == "Losers Final"
        assert describe_round(Bracket.GRAND_FINAL, 1, 8) == "Grand Final"
        assert describe_round(Bracket.GRAND_FINAL, 2, 8) == "Bracket Reset"
