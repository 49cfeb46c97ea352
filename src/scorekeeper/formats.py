"""
Tournament formats and the bracket generation entry point.
"""
from enum import Enum
from typing import Dict, List, Sequence, Union

from .double_elimination import (
    calculate_losers_bracket_rounds,
    generate_double_elimination,
    get_losers_round_name,
    get_winners_round_name,
)
from .elimination import generate_single_elimination, get_round_name
from .models import Bracket, Match


class TournamentFormat(str, Enum):
    SINGLE_ELIMINATION = 'single_elimination'
    DOUBLE_ELIMINATION = 'double_elimination'


MIN_PLAYERS = {
    TournamentFormat.SINGLE_ELIMINATION: 2,
    TournamentFormat.DOUBLE_ELIMINATION: 4,
}

_ALIASES = {
    'single': TournamentFormat.SINGLE_ELIMINATION,
    'double': TournamentFormat.DOUBLE_ELIMINATION,
}


def parse_format(value: Union[str, TournamentFormat]) -> TournamentFormat:
    if isinstance(value, TournamentFormat):
        return value
    key = str(value).strip().lower().replace('-', '_')
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return TournamentFormat(key)
    except ValueError:
        raise ValueError(f"Unknown tournament format: {value}") from None


def generate(format: Union[str, TournamentFormat], tournament_id: str, player_ids: Sequence[str]) -> List[Match]:
    """Generate every match of a tournament in the given format.

    Raises InsufficientPlayers / DuplicatePlayers before anything is built.
    """
    tournament_format = parse_format(format)
    if tournament_format == TournamentFormat.DOUBLE_ELIMINATION:
        return generate_double_elimination(tournament_id, player_ids)
    return generate_single_elimination(tournament_id, player_ids)


def index_by_round(matches: Sequence[Match]) -> Dict[Bracket, Dict[int, List[Match]]]:
    """Group matches as {bracket: {round: [matches in match_number order]}}."""
    index: Dict[Bracket, Dict[int, List[Match]]] = {}
    for match in matches:
        index.setdefault(match.bracket, {}).setdefault(match.round, []).append(match)
    for rounds in index.values():
        for round_matches in rounds.values():
            round_matches.sort(key=lambda m: m.match_number)
    return index


def describe_round(bracket: Bracket, round_num: int, bracket_size: int, double: bool = False) -> str:
    """Human-readable round name, e.g. 'Semifinal', 'Losers Round 1', 'Grand Final'."""
    if bracket == Bracket.GRAND_FINAL:
        return "Grand Final" if round_num == 1 else "Bracket Reset"
    if bracket == Bracket.LOSERS:
        return get_losers_round_name(round_num - 1, calculate_losers_bracket_rounds(bracket_size))
    players_in_round = bracket_size // (2 ** (round_num - 1))
    if double:
        return get_winners_round_name(players_in_round)
    return get_round_name(players_in_round)
