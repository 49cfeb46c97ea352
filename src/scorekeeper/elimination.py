"""
Single elimination bracket generation, plus the groundwork shared with
double elimination (bracket sizing, byes, round 1 slots, winners bracket).

Bye policy: players keep their input order. The leading players are paired
into real round 1 matches (p1 v p2, p3 v p4, ...) and the trailing
``bracket_size - len(player_ids)`` players each get a bye in the trailing
round 1 matches. Byes never appear after round 1.
"""
import logging
import math
import uuid
from collections import Counter
from typing import List, Optional, Sequence, Tuple

from .errors import DuplicatePlayers, InsufficientPlayers
from .models import Bracket, Match, MatchStatus
from .progression import MatchGraph

logger = logging.getLogger(__name__)

_MATCH_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, 'scorekeeper/matches')


def get_round_name(teams_in_round: int) -> str:
    """Get the name of a round based on number of players in it."""
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {teams_in_round}"


def calculate_bracket_size(num_players: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_players <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_players))


def calculate_byes(num_players: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_players) - num_players


def calculate_total_rounds(bracket_size: int) -> int:
    if bracket_size < 2:
        return 0
    return int(math.log2(bracket_size))


def make_match_id(tournament_id: str, match_code: str) -> str:
    """Opaque id, stable for a given tournament and bracket position."""
    return str(uuid.uuid5(_MATCH_NAMESPACE, f"{tournament_id}/{match_code}"))


def validate_player_ids(player_ids: Sequence[str], minimum: int, format_name: str) -> List[str]:
    player_ids = list(player_ids)
    if len(player_ids) < minimum:
        raise InsufficientPlayers(format_name, minimum, len(player_ids))
    duplicates = [pid for pid, count in Counter(player_ids).items() if count > 1]
    if duplicates:
        raise DuplicatePlayers(duplicates)
    return player_ids


def create_first_round_slots(player_ids: Sequence[str]) -> List[Tuple[str, Optional[str]]]:
    """
    Pair players for round 1 of a bracket of size next_power_of_two(N).

    For 6 players: [(p1, p2), (p3, p4), (p5, None), (p6, None)]
    """
    num_players = len(player_ids)
    num_matches = calculate_bracket_size(num_players) // 2
    paired = 2 * (num_players - num_matches)

    slots = [(player_ids[i], player_ids[i + 1]) for i in range(0, paired, 2)]
    slots.extend((player_id, None) for player_id in player_ids[paired:])
    return slots


def build_winners_bracket(tournament_id: str, player_ids: Sequence[str]) -> List[List[Match]]:
    """
    Build the winners bracket rounds with ``next_match_id`` wired.

    Round 1 bye matches are created completed with the lone player as winner.
    Later rounds start empty.
    """
    rounds = []
    first_round = []
    for i, (player1, player2) in enumerate(create_first_round_slots(player_ids), start=1):
        match_code = f"W1-M{i}"
        match = Match(
            id=make_match_id(tournament_id, match_code),
            tournament_id=tournament_id,
            bracket=Bracket.WINNERS,
            round=1,
            player1_id=player1,
            player2_id=player2,
            match_number=i,
            match_code=match_code,
        )
        if player2 is None:
            match.status = MatchStatus.COMPLETED
            match.winner_id = player1
        first_round.append(match)
    rounds.append(first_round)

    total_rounds = calculate_total_rounds(calculate_bracket_size(len(player_ids)))
    for round_num in range(2, total_rounds + 1):
        previous = rounds[-1]
        current = []
        for i in range(len(previous) // 2):
            match_code = f"W{round_num}-M{i + 1}"
            match = Match(
                id=make_match_id(tournament_id, match_code),
                tournament_id=tournament_id,
                bracket=Bracket.WINNERS,
                round=round_num,
                match_number=i + 1,
                match_code=match_code,
            )
            previous[i * 2].next_match_id = match.id
            previous[i * 2 + 1].next_match_id = match.id
            current.append(match)
        rounds.append(current)

    return rounds


def generate_single_elimination(tournament_id: str, player_ids: Sequence[str]) -> List[Match]:
    """
    Generate the complete single elimination bracket.

    Returns ``bracket_size - 1`` matches. Bye winners are already placed in
    their round 2 match.
    """
    player_ids = validate_player_ids(player_ids, 2, 'single_elimination')
    rounds = build_winners_bracket(tournament_id, player_ids)

    graph = MatchGraph(match for round_matches in rounds for match in round_matches)
    graph.settle()
    graph.validate()

    logger.info(
        f"Generated single elimination bracket for {tournament_id}: "
        f"{len(player_ids)} players, {calculate_byes(len(player_ids))} byes, {len(graph)} matches"
    )
    return graph.to_list()
