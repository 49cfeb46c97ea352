"""
Double elimination bracket generation.

In double elimination:
- Players must lose twice to be eliminated
- Winners Bracket: players that haven't lost yet
- Losers Bracket: players that have lost once
- Grand Final: Winners bracket champion vs Losers bracket champion
- Bracket Reset: if the losers bracket champion wins the Grand Final, the
  if-game decides the champion

For a bracket of size B the winners bracket has B - 1 matches over log2(B)
rounds and the losers bracket has B - 2 matches over 2 * (log2(B) - 1) rounds,
alternating minor rounds (losers bracket survivors pair off; round 1 pairs the
winners round 1 losers) and major rounds (a winners bracket loser drops in
against a losers bracket survivor).
"""
import logging
import math
from typing import List, Sequence

from .elimination import (
    build_winners_bracket,
    calculate_bracket_size,
    calculate_byes,
    make_match_id,
    validate_player_ids,
)
from .models import Bracket, Match
from .progression import MatchGraph

logger = logging.getLogger(__name__)

MIN_PLAYERS = 4


def get_losers_round_name(round_num: int, total_losers_rounds: int) -> str:
    """Get the name for a losers bracket round (0-indexed)."""
    rounds_from_end = total_losers_rounds - round_num - 1
    if rounds_from_end == 0:
        return "Losers Final"
    elif rounds_from_end == 1:
        return "Losers Semifinal"
    else:
        return f"Losers Round {round_num + 1}"


def get_winners_round_name(teams_in_round: int) -> str:
    """Get the name for a winners bracket round."""
    if teams_in_round == 2:
        return "Winners Final"
    elif teams_in_round == 4:
        return "Winners Semifinal"
    elif teams_in_round == 8:
        return "Winners Quarterfinal"
    else:
        return f"Winners Round of {teams_in_round}"


def calculate_losers_bracket_rounds(bracket_size: int) -> int:
    """
    Calculate number of rounds in losers bracket.
    For N players in winners bracket (power of 2):
    - Winners bracket has log2(N) rounds
    - Losers bracket has 2 * (log2(N) - 1) rounds
    """
    if bracket_size < 2:
        return 0
    winners_rounds = int(math.log2(bracket_size))
    return 2 * (winners_rounds - 1)


def build_losers_bracket(tournament_id: str, bracket_size: int) -> List[List[Match]]:
    """
    Build the losers bracket rounds with their internal ``next_match_id`` wiring.

    For an 8 player bracket:
    - L1 (minor): 4 W1 losers pair off -> 2 matches
    - L2 (major): 2 W2 losers vs 2 L1 winners -> 2 matches
    - L3 (minor): 2 L2 winners pair off -> 1 match
    - L4 (major): W3 loser vs L3 winner -> 1 match (Losers Final)
    """
    rounds = []
    num_matches = bracket_size // 4
    for round_num in range(1, calculate_losers_bracket_rounds(bracket_size) + 1):
        is_major_round = round_num % 2 == 0
        if round_num > 1 and not is_major_round:
            num_matches //= 2

        current = []
        for i in range(num_matches):
            match_code = f"L{round_num}-M{i + 1}"
            current.append(Match(
                id=make_match_id(tournament_id, match_code),
                tournament_id=tournament_id,
                bracket=Bracket.LOSERS,
                round=round_num,
                match_number=i + 1,
                match_code=match_code,
            ))

        if rounds:
            for i, previous in enumerate(rounds[-1]):
                target = current[i] if is_major_round else current[i // 2]
                previous.next_match_id = target.id
        rounds.append(current)

    return rounds


def _wire_losers_drop_downs(winners_rounds: List[List[Match]], losers_rounds: List[List[Match]]):
    """Point every winners bracket match at the losers match its loser enters."""
    for i, match in enumerate(winners_rounds[0]):
        match.loser_next_match_id = losers_rounds[0][i // 2].id
    for winners_round in range(2, len(winners_rounds) + 1):
        major_round = losers_rounds[2 * (winners_round - 1) - 1]
        for i, match in enumerate(winners_rounds[winners_round - 1]):
            match.loser_next_match_id = major_round[i].id


def generate_double_elimination(tournament_id: str, player_ids: Sequence[str]) -> List[Match]:
    """
    Generate the complete double elimination bracket.

    Returns winners bracket, losers bracket, grand final and the conditional
    if-game, in that order.
    """
    player_ids = validate_player_ids(player_ids, MIN_PLAYERS, 'double_elimination')
    bracket_size = calculate_bracket_size(len(player_ids))

    winners_rounds = build_winners_bracket(tournament_id, player_ids)
    losers_rounds = build_losers_bracket(tournament_id, bracket_size)
    _wire_losers_drop_downs(winners_rounds, losers_rounds)

    grand_final = Match(
        id=make_match_id(tournament_id, 'GF'),
        tournament_id=tournament_id,
        bracket=Bracket.GRAND_FINAL,
        round=1,
        match_code='GF',
    )
    if_game = Match(
        id=make_match_id(tournament_id, 'BR'),
        tournament_id=tournament_id,
        bracket=Bracket.GRAND_FINAL,
        round=2,
        match_code='BR',
        is_if_game=True,
    )
    winners_rounds[-1][0].next_match_id = grand_final.id
    losers_rounds[-1][0].next_match_id = grand_final.id
    grand_final.next_match_id = if_game.id

    matches = [m for round_matches in winners_rounds for m in round_matches]
    matches.extend(m for round_matches in losers_rounds for m in round_matches)
    matches.extend([grand_final, if_game])

    graph = MatchGraph(matches)
    graph.settle()
    graph.validate()

    logger.info(
        f"Generated double elimination bracket for {tournament_id}: "
        f"{len(player_ids)} players, {calculate_byes(len(player_ids))} byes, {len(graph)} matches"
    )
    return graph.to_list()
