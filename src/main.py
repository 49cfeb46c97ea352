# Entry point printing a generated bracket for a list of players

import argparse
import logging
import sys

import yaml

from scorekeeper.elimination import calculate_bracket_size, calculate_byes
from scorekeeper.errors import BracketError
from scorekeeper.formats import TournamentFormat, describe_round, generate, index_by_round, parse_format
from scorekeeper.models import Bracket, MatchStatus


def load_players(file_path):
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file)
    if isinstance(data, dict):
        data = data.get('players', [])
    return [str(player) for player in (data or [])]


def format_match(match):
    player1 = match.player1_id or 'TBD'
    player2 = match.player2_id or 'TBD'
    if match.status == MatchStatus.VOID:
        return f"  {match.match_code}: (not played)"
    if match.bracket == Bracket.WINNERS and match.round == 1 and match.player2_id is None:
        return f"  {match.match_code}: {player1} vs BYE"
    return f"  {match.match_code}: {player1} vs {player2}"


def print_bracket(matches, num_players, tournament_format):
    bracket_size = calculate_bracket_size(num_players)
    double = tournament_format == TournamentFormat.DOUBLE_ELIMINATION
    print(f"\n--- {tournament_format.value.replace('_', ' ').title()} ---")
    print(f"{num_players} players, bracket of {bracket_size}, {calculate_byes(num_players)} byes, {len(matches)} matches")
    index = index_by_round(matches)
    for bracket in (Bracket.WINNERS, Bracket.LOSERS, Bracket.GRAND_FINAL):
        for round_num, round_matches in sorted(index.get(bracket, {}).items()):
            print(f"\n{describe_round(bracket, round_num, bracket_size, double)}")
            for match in round_matches:
                print(format_match(match))


def main(argv=None):
    parser = argparse.ArgumentParser(description='Print the bracket generated for a list of players.')
    parser.add_argument('players_file', help='YAML list of player ids (or a mapping with a "players" list)')
    parser.add_argument('--format', default=TournamentFormat.SINGLE_ELIMINATION.value,
                        help='single_elimination or double_elimination')
    parser.add_argument('--tournament-id', default='cli')
    parser.add_argument('--verbose', action='store_true')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    players = load_players(args.players_file)
    if not players:
        print(f"No players loaded. Check {args.players_file}")
        return 1

    try:
        tournament_format = parse_format(args.format)
        matches = generate(tournament_format, args.tournament_id, players)
    except (BracketError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_bracket(matches, len(players), tournament_format)
    return 0


if __name__ == '__main__':
    sys.exit(main())
