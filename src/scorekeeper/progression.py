"""
Result recording and advancement over a generated bracket.

The bracket is held as an arena of Match records addressed by id. Recording a
result never mutates the arena in place while it is being computed: every
touched match is copied into a transaction, and the copies replace the
originals only once the whole advancement succeeded. A failed recording leaves
the graph exactly as it was.

Slot assignment is positional. The feeders of a match are indexed in creation
order, so the first feeder always fills ``player1_id`` and the second
``player2_id`` (for a double elimination grand final: winners bracket champion
first, losers bracket champion second).
"""
import logging
from collections import OrderedDict
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .errors import GraphConsistencyViolation, InvalidResult, MatchNotFound
from .models import Bracket, Match, MatchStatus

logger = logging.getLogger(__name__)

WINNER = 'winner'
LOSER = 'loser'


def _violation(message: str) -> GraphConsistencyViolation:
    logger.error(f"Bracket graph consistency violation: {message}")
    return GraphConsistencyViolation(message)


def apply_result(match: Match, winner_id: str) -> Match:
    """Return a completed copy of ``match`` won by ``winner_id``."""
    if match.status != MatchStatus.PENDING:
        raise InvalidResult(f"Match {match.match_code or match.id} is {match.status.value}, not pending")
    if not match.is_playable:
        raise InvalidResult(f"Match {match.match_code or match.id} is still waiting for its players")
    if winner_id not in match.players:
        raise InvalidResult(f"Winner {winner_id} is not a player in match {match.match_code or match.id}")
    completed = match.copy()
    completed.status = MatchStatus.COMPLETED
    completed.winner_id = winner_id
    return completed


def place_player(match: Match, player_id: str, slot: int) -> Match:
    """Return a copy of ``match`` with ``player_id`` in ``slot`` (1 or 2)."""
    if match.status != MatchStatus.PENDING:
        raise _violation(f"cannot place {player_id} into {match.status.value} match {match.match_code or match.id}")
    if player_id in match.players:
        raise _violation(f"{player_id} is already in match {match.match_code or match.id}")
    attr = 'player1_id' if slot == 1 else 'player2_id'
    occupant = getattr(match, attr)
    if occupant is not None:
        raise _violation(
            f"slot {slot} of match {match.match_code or match.id} already holds {occupant}, refusing to overwrite with {player_id}"
        )
    placed = match.copy()
    setattr(placed, attr, player_id)
    return placed


class _Transaction:
    """Copy-on-write overlay used while one recording is computed."""

    def __init__(self, matches: Dict[str, Match]):
        self._base = matches
        self.changed: Dict[str, Match] = OrderedDict()

    def get(self, match_id: str) -> Match:
        if match_id in self.changed:
            return self.changed[match_id]
        match = self._base.get(match_id)
        if match is None:
            raise _violation(f"pointer to missing match {match_id}")
        return match

    def edit(self, match_id: str) -> Match:
        if match_id not in self.changed:
            self.changed[match_id] = self.get(match_id).copy()
        return self.changed[match_id]

    def put(self, match: Match):
        self.changed[match.id] = match


class MatchGraph:
    """Arena of the matches of one tournament."""

    def __init__(self, matches: Iterable[Match]):
        self._matches: Dict[str, Match] = OrderedDict()
        for match in matches:
            if match.id in self._matches:
                raise _violation(f"duplicate match id {match.id}")
            self._matches[match.id] = match
        self._feeders = self._index_feeders()

    def _index_feeders(self) -> Dict[str, List[Tuple[str, str]]]:
        feeders: Dict[str, List[Tuple[str, str]]] = {}
        for match in self._matches.values():
            if match.next_match_id:
                feeders.setdefault(match.next_match_id, []).append((match.id, WINNER))
            if match.loser_next_match_id:
                feeders.setdefault(match.loser_next_match_id, []).append((match.id, LOSER))
        return feeders

    # -- access -------------------------------------------------------------

    def __iter__(self) -> Iterator[Match]:
        return iter(self._matches.values())

    def __len__(self) -> int:
        return len(self._matches)

    def __contains__(self, match_id) -> bool:
        return match_id in self._matches

    def get(self, match_id: str) -> Match:
        match = self._matches.get(match_id)
        if match is None:
            raise MatchNotFound(match_id)
        return match

    def to_list(self) -> List[Match]:
        return list(self._matches.values())

    @property
    def tournament_id(self) -> Optional[str]:
        for match in self._matches.values():
            return match.tournament_id
        return None

    @property
    def is_double_elimination(self) -> bool:
        return any(m.bracket == Bracket.LOSERS for m in self._matches.values())

    def feeders(self, match_id: str) -> List[Tuple[Match, str]]:
        """Matches feeding ``match_id`` with how they feed it ('winner' or 'loser')."""
        return [(self._matches[source_id], via) for source_id, via in self._feeders.get(match_id, [])]

    def by_round(self) -> Dict[Bracket, Dict[int, List[Match]]]:
        rounds: Dict[Bracket, Dict[int, List[Match]]] = {}
        for match in self._matches.values():
            rounds.setdefault(match.bracket, {}).setdefault(match.round, []).append(match)
        return rounds

    def playable_matches(self) -> List[Match]:
        return [m for m in self._matches.values() if m.is_playable]

    def winners_final(self) -> Optional[Match]:
        winners = [m for m in self._matches.values() if m.bracket == Bracket.WINNERS]
        if not winners:
            return None
        return max(winners, key=lambda m: m.round)

    def grand_final(self) -> Optional[Match]:
        return next((m for m in self._matches.values()
                     if m.bracket == Bracket.GRAND_FINAL and not m.is_if_game), None)

    def if_game(self) -> Optional[Match]:
        return next((m for m in self._matches.values() if m.is_if_game), None)

    def terminal_match(self) -> Optional[Match]:
        """The match whose completion ends the tournament, as far as is known now."""
        grand_final = self.grand_final()
        if grand_final is None:
            return self.winners_final()
        if_game = self.if_game()
        if if_game is not None and (if_game.players or if_game.status == MatchStatus.COMPLETED):
            return if_game
        return grand_final

    def champion(self) -> Optional[str]:
        grand_final = self.grand_final()
        if grand_final is None:
            final = self.winners_final()
            if final is not None and final.status == MatchStatus.COMPLETED:
                return final.winner_id
            return None
        if_game = self.if_game()
        if if_game is not None and if_game.status == MatchStatus.COMPLETED:
            return if_game.winner_id
        if grand_final.status == MatchStatus.COMPLETED and (if_game is None or if_game.status == MatchStatus.VOID):
            return grand_final.winner_id
        return None

    def is_complete(self) -> bool:
        return self.champion() is not None

    # -- invariants ---------------------------------------------------------

    def validate(self):
        """Raise GraphConsistencyViolation if any structural invariant is broken."""
        problems = []
        double = self.is_double_elimination
        terminals = []

        for match in self._matches.values():
            label = match.match_code or match.id

            if match.status == MatchStatus.COMPLETED:
                if match.winner_id is None or match.winner_id not in match.players:
                    problems.append(f"{label}: completed without a winner among its players")
                elif len(match.players) == 1:
                    first_round_bye = match.bracket == Bracket.WINNERS and match.round == 1
                    if not (first_round_bye or match.bracket == Bracket.LOSERS):
                        problems.append(f"{label}: single-player result outside round 1")
            elif match.winner_id is not None:
                problems.append(f"{label}: {match.status.value} match has a winner")

            if match.next_match_id is None:
                terminals.append(label)
            else:
                target = self._matches.get(match.next_match_id)
                if target is None:
                    problems.append(f"{label}: next_match_id points to missing match {match.next_match_id}")
                elif target.bracket == match.bracket and target.round <= match.round:
                    problems.append(f"{label}: round does not increase towards {target.match_code or target.id}")

            if match.loser_next_match_id is not None:
                target = self._matches.get(match.loser_next_match_id)
                if not double or match.bracket != Bracket.WINNERS:
                    problems.append(f"{label}: loser pointer outside the double elimination winners bracket")
                if target is None:
                    problems.append(f"{label}: loser_next_match_id points to missing match {match.loser_next_match_id}")
                elif target.bracket != Bracket.LOSERS:
                    problems.append(f"{label}: loser pointer leaves the losers bracket")
            elif double and match.bracket == Bracket.WINNERS:
                problems.append(f"{label}: winners bracket match without a loser pointer")

            if len(self._feeders.get(match.id, [])) > 2:
                problems.append(f"{label}: fed by more than two matches")

        if self._matches and len(terminals) != 1:
            problems.append(f"expected exactly one terminal match, found {len(terminals)}")

        if problems:
            raise _violation('; '.join(problems))

    # -- progression --------------------------------------------------------

    def record_result(self, match_id: str, winner_id: str) -> List[Match]:
        """Complete ``match_id`` and advance its winner (and loser).

        Returns every match changed by the recording, the recorded match first.
        """
        match = self.get(match_id)
        completed = apply_result(match, winner_id)
        tx = _Transaction(self._matches)
        tx.put(completed)
        self._advance(tx, completed)
        self._matches.update(tx.changed)
        logger.info(f"Recorded {completed.match_code or completed.id}: {winner_id} beat {completed.loser_id}")
        return list(tx.changed.values())

    def settle(self) -> List[Match]:
        """Advance completed byes and resolve matches that can never be contested.

        Run once on a freshly generated bracket.
        """
        tx = _Transaction(self._matches)
        for match_id in list(self._matches):
            match = tx.get(match_id)
            if match.is_bye and match.next_match_id and match.winner_id not in tx.get(match.next_match_id).players:
                logger.debug(f"Bye: {match.winner_id} advances from {match.match_code}")
                self._advance(tx, match)
        for match_id in list(self._matches):
            self._settle(tx, match_id)
        self._matches.update(tx.changed)
        return list(tx.changed.values())

    def _slot_for(self, target_id: str, source_id: str, via: str) -> int:
        for index, feeder in enumerate(self._feeders.get(target_id, [])):
            if feeder == (source_id, via):
                return index + 1
        raise _violation(f"{source_id} does not feed {target_id}")

    def _advance(self, tx: _Transaction, match: Match):
        if match.bracket == Bracket.GRAND_FINAL:
            if not match.is_if_game:
                self._resolve_grand_final(tx, match)
            return
        if match.next_match_id:
            self._place(tx, match.next_match_id, match.winner_id, match.id, WINNER)
        if match.loser_next_match_id:
            loser_id = match.loser_id
            if loser_id is not None:
                self._place(tx, match.loser_next_match_id, loser_id, match.id, LOSER)
            else:
                self._settle(tx, match.loser_next_match_id)

    def _place(self, tx: _Transaction, target_id: str, player_id: str, source_id: str, via: str):
        target = tx.get(target_id)
        slot = self._slot_for(target_id, source_id, via)
        tx.put(place_player(target, player_id, slot))
        self._settle(tx, target_id)

    def _expected_entrants(self, tx: _Transaction, match: Match) -> int:
        count = 0
        for source_id, via in self._feeders.get(match.id, []):
            source = tx.get(source_id)
            if source.status == MatchStatus.VOID:
                continue
            if via == LOSER and source.is_bye:
                continue
            count += 1
        return count

    def _settle(self, tx: _Transaction, match_id: str):
        match = tx.get(match_id)
        if match.status != MatchStatus.PENDING or match.bracket == Bracket.GRAND_FINAL:
            return
        expected = self._expected_entrants(tx, match)
        if expected == 0 and not match.players:
            void = tx.edit(match_id)
            void.status = MatchStatus.VOID
            logger.debug(f"{void.match_code} can never be contested, marked void")
            if void.next_match_id:
                self._settle(tx, void.next_match_id)
        elif expected == 1 and len(match.players) == 1:
            walkover = tx.edit(match_id)
            walkover.status = MatchStatus.COMPLETED
            walkover.winner_id = walkover.players[0]
            logger.debug(f"Walkover: {walkover.winner_id} advances from {walkover.match_code}")
            self._advance(tx, walkover)

    def _resolve_grand_final(self, tx: _Transaction, grand_final: Match):
        winners_champion = None
        for source_id, via in self._feeders.get(grand_final.id, []):
            source = tx.get(source_id)
            if via == WINNER and source.bracket == Bracket.WINNERS:
                winners_champion = source.winner_id
        if not grand_final.next_match_id:
            return
        if grand_final.winner_id == winners_champion:
            if_game = tx.edit(grand_final.next_match_id)
            if if_game.status != MatchStatus.PENDING:
                raise _violation(f"if-game {if_game.match_code or if_game.id} is already {if_game.status.value}")
            if_game.status = MatchStatus.VOID
            logger.info(f"{winners_champion} won the grand final undefeated, if-game not needed")
            return
        if_game = tx.get(grand_final.next_match_id)
        placed = place_player(if_game, grand_final.player1_id, 1)
        placed = place_player(placed, grand_final.player2_id, 2)
        tx.put(placed)
        logger.info(f"Bracket reset: {grand_final.winner_id} forces the if-game")
