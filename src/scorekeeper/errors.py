"""
Errors raised by bracket generation, result recording and rating.
"""


class BracketError(Exception):
    """Base class for bracket generation and progression failures."""


class InsufficientPlayers(BracketError, ValueError):
    def __init__(self, format_name: str, required: int, actual: int):
        self.format = format_name
        self.required = required
        self.actual = actual
        super().__init__(f"{format_name} requires at least {required} players, got {actual}")


class DuplicatePlayers(BracketError, ValueError):
    def __init__(self, duplicates):
        self.duplicates = sorted(duplicates)
        super().__init__(f"Player ids must be unique, duplicated: {', '.join(self.duplicates)}")


class MatchNotFound(BracketError, KeyError):
    def __init__(self, match_id: str):
        self.match_id = match_id
        super().__init__(match_id)

    def __str__(self):
        return f"Match {self.match_id} not found"


class InvalidResult(BracketError, ValueError):
    """The caller asked to record a result the match cannot accept."""


class GraphConsistencyViolation(BracketError):
    """An advancement pointer or match record breaks a bracket invariant.

    Always a bug in generation or advancement; never swallowed.
    """


class UnknownPlayer(LookupError):
    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"Unknown player {player_id}")


class TournamentExists(BracketError, ValueError):
    def __init__(self, tournament_id: str):
        self.tournament_id = tournament_id
        super().__init__(f"Tournament {tournament_id} already has a bracket")


class TournamentNotFound(BracketError, KeyError):
    def __init__(self, tournament_id: str):
        self.tournament_id = tournament_id
        super().__init__(tournament_id)

    def __str__(self):
        return f"Tournament {self.tournament_id} has no bracket"
