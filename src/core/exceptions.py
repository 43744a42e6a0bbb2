"""Exceptions raised by the tournament engine and its stores."""


class TournamentError(Exception):
    """Base exception for all tournament engine errors."""

    pass


class InvalidArgument(TournamentError):
    """Raised when an operation receives a value it cannot work with (e.g. a group size of zero)."""

    pass


class InconsistentState(TournamentError):
    """Raised when tournament data is missing or incomplete for its declared status."""

    pass


class InvalidTransition(InconsistentState):
    """Raised when a tournament status change is not allowed from the current status."""

    pass


class NotFound(TournamentError):
    """Raised when a stored tournament or registration does not exist."""

    pass


class ConcurrentUpdate(TournamentError):
    """Raised when a ranking write is based on a stale snapshot of the ranking store."""

    pass
