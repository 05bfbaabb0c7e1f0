"""Validation errors raised by the game engine. None are retried."""


class GameError(Exception):
    """Base class for engine validation failures."""


class InvalidPhaseError(GameError):
    """Operation not allowed in the current phase."""


class UnknownPlayerError(GameError):
    """No player with the given id in this match."""


class InvalidPlayerCount(GameError):
    """Too few or too many players for a match."""


class InvalidPlayerNames(GameError):
    """Player names must be non-empty and unique."""


class InvalidCustomConfig(GameError):
    """Custom role selection cannot be dealt to the given players."""


class GameOverError(GameError):
    """The match has ended; only reset is accepted."""


class IneligiblePlayerError(GameError):
    """Player exists but may not perform this action (eliminated, or wrong role)."""


class InvalidTargetError(GameError):
    """Target is not allowed for this action."""
