"""Exceptions."""

from typing import Optional


class NoSuchAccount(RuntimeError):
    """Account does not exist."""


class PlayerNotFound(NoSuchAccount):
    """A match participant has no stats row."""

    def __init__(self, message: str, player: Optional[int] = None) -> None:
        super().__init__(message)
        self.player = player
        """Which side of the match (1 or 2) could not be found, if known."""


class AlreadyExists(RuntimeError):
    """A unique account attribute is already taken."""

    field = ''


class HandleAlreadyExists(AlreadyExists):
    """The handle is already in use."""

    field = 'handle'


class EmailAlreadyExists(AlreadyExists):
    """The email address is already in use."""

    field = 'email'


class AccountBanned(RuntimeError):
    """Account is banned."""


class CredentialMismatch(RuntimeError):
    """Password is not correct."""


class AuthenticationFailed(RuntimeError):
    """Failed to authenticate with provided credentials."""


class InvalidToken(RuntimeError):
    """Token is absent, expired or does not match."""


class InsufficientPrivilege(RuntimeError):
    """Account does not hold the required privilege level."""


class CryptoError(RuntimeError):
    """The entropy source or hashing primitive failed."""


class StorageError(RuntimeError):
    """The backing store failed to complete an operation."""


class StaleMatchStats(RuntimeError):
    """Stats supplied for a match no longer match the stored stats."""
