"""Defines player account and rating concepts for the arena backend."""

from typing import NamedTuple, Optional, Sequence
from datetime import datetime
from enum import Enum, IntEnum


RATING_MIN = -32768
"""Lowest storable rating (16-bit signed)."""

RATING_MAX = 32767
"""Highest storable rating (16-bit signed)."""


class Privilege(IntEnum):
    """Account privilege levels, totally ordered."""

    USER = 0
    GAME_ADMIN = 1
    SERVER_ADMIN = 2


class TokenKind(Enum):
    """Purposes for which a credential token may be issued."""

    AUTH = 'auth'
    EMAIL_CONFIRMATION = 'email_confirmation'
    PASSWORD_RESET = 'password_reset'
    REFRESH = 'refresh'


class Winner(IntEnum):
    """Outcome of a two-player match."""

    DRAW = 0
    PLAYER1 = 1
    PLAYER2 = 2


class Account(NamedTuple):
    """Credential-bearing account data. Never carries the password hash."""

    account_id: int
    """Internal identifier. Must not be exposed outside the backend."""

    public_id: str
    """Opaque identifier safe to hand to clients."""

    handle: str
    email: str
    privilege: Privilege = Privilege.USER
    banned: bool = False
    email_confirmed: bool = False


class AuthTokens(NamedTuple):
    """Tokens issued on a successful login."""

    public_id: str
    auth_token: str
    refresh_token: str


class MatchStats(NamedTuple):
    """A player's rating and match tallies."""

    rating: int
    wins: int = 0
    draws: int = 0
    losses: int = 0

    @property
    def ranked_total(self) -> int:
        """Total number of ranked matches played."""
        return self.wins + self.draws + self.losses

    @property
    def win_ratio(self) -> float:
        """Wins over ranked matches played; 0.0 before the first match."""
        if self.ranked_total == 0:
            return 0.0
        return self.wins / self.ranked_total


class Profile(NamedTuple):
    """Publicly visible profile of a player."""

    public_id: str
    handle: str
    avatar: int
    stats: MatchStats
    created: Optional[datetime] = None

    @property
    def win_ratio(self) -> float:
        """See :attr:`MatchStats.win_ratio`."""
        return self.stats.win_ratio

    @property
    def ranked_total(self) -> int:
        """See :attr:`MatchStats.ranked_total`."""
        return self.stats.ranked_total


class LeaderboardRow(NamedTuple):
    """A single ranked entry on the leaderboard."""

    public_id: str
    handle: str
    avatar: int
    rating: int
    wins: int
    draws: int
    losses: int
    win_ratio: float
    rank: int
    """Dense rank, starting at 1."""

    out_of: int = 0
    """Size of the leaderboard the rank was computed against, if known."""

    @property
    def ranked_total(self) -> int:
        """Total number of ranked matches played."""
        return self.wins + self.draws + self.losses


class Leaderboard(NamedTuple):
    """A page of the leaderboard, optionally with the requesting player."""

    size: int
    rows: Sequence[LeaderboardRow] = ()
    user: Optional[LeaderboardRow] = None


class MatchHistoryRow(NamedTuple):
    """A finished match, as shown in a player's history."""

    match_id: int
    player1_handle: str
    player1_public_id: str
    player2_handle: str
    player2_public_id: str
    winner_handle: Optional[str]
    """``None`` if the match was drawn."""

    winner_public_id: Optional[str]
    end: Optional[datetime] = None
