"""Read player profiles, match stats and match history."""

from datetime import datetime
from typing import List, Optional

from pytz import UTC
from sqlalchemy import or_, select
from sqlalchemy.orm import aliased
from sqlalchemy.exc import SQLAlchemyError
from arxiv.base import logging

from .. import domain
from ..exceptions import NoSuchAccount, PlayerNotFound, StorageError
from . import util
from .models import DBAccount, DBMatch, DBProfile

logger = logging.getLogger(__name__)

AVATAR_COUNT = 10
"""Avatars are numbered 0 through 9."""


def get_match_stats(account_id: int) -> domain.MatchStats:
    """
    Get the current rating and match tallies for an account.

    Raises
    ------
    :class:`PlayerNotFound`

    """
    try:
        with util.transaction() as session:
            db_profile = session.get(DBProfile, account_id)
            if db_profile is None:
                raise PlayerNotFound(f'No stats for account {account_id}')
            return to_match_stats(db_profile)
    except SQLAlchemyError as e:
        raise StorageError(f'Could not get stats for {account_id}') from e


def get_profile(public_id: str) -> domain.Profile:
    """
    Get the public profile of a player.

    Raises
    ------
    :class:`NoSuchAccount`

    """
    try:
        with util.transaction() as session:
            row = session.execute(
                select(DBAccount.handle, DBProfile)
                .join(DBProfile, DBProfile.account_id == DBAccount.account_id)
                .where(DBAccount.public_id == public_id)
            ).first()
            if row is None:
                raise NoSuchAccount(f'No profile for {public_id}')
            db_profile = row.DBProfile
            created = _aware(db_profile.created)
            return domain.Profile(
                public_id=public_id,
                handle=row.handle,
                avatar=db_profile.avatar,
                stats=to_match_stats(db_profile),
                created=created
            )
    except SQLAlchemyError as e:
        raise StorageError(f'Could not get profile for {public_id}') from e


def update_avatar(public_id: str, avatar: int) -> None:
    """
    Set the avatar shown on a player's profile.

    Raises
    ------
    :class:`ValueError`
        If ``avatar`` is not between 0 and 9 inclusive.
    :class:`NoSuchAccount`

    """
    if not 0 <= avatar < AVATAR_COUNT:
        raise ValueError(f'Avatar must be between 0 and {AVATAR_COUNT - 1}')
    try:
        with util.transaction() as session:
            db_profile = session.scalar(
                select(DBProfile)
                .join(DBAccount, DBProfile.account_id == DBAccount.account_id)
                .where(DBAccount.public_id == public_id)
            )
            if db_profile is None:
                raise NoSuchAccount(f'No profile for {public_id}')
            db_profile.avatar = avatar
            session.add(db_profile)
    except SQLAlchemyError as e:
        raise StorageError(f'Could not update avatar for {public_id}') from e


def get_match_history(account_id: int) -> List[domain.MatchHistoryRow]:
    """
    Get the finished matches that a player took part in, most recent first.

    Matches that ended at the same time are ordered by descending match ID.

    Parameters
    ----------
    account_id : int
        Internal ID of the player.

    Returns
    -------
    list
        Of :class:`.domain.MatchHistoryRow`.

    Raises
    ------
    :class:`NoSuchAccount`

    """
    player1 = aliased(DBAccount)
    player2 = aliased(DBAccount)
    winner = aliased(DBAccount)
    try:
        with util.transaction() as session:
            if session.get(DBAccount, account_id) is None:
                raise NoSuchAccount(f'No account with ID {account_id}')
            result = session.execute(
                select(DBMatch.match_id,
                       player1.handle.label('player1_handle'),
                       player1.public_id.label('player1_public_id'),
                       player2.handle.label('player2_handle'),
                       player2.public_id.label('player2_public_id'),
                       winner.handle.label('winner_handle'),
                       winner.public_id.label('winner_public_id'),
                       DBMatch.end)
                .select_from(DBMatch)
                .join(player1, player1.account_id == DBMatch.player1)
                .join(player2, player2.account_id == DBMatch.player2)
                .outerjoin(winner, winner.account_id == DBMatch.winner)
                .where(or_(DBMatch.player1 == account_id,
                           DBMatch.player2 == account_id))
                .where(DBMatch.phase == DBMatch.FINISHED)
                .order_by(DBMatch.end.desc(), DBMatch.match_id.desc())
            )
            return [
                domain.MatchHistoryRow(
                    match_id=row.match_id,
                    player1_handle=row.player1_handle,
                    player1_public_id=row.player1_public_id,
                    player2_handle=row.player2_handle,
                    player2_public_id=row.player2_public_id,
                    winner_handle=row.winner_handle,
                    winner_public_id=row.winner_public_id,
                    end=_aware(row.end)
                ) for row in result
            ]
    except SQLAlchemyError as e:
        raise StorageError(f'Could not get match history for {account_id}') \
            from e


def to_match_stats(db_profile: DBProfile) -> domain.MatchStats:
    """Make a :class:`.domain.MatchStats` from a profile row."""
    return domain.MatchStats(
        rating=db_profile.rating,
        wins=db_profile.wins,
        draws=db_profile.draws,
        losses=db_profile.losses
    )


def _aware(timestamp: Optional[datetime]) -> Optional[datetime]:
    if timestamp is not None and timestamp.tzinfo is None:
        return UTC.localize(timestamp)
    return timestamp
