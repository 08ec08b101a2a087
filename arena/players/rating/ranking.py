"""
Leaderboard queries.

Ranks are not stored: every read computes a dense rank over all accounts
that are eligible for ranking, ordered by rating and then win ratio, both
descending. Players who share both values share a rank. Windows and
single-player lookups are computed from the same subquery, so a player's
rank is the same whichever way it is asked for.
"""

from typing import List, Optional

from sqlalchemy import Float, case, cast, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.session import Session
from sqlalchemy.sql.expression import Subquery
from arxiv.base import logging

from .. import domain
from ..exceptions import StorageError
from ..store import util
from ..store.models import DBAccount, DBProfile

logger = logging.getLogger(__name__)


def leaderboard_size() -> int:
    """Get the number of ranked players."""
    try:
        with util.transaction() as session:
            return _size(session, util.get_reserved_threshold())
    except SQLAlchemyError as e:
        raise StorageError('Could not count leaderboard') from e


def get_window(start: int, count: int) -> List[domain.LeaderboardRow]:
    """
    Get a slice of the leaderboard.

    Callers are expected to cap ``count`` at ``LEADERBOARD_MAX_COUNT``; it is
    not enforced here.

    Parameters
    ----------
    start : int
        Zero-based offset of the first row.
    count : int
        Maximum number of rows to return.

    Returns
    -------
    list
        Of :class:`.domain.LeaderboardRow`, ordered by rank and then by
        public ID.

    Raises
    ------
    :class:`ValueError`
        If ``start`` or ``count`` is negative.
    :class:`StorageError`

    """
    _check_window(start, count)
    threshold = util.get_reserved_threshold()
    try:
        with util.transaction() as session:
            size = _size(session, threshold)
            return _window(session, threshold, start, count, size)
    except SQLAlchemyError as e:
        raise StorageError(f'Could not get leaderboard from {start}') from e


def get_account_rank(public_id: str) -> Optional[domain.LeaderboardRow]:
    """
    Get the leaderboard row of a single player.

    Returns
    -------
    :class:`.domain.LeaderboardRow` or None
        ``None`` if there is no such player, or the account is not eligible
        for ranking.

    """
    threshold = util.get_reserved_threshold()
    try:
        with util.transaction() as session:
            size = _size(session, threshold)
            return _lookup(session, threshold, public_id, size)
    except SQLAlchemyError as e:
        raise StorageError(f'Could not get rank of {public_id}') from e


def get_leaderboards(start: int, count: int,
                     public_id: Optional[str] = None) -> domain.Leaderboard:
    """
    Get a page of the leaderboard, plus the requesting player's own row.

    The size, the page and the player's row are all read in the same
    transaction.

    Parameters
    ----------
    start : int
    count : int
    public_id : str
        If passed, the player's row is included as ``user`` (or ``None`` if
        they are not ranked).

    Returns
    -------
    :class:`.domain.Leaderboard`

    """
    _check_window(start, count)
    threshold = util.get_reserved_threshold()
    try:
        with util.transaction() as session:
            size = _size(session, threshold)
            rows = _window(session, threshold, start, count, size)
            user = None
            if public_id is not None:
                user = _lookup(session, threshold, public_id, size)
    except SQLAlchemyError as e:
        raise StorageError(f'Could not get leaderboard from {start}') from e
    return domain.Leaderboard(size=size, rows=rows, user=user)


def _check_window(start: int, count: int) -> None:
    if start < 0:
        raise ValueError('Start must not be negative')
    if count < 0:
        raise ValueError('Count must not be negative')


def _ranked(threshold: int) -> Subquery:
    total = DBProfile.wins + DBProfile.draws + DBProfile.losses
    win_ratio = case(
        (total > 0, cast(DBProfile.wins, Float) / total),
        else_=0.0
    )
    rank = func.dense_rank().over(
        order_by=[DBProfile.rating.desc(), win_ratio.desc()]
    )
    return (
        select(DBAccount.public_id,
               DBAccount.handle,
               DBProfile.avatar,
               DBProfile.rating,
               DBProfile.wins,
               DBProfile.draws,
               DBProfile.losses,
               win_ratio.label('win_ratio'),
               rank.label('rank'))
        .join(DBAccount, DBProfile.account_id == DBAccount.account_id)
        .where(DBAccount.account_id >= threshold)
        .subquery('ranked')
    )


def _size(session: Session, threshold: int) -> int:
    return int(session.scalar(
        select(func.count())
        .select_from(DBProfile)
        .join(DBAccount, DBProfile.account_id == DBAccount.account_id)
        .where(DBAccount.account_id >= threshold)
    ) or 0)


def _window(session: Session, threshold: int, start: int, count: int,
            size: int) -> List[domain.LeaderboardRow]:
    ranked = _ranked(threshold)
    result = session.execute(
        select(ranked)
        .order_by(ranked.c.rank, ranked.c.public_id)
        .offset(start)
        .limit(count)
    )
    return [_to_row(row, size) for row in result]


def _lookup(session: Session, threshold: int, public_id: str,
            size: int) -> Optional[domain.LeaderboardRow]:
    ranked = _ranked(threshold)
    row = session.execute(
        select(ranked).where(ranked.c.public_id == public_id)
    ).first()
    if row is None:
        logger.debug('%s is not on the leaderboard', public_id)
        return None
    return _to_row(row, size)


def _to_row(row, size: int) -> domain.LeaderboardRow:
    return domain.LeaderboardRow(
        public_id=row.public_id,
        handle=row.handle,
        avatar=row.avatar,
        rating=row.rating,
        wins=row.wins,
        draws=row.draws,
        losses=row.losses,
        win_ratio=float(row.win_ratio or 0.0),
        rank=int(row.rank),
        out_of=size
    )
