"""Apply match results to player ratings and tallies."""

from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from arxiv.base import logging

from .. import domain
from ..domain import Winner
from ..exceptions import PlayerNotFound, StaleMatchStats, StorageError
from ..store import util
from ..store.models import DBProfile
from ..store.profiles import to_match_stats
from .elo import EloCalculator, get_calculator

logger = logging.getLogger(__name__)

MatchResult = Tuple[domain.MatchStats, domain.MatchStats]


def post_match_result(player1_id: int,
                      player1_stats: Optional[domain.MatchStats],
                      player2_id: int,
                      player2_stats: Optional[domain.MatchStats],
                      winner: Winner,
                      calculator: Optional[EloCalculator] = None) \
        -> MatchResult:
    """
    Record the outcome of a match between two players.

    Both players' profile rows are locked and re-read inside one
    transaction; the win/draw/loss tallies and ratings are then updated
    together, or not at all.

    Parameters
    ----------
    player1_id : int
        Internal ID of player 1.
    player1_stats : :class:`.domain.MatchStats` or None
        The stats the caller believes player 1 has. If passed and the stored
        stats differ, the result was computed from a stale read and is
        rejected. Pass ``None`` to skip the check.
    player2_id : int
    player2_stats : :class:`.domain.MatchStats` or None
    winner : :class:`.domain.Winner`
    calculator : :class:`.EloCalculator`
        Defaults to one tuned by the application configuration.

    Returns
    -------
    :class:`.domain.MatchStats`
        Player 1's new stats.
    :class:`.domain.MatchStats`
        Player 2's new stats.

    Raises
    ------
    :class:`PlayerNotFound`
        ``player`` is set to 1 or 2 to identify the missing side.
    :class:`StaleMatchStats`
    :class:`StorageError`

    """
    if player1_id == player2_id:
        raise ValueError('A player cannot play against themselves')
    winner = Winner(winner)
    calculator = calculator or get_calculator()
    try:
        with util.transaction() as session:
            locked = {
                db_profile.account_id: db_profile for db_profile
                in session.scalars(
                    select(DBProfile)
                    .where(DBProfile.account_id.in_([player1_id, player2_id]))
                    .order_by(DBProfile.account_id)    # Consistent lock order.
                    .with_for_update()
                )
            }
            db_profile1 = _participant(locked, player1_id, 1)
            db_profile2 = _participant(locked, player2_id, 2)
            current1 = to_match_stats(db_profile1)
            current2 = to_match_stats(db_profile2)
            _check_current(player1_id, player1_stats, current1)
            _check_current(player2_id, player2_stats, current2)

            rating1, rating2 = calculator.apply_outcome(
                current1.rating, current2.rating, winner
            )
            new1 = _tally(current1, winner, Winner.PLAYER1)._replace(
                rating=rating1
            )
            new2 = _tally(current2, winner, Winner.PLAYER2)._replace(
                rating=rating2
            )
            _update(db_profile1, new1)
            _update(db_profile2, new2)
            session.commit()
    except SQLAlchemyError as e:
        raise StorageError(f'Could not post result of {player1_id} vs'
                           f' {player2_id}') from e
    logger.debug('Posted %s for %s vs %s: %s -> %s, %s -> %s', winner.name,
                 player1_id, player2_id, current1.rating, new1.rating,
                 current2.rating, new2.rating)
    return new1, new2


def _participant(locked: dict, account_id: int, player: int) -> DBProfile:
    db_profile = locked.get(account_id)
    if db_profile is None:
        raise PlayerNotFound(f'No stats for player {player}'
                             f' (account {account_id})', player=player)
    return db_profile


def _check_current(account_id: int, supplied: Optional[domain.MatchStats],
                   stored: domain.MatchStats) -> None:
    if supplied is not None and tuple(supplied) != tuple(stored):
        logger.info('Stale stats for %s: %s != %s', account_id, supplied,
                    stored)
        raise StaleMatchStats(f'Stats for {account_id} changed since read')


def _tally(stats: domain.MatchStats, winner: Winner, side: Winner) \
        -> domain.MatchStats:
    if winner == Winner.DRAW:
        return stats._replace(draws=stats.draws + 1)
    if winner == side:
        return stats._replace(wins=stats.wins + 1)
    return stats._replace(losses=stats.losses + 1)


def _update(db_profile: DBProfile, stats: domain.MatchStats) -> None:
    db_profile.rating = stats.rating
    db_profile.wins = stats.wins
    db_profile.draws = stats.draws
    db_profile.losses = stats.losses
