"""Elo rating calculations."""

import math
from typing import NamedTuple, Tuple

from ..domain import Winner, RATING_MIN, RATING_MAX
from ..store import util

WIN_SCORE = 1.0
DRAW_SCORE = 0.5
LOSS_SCORE = 0.0


class EloConfig(NamedTuple):
    """Tuning for an :class:`EloCalculator`."""

    k_factor: int = 32
    """Largest possible rating shift from a single match."""

    spread: float = 400.0
    """Rating gap at which the stronger player is expected to score 10:1."""


class EloCalculator(object):
    """
    Computes expected scores and rating changes for two-player matches.

    Each calculator carries its own :class:`EloConfig`, so differently tuned
    calculators can be used side by side.
    """

    def __init__(self, config: EloConfig = EloConfig()) -> None:
        if config.spread <= 0:
            raise ValueError('Spread must be positive')
        self.config = config

    def expected_score(self, rating_a: int, rating_b: int) -> float:
        """
        Get the expected score of player A against player B.

        Parameters
        ----------
        rating_a : int
        rating_b : int

        Returns
        -------
        float
            Between 0 and 1, exclusive.

        """
        diff = _clamp(rating_b) - _clamp(rating_a)
        return 1.0 / (1.0 + math.pow(10.0, diff / self.config.spread))

    def rating_delta(self, rating1: int, rating2: int, winner: Winner) -> int:
        """Get the number of points player 1 gains (or loses) from a match."""
        expected1 = self.expected_score(rating1, rating2)
        return _round_half_away(self.config.k_factor
                                * (score_for_player1(winner) - expected1))

    def apply_outcome(self, rating1: int, rating2: int, winner: Winner) \
            -> Tuple[int, int]:
        """
        Calculate the new ratings of both players after a match.

        Player 2 loses exactly what player 1 gains, except where a result
        would fall outside the storable range, in which case it saturates.

        Returns
        -------
        int
            Player 1's new rating.
        int
            Player 2's new rating.

        """
        delta = self.rating_delta(rating1, rating2, winner)
        return _clamp(rating1 + delta), _clamp(rating2 - delta)


def score_for_player1(winner: Winner) -> float:
    """Get player 1's actual score for a match outcome."""
    if winner == Winner.PLAYER1:
        return WIN_SCORE
    if winner == Winner.DRAW:
        return DRAW_SCORE
    if winner == Winner.PLAYER2:
        return LOSS_SCORE
    raise ValueError(f'Unknown winner {winner}')


def get_calculator() -> EloCalculator:
    """Build a calculator tuned by the application configuration."""
    k_factor, spread = util.get_elo_settings()
    return EloCalculator(EloConfig(k_factor=k_factor, spread=spread))


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _clamp(rating: int) -> int:
    return max(RATING_MIN, min(RATING_MAX, rating))
