"""Tests for :mod:`arena.players.rating.ledger`."""

from unittest import TestCase, mock

from sqlalchemy.exc import OperationalError

from ...domain import MatchStats, Winner
from ...exceptions import PlayerNotFound, StaleMatchStats, StorageError
from ...store import accounts, profiles, util
from ...store.tests.util import temporary_db, FAST_VAULT
from .. import ledger
from ..elo import EloCalculator, EloConfig


class SetUpPlayersMixin(object):
    """Mixin for creating two players with default stats."""

    def create_players(self):
        ids = []
        for handle in ['alice', 'bob']:
            accounts.create_account(handle, f'{handle}@arena.test',
                                    'thepassword', vault=FAST_VAULT)
            ids.append(accounts.get_account_identifiers(handle)[0])
        self.player1, self.player2 = ids


class TestPostMatchResult(SetUpPlayersMixin, TestCase):
    """Tests for :func:`.ledger.post_match_result`."""

    def test_player1_wins(self):
        with temporary_db():
            self.create_players()
            new1, new2 = ledger.post_match_result(
                self.player1, None, self.player2, None, Winner.PLAYER1
            )
            self.assertEqual(new1, MatchStats(1216, wins=1))
            self.assertEqual(new2, MatchStats(1184, losses=1))
            self.assertEqual(profiles.get_match_stats(self.player1), new1)
            self.assertEqual(profiles.get_match_stats(self.player2), new2)

    def test_player2_wins(self):
        with temporary_db():
            self.create_players()
            new1, new2 = ledger.post_match_result(
                self.player1, None, self.player2, None, Winner.PLAYER2
            )
            self.assertEqual(new1, MatchStats(1184, losses=1))
            self.assertEqual(new2, MatchStats(1216, wins=1))

    def test_draw(self):
        """A draw between equals changes only the draw tallies."""
        with temporary_db():
            self.create_players()
            new1, new2 = ledger.post_match_result(
                self.player1, None, self.player2, None, Winner.DRAW
            )
            self.assertEqual(new1, MatchStats(1200, draws=1))
            self.assertEqual(new2, MatchStats(1200, draws=1))

    def test_current_stats_supplied(self):
        with temporary_db():
            self.create_players()
            stats1 = profiles.get_match_stats(self.player1)
            stats2 = profiles.get_match_stats(self.player2)
            new1, _ = ledger.post_match_result(
                self.player1, stats1, self.player2, stats2, Winner.PLAYER1
            )
            self.assertEqual(new1.wins, 1)

    def test_stale_stats(self):
        """A result computed from stats that have since changed is refused."""
        with temporary_db():
            self.create_players()
            stale1 = profiles.get_match_stats(self.player1)
            stale2 = profiles.get_match_stats(self.player2)
            current1, current2 = ledger.post_match_result(
                self.player1, None, self.player2, None, Winner.PLAYER1
            )
            with self.assertRaises(StaleMatchStats):
                ledger.post_match_result(self.player1, stale1, self.player2,
                                         stale2, Winner.PLAYER2)
            self.assertEqual(profiles.get_match_stats(self.player1), current1)
            self.assertEqual(profiles.get_match_stats(self.player2), current2)

    def test_unknown_player(self):
        """Nothing is written if either player is missing."""
        with temporary_db():
            self.create_players()
            with self.assertRaises(PlayerNotFound) as ctx:
                ledger.post_match_result(self.player1, None, 12345, None,
                                         Winner.PLAYER1)
            self.assertEqual(ctx.exception.player, 2)
            with self.assertRaises(PlayerNotFound) as ctx:
                ledger.post_match_result(12345, None, self.player2, None,
                                         Winner.PLAYER1)
            self.assertEqual(ctx.exception.player, 1)
            self.assertEqual(profiles.get_match_stats(self.player1),
                             MatchStats(1200))
            self.assertEqual(profiles.get_match_stats(self.player2),
                             MatchStats(1200))

    def test_same_player(self):
        with temporary_db():
            self.create_players()
            with self.assertRaises(ValueError):
                ledger.post_match_result(self.player1, None, self.player1,
                                         None, Winner.DRAW)

    def test_calculator(self):
        """A differently tuned calculator may be passed."""
        calculator = EloCalculator(EloConfig(k_factor=16))
        with temporary_db():
            self.create_players()
            new1, new2 = ledger.post_match_result(
                self.player1, None, self.player2, None, Winner.PLAYER1,
                calculator=calculator
            )
            self.assertEqual((new1.rating, new2.rating), (1208, 1192))

    def test_configured_k_factor(self):
        with temporary_db(ELO_K_FACTOR=10):
            self.create_players()
            new1, _ = ledger.post_match_result(
                self.player1, None, self.player2, None, Winner.PLAYER1
            )
            self.assertEqual(new1.rating, 1205)

    def test_series(self):
        """Tallies accumulate and total rating is conserved."""
        outcomes = [Winner.PLAYER1, Winner.PLAYER1, Winner.DRAW,
                    Winner.PLAYER2, Winner.PLAYER1]
        with temporary_db():
            self.create_players()
            for winner in outcomes:
                new1, new2 = ledger.post_match_result(
                    self.player1, None, self.player2, None, winner
                )
            self.assertEqual((new1.wins, new1.draws, new1.losses), (3, 1, 1))
            self.assertEqual((new2.wins, new2.draws, new2.losses), (1, 1, 3))
            self.assertEqual(new1.rating + new2.rating, 2400)
            self.assertGreater(new1.rating, new2.rating)

    def test_storage_fails(self):
        error = OperationalError('SELECT 1', {}, Exception('gone away'))
        with temporary_db():
            with mock.patch.object(util, 'transaction', side_effect=error):
                with self.assertRaises(StorageError):
                    ledger.post_match_result(100, None, 101, None,
                                             Winner.DRAW)
