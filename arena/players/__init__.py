"""
Player accounts and competitive ratings for the arena backend.

This package provides the account-security and rating core used by the game
API: password storage and verification, expiring credential tokens, Elo
rating updates after a match, and the ranked leaderboard. Route handlers
supply already-validated values and translate the exceptions in
:mod:`arena.players.exceptions` into responses.

Quick start
-----------

1. Install this package into your virtual environment.
2. Attach the store to your Flask application with
   :func:`arena.players.store.init_app`. This applies the defaults from
   :mod:`arena.players.config` and binds the database session.
3. Call the operations from within an application context.

.. code-block:: python

   from flask import Flask
   from arena.players import store
   from arena.players.store import accounts
   from arena.players.rating import ledger, ranking


   def create_web_app() -> Flask:
       app = Flask('arena')
       store.init_app(app)
       return app

   with create_web_app().app_context():
       token = accounts.create_account('handle', 'a@b.c', 'secret')
       tokens = accounts.authenticate('handle', 'secret')
       board = ranking.get_leaderboards(0, 10, tokens.public_id)

"""

from .domain import Account, AuthTokens, LeaderboardRow, Leaderboard, \
    MatchHistoryRow, MatchStats, Privilege, Profile, TokenKind, Winner
