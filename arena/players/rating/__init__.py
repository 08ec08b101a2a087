"""
Elo ratings and the leaderboard.

:mod:`.elo` holds the pure rating arithmetic; :mod:`.ledger` applies match
results to stored stats; :mod:`.ranking` answers leaderboard queries.
"""

from . import elo, ledger, ranking
