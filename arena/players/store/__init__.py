"""
Persistence of player accounts, credential tokens and profiles.

The store owns three tables: ``accounts`` (handles, emails, password hashes,
privilege and ban flags), ``tokens`` (one row per account, one slot per
token kind) and ``profiles`` (rating, match tallies, avatar). It also reads
``matches``, which the match server writes. Attach it to a
Flask application with :func:`init_app`, then call the operations in
:mod:`.accounts` and :mod:`.profiles` from within an application context.
"""

from . import accounts, models, passwords, profiles, tokens, util
from .util import create_all, init_app, current_session, drop_all, \
    is_available
