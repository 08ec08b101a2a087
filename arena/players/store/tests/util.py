"""Testing helpers."""

from contextlib import contextmanager
from typing import Optional

from flask import Flask

from .. import util
from ..models import DBAccount, DBProfile
from ..passwords import HashParams, PasswordVault

FAST_VAULT = PasswordVault(HashParams(log_n=4, r=8, p=1))
"""Cheap hashing, so that tests creating many accounts stay quick."""

ADMIN_ID = 99
"""Seeded below the reserved threshold; created accounts get 100 and up."""


@contextmanager
def temporary_db(database_url: str = 'sqlite:///:memory:',
                 create: bool = True, drop: bool = True, **config):
    """Provide an in-memory sqlite database for testing purposes."""
    app = Flask('arena-players-test')
    app.config['SQLALCHEMY_DATABASE_URI'] = database_url
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['CREDENTIAL_CHECK_MIN_SECONDS'] = 0.01
    app.config.update(config)
    with app.app_context():
        util.init_app(app)
        if create:
            util.create_all()
        try:
            with util.transaction():
                yield util.current_session()
        finally:
            if drop:
                util.drop_all()


def seed_admin(password: str = 'adminpass', privilege: int = 2,
               rating: Optional[int] = 1200) -> int:
    """Insert an administrative account directly, without a token row."""
    with util.transaction() as session:
        db_account = DBAccount(
            account_id=ADMIN_ID,
            public_id=util.generate_public_id(),
            handle='admin',
            email='admin@arena.test',
            salted_hash=FAST_VAULT.hash(password),
            privilege=privilege,
            banned=False,
            email_confirmed=True
        )
        session.add(db_account)
        if rating is not None:
            session.add(DBProfile(account=db_account, rating=rating))
        session.commit()
    return ADMIN_ID
