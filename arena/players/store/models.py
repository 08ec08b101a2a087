"""Database models for accounts, credential tokens, profiles and matches."""

from typing import Any

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, \
    SmallInteger, String, func, text
from sqlalchemy.orm import declarative_base, relationship
from flask_sqlalchemy import SQLAlchemy

from ..domain import TokenKind

Base = declarative_base()
db: Any = SQLAlchemy(metadata=Base.metadata)


class DBAccount(Base):  # type: ignore
    """
    Player account with credentials.

    +-----------------+--------------+------+-----+---------+----------------+
    | Field           | Type         | Null | Key | Default | Extra          |
    +-----------------+--------------+------+-----+---------+----------------+
    | id              | int(11)      | NO   | PRI | NULL    | auto_increment |
    | public_id       | varchar(20)  | NO   | UNI | NULL    |                |
    | handle          | varchar(32)  | NO   | UNI | NULL    |                |
    | email           | varchar(255) | NO   | UNI | NULL    |                |
    | salted_hash     | varchar(255) | NO   |     | NULL    |                |
    | privilege       | tinyint(4)   | NO   |     | 0       |                |
    | banned          | tinyint(1)   | NO   |     | 0       |                |
    | email_confirmed | tinyint(1)   | NO   |     | 0       |                |
    +-----------------+--------------+------+-----+---------+----------------+

    IDs below the reserved threshold belong to seeded administrative accounts.
    """

    __tablename__ = 'accounts'

    account_id = Column('id', Integer, primary_key=True)
    public_id = Column(String(20), nullable=False, unique=True)
    handle = Column(String(32), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    salted_hash = Column(String(255), nullable=False)
    privilege = Column(SmallInteger, nullable=False, server_default=text("'0'"))
    banned = Column(Boolean, nullable=False, server_default=text("'0'"))
    email_confirmed = Column(Boolean, nullable=False,
                             server_default=text("'0'"))

    profile = relationship('DBProfile', uselist=False,
                           back_populates='account')
    tokens = relationship('DBToken', uselist=False, back_populates='account')


class DBToken(Base):  # type: ignore
    """
    Credential tokens; one row per account, one column pair per token kind.

    Each ``<kind>`` column holds the current token value and each
    ``<kind>_expiry`` column its absolute expiry, by the database clock.
    """

    __tablename__ = 'tokens'

    account_id = Column('id', ForeignKey('accounts.id'), primary_key=True)
    auth = Column(String(64))
    auth_expiry = Column(DateTime)
    email_confirmation = Column(String(64))
    email_confirmation_expiry = Column(DateTime)
    password_reset = Column(String(64))
    password_reset_expiry = Column(DateTime)
    refresh = Column(String(64))
    refresh_expiry = Column(DateTime)

    account = relationship('DBAccount', back_populates='tokens')

    def get(self, kind: TokenKind) -> Any:
        """Get the stored value and expiry for ``kind``."""
        return (getattr(self, kind.value),
                getattr(self, f'{kind.value}_expiry'))

    def put(self, kind: TokenKind, value: Any, expiry: Any) -> None:
        """Overwrite the value and expiry for ``kind``."""
        setattr(self, kind.value, value)
        setattr(self, f'{kind.value}_expiry', expiry)


class DBProfile(Base):  # type: ignore
    """
    Rating, match tallies and public profile data.

    +---------+-------------+------+-----+-------------------+
    | Field   | Type        | Null | Key | Default           |
    +---------+-------------+------+-----+-------------------+
    | id      | int(11)     | NO   | PRI | NULL              |
    | mmr     | smallint(6) | NO   |     | 1200              |
    | wins    | int(11)     | NO   |     | 0                 |
    | draws   | int(11)     | NO   |     | 0                 |
    | losses  | int(11)     | NO   |     | 0                 |
    | avatar  | tinyint(4)  | NO   |     | 0                 |
    | created | datetime    | NO   |     | CURRENT_TIMESTAMP |
    +---------+-------------+------+-----+-------------------+
    """

    __tablename__ = 'profiles'

    account_id = Column('id', ForeignKey('accounts.id'), primary_key=True)
    rating = Column('mmr', SmallInteger, nullable=False,
                    server_default=text("'1200'"))
    wins = Column(Integer, nullable=False, server_default=text("'0'"))
    draws = Column(Integer, nullable=False, server_default=text("'0'"))
    losses = Column(Integer, nullable=False, server_default=text("'0'"))
    avatar = Column(SmallInteger, nullable=False, server_default=text("'0'"))
    created = Column(DateTime, nullable=False, server_default=func.now())

    account = relationship('DBAccount', back_populates='profile')


class DBMatch(Base):  # type: ignore
    """
    A match between two players, as recorded by the match server.

    +---------+-------------+------+-----+---------+----------------+
    | Field   | Type        | Null | Key | Default | Extra          |
    +---------+-------------+------+-----+---------+----------------+
    | id      | bigint(20)  | NO   | PRI | NULL    | auto_increment |
    | player1 | int(11)     | NO   | MUL | NULL    |                |
    | player2 | int(11)     | NO   | MUL | NULL    |                |
    | winner  | int(11)     | YES  |     | NULL    |                |
    | phase   | tinyint(4)  | NO   |     | 0       |                |
    | end     | datetime    | YES  |     | NULL    |                |
    +---------+-------------+------+-----+---------+----------------+

    ``winner`` is null for a draw. Only matches in :data:`FINISHED` phase
    have a result.
    """

    __tablename__ = 'matches'

    FINISHED = 2

    match_id = Column('id', Integer, primary_key=True)
    player1 = Column(ForeignKey('accounts.id'), nullable=False, index=True)
    player2 = Column(ForeignKey('accounts.id'), nullable=False, index=True)
    winner = Column(ForeignKey('accounts.id'))
    phase = Column(SmallInteger, nullable=False, server_default=text("'0'"))
    end = Column(DateTime)
