"""Helpers and Flask application integration."""

from typing import Generator, Tuple, Any
from datetime import datetime, timedelta
from contextlib import contextmanager
from base64 import b32hexencode
import secrets
import time

from flask import Flask
from sqlalchemy import func, select, text
from sqlalchemy.orm.session import Session

from arxiv.base import logging
from arxiv.base.globals import get_application_config

from .. import config as defaults
from ..domain import TokenKind
from .models import db

logger = logging.getLogger(__name__)


def db_now(session: Session) -> datetime:
    """
    Get the current time by the database clock.

    Token expiries are computed and compared against this clock only, so
    that application servers with skewed clocks agree on token validity.
    """
    value = session.scalar(select(func.current_timestamp()))
    if isinstance(value, str):    # Some drivers hand back the raw string.
        value = datetime.fromisoformat(value)
    return value


def expiry_from(session: Session, hours: int) -> datetime:
    """Get the time ``hours`` from now, by the database clock."""
    return db_now(session) + timedelta(hours=hours)


def generate_public_id() -> str:
    """
    Generate an opaque, globally unique public ID.

    IDs are 48 bits of millisecond timestamp followed by 48 random bits,
    encoded as lowercase base32hex, so that they sort by creation time.
    """
    millis = int(time.time() * 1000)
    raw = millis.to_bytes(6, 'big') + secrets.token_bytes(6)
    return b32hexencode(raw).decode('ascii').rstrip('=').lower()


@contextmanager
def transaction() -> Generator:
    """Context manager for database transaction."""
    try:
        yield db.session
        # The caller may have explicitly committed already, in order to
        # implement exception handling logic. We only want to commit here if
        # there is anything remaining that is not flushed.
        if db.session.new or db.session.dirty or db.session.deleted:
            db.session.commit()
    except Exception as e:
        logger.warning('Commit failed, rolling back: %s', str(e))
        db.session.rollback()
        raise


def init_app(app: Flask) -> None:
    """Set configuration defaults and attach session to the application."""
    for key in dir(defaults):
        if key.isupper():
            app.config.setdefault(key, getattr(defaults, key))
    db.init_app(app)


def current_session() -> Session:
    """Get/create database session for this context."""
    return db.session


def create_all() -> None:
    """Create all tables in the database."""
    db.create_all()


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()


def _get(key: str) -> Any:
    config = get_application_config()
    value = config.get(key)
    if value is None:
        return getattr(defaults, key)
    return value


def get_credential_check_minimum() -> float:
    """Get the minimum duration of a credential check, in seconds."""
    return float(_get('CREDENTIAL_CHECK_MIN_SECONDS'))


def get_token_settings(kind: TokenKind) -> Tuple[int, int]:
    """Get the length and lifetime (in hours) of tokens of ``kind``."""
    prefix = kind.value.upper()
    return (int(_get(f'{prefix}_TOKEN_LENGTH')),
            int(_get(f'{prefix}_TOKEN_LIFETIME')))


def get_default_rating() -> int:
    """Get the rating assigned to new accounts."""
    return int(_get('DEFAULT_RATING'))


def get_elo_settings() -> Tuple[int, float]:
    """Get the K-factor and spread for Elo calculations."""
    return int(_get('ELO_K_FACTOR')), float(_get('ELO_SPREAD'))


def get_reserved_threshold() -> int:
    """Get the lowest account ID that is eligible for ranking."""
    return int(_get('RESERVED_ACCOUNT_ID_THRESHOLD'))


def get_leaderboard_max_count() -> int:
    """Get the largest leaderboard page callers may request."""
    return int(_get('LEADERBOARD_MAX_COUNT'))


def is_available(**kwargs: Any) -> bool:
    """Check our connection to the database."""
    try:
        db.session.execute(text("SELECT 1")).all()
    except Exception as e:
        logger.error('Encountered an error talking to database: %s', e)
        return False
    return True
