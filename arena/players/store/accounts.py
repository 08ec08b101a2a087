"""Provide methods for working with player accounts and credentials."""

import hmac
import re
import time
from typing import Callable, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.session import Session
from arxiv.base import logging

from .. import domain
from ..domain import Privilege, TokenKind
from ..exceptions import NoSuchAccount, HandleAlreadyExists, \
    EmailAlreadyExists, AccountBanned, CredentialMismatch, \
    AuthenticationFailed, InvalidToken, InsufficientPrivilege, StorageError
from . import util
from .models import DBAccount, DBProfile, DBToken
from .passwords import PasswordVault
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], None]


def account_exists(handle: str) -> bool:
    """
    Determine whether an account with a particular handle already exists.

    Parameters
    ----------
    handle : str

    Returns
    -------
    bool

    """
    try:
        with util.transaction() as session:
            data = session.scalar(
                select(DBAccount.account_id).where(DBAccount.handle == handle)
            )
    except SQLAlchemyError as e:
        raise StorageError(f'Could not look up handle {handle}') from e
    return data is not None


def email_exists(email: str) -> bool:
    """Determine whether an account with a particular address exists."""
    try:
        with util.transaction() as session:
            data = session.scalar(
                select(DBAccount.account_id).where(DBAccount.email == email)
            )
    except SQLAlchemyError as e:
        raise StorageError(f'Could not look up email {email}') from e
    return data is not None


def create_account(handle: str, email: str, password: str,
                   vault: Optional[PasswordVault] = None,
                   issuer: Optional[TokenIssuer] = None) -> str:
    """
    Create a new account, with its profile and email confirmation token.

    Everything is written in a single transaction: if any step fails, no
    trace of the account is left behind.

    Parameters
    ----------
    handle : str
    email : str
    password : str
        Password (as entered).
    vault : :class:`.PasswordVault`
        Used to hash the password. A default vault is used if not provided.
    issuer : :class:`.TokenIssuer`
        Used to generate the email confirmation token.

    Returns
    -------
    str
        The email confirmation token. Sending it to the player is the
        caller's job, and must only happen after this function returns.

    Raises
    ------
    :class:`HandleAlreadyExists`
    :class:`EmailAlreadyExists`
    :class:`CryptoError`
        If the password could not be hashed or the token generated.
    :class:`StorageError`

    """
    vault = vault or PasswordVault()
    issuer = issuer or TokenIssuer()
    if account_exists(handle):
        raise HandleAlreadyExists(f'Handle {handle} is already in use')

    length, lifetime = util.get_token_settings(TokenKind.EMAIL_CONFIRMATION)
    try:
        with util.transaction() as session:
            db_account = DBAccount(
                public_id=util.generate_public_id(),
                handle=handle,
                email=email,
                salted_hash=vault.hash(password),
                privilege=int(Privilege.USER),
                banned=False,
                email_confirmed=False
            )
            session.add(db_account)
            session.flush()     # Unique constraints are enforced here.

            session.add(DBProfile(account=db_account,
                                  rating=util.get_default_rating()))
            token = issuer.generate(length)
            expiry = util.expiry_from(session, lifetime)
            db_token = DBToken(account=db_account)
            db_token.put(TokenKind.EMAIL_CONFIRMATION, token, expiry)
            session.add(db_token)
            session.commit()
            account_id = db_account.account_id
    except IntegrityError as e:
        raise _collision(e, handle, email) from e
    except SQLAlchemyError as e:
        raise StorageError(f'Could not create account {handle}') from e
    logger.debug('Created account %s for %s', account_id, handle)
    return token


def verify_credentials(handle: str, password: str,
                       vault: Optional[PasswordVault] = None,
                       clock: Clock = time.monotonic,
                       sleep: Sleep = time.sleep) -> None:
    """
    Check a handle and password, in constant time.

    The whole check takes at least the configured minimum duration
    (``CREDENTIAL_CHECK_MIN_SECONDS``), whatever the outcome. An unknown
    handle and a wrong password are both reported as
    :class:`AuthenticationFailed`; the underlying reason is chained as the
    cause and logged.

    Parameters
    ----------
    handle : str
    password : str
        Password (as entered).
    vault : :class:`.PasswordVault`
    clock : callable
        Monotonic clock, in seconds.
    sleep : callable
        Blocks for the passed number of seconds.

    Raises
    ------
    :class:`AuthenticationFailed`
    :class:`AccountBanned`
    :class:`CryptoError`
    :class:`StorageError`

    """
    started = clock()
    minimum = util.get_credential_check_minimum()
    try:
        _verify_credentials(handle, password, vault or PasswordVault())
    finally:
        _pad(started, minimum, clock, sleep)


def authenticate(handle: str, password: str,
                 vault: Optional[PasswordVault] = None,
                 issuer: Optional[TokenIssuer] = None) -> domain.AuthTokens:
    """
    Log a player in, issuing fresh auth and refresh tokens.

    Raises the same exceptions as :func:`verify_credentials`.
    """
    verify_credentials(handle, password, vault=vault)
    account_id, public_id = get_account_identifiers(handle)
    return domain.AuthTokens(
        public_id=public_id,
        auth_token=issue_token(account_id, TokenKind.AUTH, issuer),
        refresh_token=issue_token(account_id, TokenKind.REFRESH, issuer)
    )


def get_account_identifiers(handle: str) -> Tuple[int, str]:
    """
    Get the internal and public IDs of the account with ``handle``.

    Raises
    ------
    :class:`NoSuchAccount`

    """
    try:
        with util.transaction() as session:
            row = session.execute(
                select(DBAccount.account_id, DBAccount.public_id)
                .where(DBAccount.handle == handle)
            ).first()
    except SQLAlchemyError as e:
        raise StorageError(f'Could not get IDs for {handle}') from e
    if row is None:
        raise NoSuchAccount(f'No account with handle {handle}')
    return row.account_id, row.public_id


def get_internal_id(public_id: str) -> int:
    """
    Get the internal ID for a public ID.

    Raises
    ------
    :class:`NoSuchAccount`

    """
    try:
        with util.transaction() as session:
            account_id = session.scalar(
                select(DBAccount.account_id)
                .where(DBAccount.public_id == public_id)
            )
    except SQLAlchemyError as e:
        raise StorageError(f'Could not get ID for {public_id}') from e
    if account_id is None:
        raise NoSuchAccount(f'No account with public ID {public_id}')
    return int(account_id)


def get_account(handle: str) -> domain.Account:
    """Load account data, without credentials."""
    try:
        with util.transaction() as session:
            db_account = session.scalar(
                select(DBAccount).where(DBAccount.handle == handle)
            )
            if db_account is None:
                raise NoSuchAccount(f'No account with handle {handle}')
            return _to_domain(db_account)
    except SQLAlchemyError as e:
        raise StorageError(f'Could not load account {handle}') from e


def set_token(account_id: int, kind: TokenKind, token: str,
              lifetime_hours: int) -> None:
    """
    Store a token for an account, replacing any previous token of ``kind``.

    The expiry is ``lifetime_hours`` from now by the database clock.

    Raises
    ------
    :class:`NoSuchAccount`
    :class:`StorageError`

    """
    try:
        with util.transaction() as session:
            expiry = util.expiry_from(session, lifetime_hours)
            db_token = _get_or_create_token_row(session, account_id)
            db_token.put(kind, token, expiry)
            session.add(db_token)
            session.commit()
    except SQLAlchemyError as e:
        raise StorageError(f'Could not set {kind.value} token for'
                           f' {account_id}') from e


def issue_token(account_id: int, kind: TokenKind,
                issuer: Optional[TokenIssuer] = None) -> str:
    """Generate and store a token of ``kind``, per configured settings."""
    length, lifetime = util.get_token_settings(kind)
    token = (issuer or TokenIssuer()).generate(length)
    set_token(account_id, kind, token, lifetime)
    return token


def check_token(account_id: int, kind: TokenKind, token: str) -> bool:
    """
    Check whether ``token`` is the live token of ``kind`` for an account.

    Expired tokens never match, regardless of the stored value.
    """
    try:
        with util.transaction() as session:
            return _token_is_live(session, account_id, kind, token)
    except SQLAlchemyError as e:
        raise StorageError(f'Could not check {kind.value} token for'
                           f' {account_id}') from e


def check_auth_token(public_id: str, token: str) -> int:
    """
    Check an auth token presented on behalf of a public ID.

    Returns
    -------
    int
        The internal ID of the account.

    Raises
    ------
    :class:`NoSuchAccount`
    :class:`InvalidToken`

    """
    account_id = get_internal_id(public_id)
    if not check_token(account_id, TokenKind.AUTH, token):
        raise InvalidToken('Auth token is not valid')
    return account_id


def confirm_email(account_id: int, token: str) -> None:
    """
    Mark an account's email as confirmed, consuming the confirmation token.

    Raises
    ------
    :class:`NoSuchAccount`
    :class:`InvalidToken`

    """
    try:
        with util.transaction() as session:
            db_account = _get_account_by_id(session, account_id)
            kind = TokenKind.EMAIL_CONFIRMATION
            if not _token_is_live(session, account_id, kind, token):
                raise InvalidToken('Email confirmation token is not valid')
            db_account.email_confirmed = True
            db_account.tokens.put(kind, None, None)
            session.commit()
    except SQLAlchemyError as e:
        raise StorageError(f'Could not confirm email for {account_id}') \
            from e


def reset_password(account_id: int, token: str, new_password: str,
                   vault: Optional[PasswordVault] = None) -> None:
    """
    Replace an account's password, consuming the password reset token.

    Raises
    ------
    :class:`NoSuchAccount`
    :class:`InvalidToken`
    :class:`CryptoError`

    """
    vault = vault or PasswordVault()
    try:
        with util.transaction() as session:
            db_account = _get_account_by_id(session, account_id)
            kind = TokenKind.PASSWORD_RESET
            if not _token_is_live(session, account_id, kind, token):
                raise InvalidToken('Password reset token is not valid')
            db_account.salted_hash = vault.hash(new_password)
            db_account.tokens.put(kind, None, None)
            session.commit()
    except SQLAlchemyError as e:
        raise StorageError(f'Could not reset password for {account_id}') \
            from e
    logger.debug('Password reset for %s', account_id)


def check_privilege(handle: str, minimum: Privilege) -> bool:
    """
    Determine whether an account holds at least ``minimum`` privilege.

    Raises
    ------
    :class:`NoSuchAccount`
        If there is no such account; distinct from a ``False`` result.

    """
    try:
        with util.transaction() as session:
            privilege = session.scalar(
                select(DBAccount.privilege).where(DBAccount.handle == handle)
            )
    except SQLAlchemyError as e:
        raise StorageError(f'Could not get privilege for {handle}') from e
    if privilege is None:
        raise NoSuchAccount(f'No account with handle {handle}')
    return Privilege(privilege) >= minimum


def require_privilege(handle: str, minimum: Privilege) -> None:
    """Raise :class:`InsufficientPrivilege` unless :func:`check_privilege`."""
    if not check_privilege(handle, minimum):
        raise InsufficientPrivilege(f'{handle} lacks {minimum.name}')


def _verify_credentials(handle: str, password: str,
                        vault: PasswordVault) -> None:
    try:
        with util.transaction() as session:
            row = session.execute(
                select(DBAccount.salted_hash, DBAccount.banned)
                .where(DBAccount.handle == handle)
            ).first()
    except SQLAlchemyError as e:
        raise StorageError(f'Could not load credentials for {handle}') from e
    try:
        if row is None:
            raise NoSuchAccount(f'No account with handle {handle}')
        if row.banned:
            raise AccountBanned(f'{handle} is banned')
        if not vault.verify(password, row.salted_hash):
            raise CredentialMismatch('Incorrect password')
    except (NoSuchAccount, CredentialMismatch) as e:
        logger.debug('Authentication failed for %s: %s', handle, e)
        raise AuthenticationFailed('Invalid handle or password') from e


def _pad(started: float, minimum: float, clock: Clock,
         sleep: Sleep) -> None:
    remaining = minimum - (clock() - started)
    if remaining > 0:
        sleep(remaining)


def _token_is_live(session: Session, account_id: int, kind: TokenKind,
                   token: str) -> bool:
    db_token = session.get(DBToken, account_id)
    if db_token is None:
        return False
    value, expiry = db_token.get(kind)
    if not value or expiry is None or not token:
        return False
    if expiry <= util.db_now(session):
        return False
    return hmac.compare_digest(value.encode('utf-8'), token.encode('utf-8'))


def _get_account_by_id(session: Session, account_id: int) -> DBAccount:
    db_account = session.get(DBAccount, account_id)
    if db_account is None:
        raise NoSuchAccount(f'No account with ID {account_id}')
    return db_account


def _get_or_create_token_row(session: Session, account_id: int) -> DBToken:
    db_token = session.get(DBToken, account_id)
    if db_token is None:
        # Seeded accounts may have been inserted without a token row.
        _get_account_by_id(session, account_id)
        db_token = DBToken(account_id=account_id)
    return db_token


_KEY_PATTERNS = [
    re.compile(r"for key '([^']+)'"),               # MySQL
    re.compile(r"UNIQUE constraint failed: (\S+)"),  # SQLite
    re.compile(r'constraint "([^"]+)"'),            # PostgreSQL
]


def _collision(error: IntegrityError, handle: str, email: str) \
        -> RuntimeError:
    """Work out which unique column an insert collided on."""
    message = str(error.orig)
    for pattern in _KEY_PATTERNS:
        match = pattern.search(message)
        if match is None:
            continue
        key = match.group(1).lower()
        if 'handle' in key:
            return HandleAlreadyExists(f'Handle {handle} is already in use')
        if 'email' in key:
            return EmailAlreadyExists(f'Email {email} is already in use')
    # The message did not tell us; ask the database instead.
    if account_exists(handle):
        return HandleAlreadyExists(f'Handle {handle} is already in use')
    if email_exists(email):
        return EmailAlreadyExists(f'Email {email} is already in use')
    return StorageError(f'Could not create account {handle}')


def _to_domain(db_account: DBAccount) -> domain.Account:
    return domain.Account(
        account_id=db_account.account_id,
        public_id=db_account.public_id,
        handle=db_account.handle,
        email=db_account.email,
        privilege=Privilege(db_account.privilege),
        banned=bool(db_account.banned),
        email_confirmed=bool(db_account.email_confirmed)
    )
