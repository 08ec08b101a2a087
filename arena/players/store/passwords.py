"""Salted, memory-hard password hashing."""

import binascii
import hashlib
import hmac
import secrets
from base64 import b64encode, b64decode
from typing import NamedTuple

from arxiv.base import logging

from ..exceptions import CryptoError

logger = logging.getLogger(__name__)

ALGORITHM = 'scrypt'


class HashParams(NamedTuple):
    """Cost parameters for scrypt."""

    log_n: int = 14
    """Base-2 logarithm of the CPU/memory cost N."""

    r: int = 8
    """Block size."""

    p: int = 1
    """Parallelism."""

    salt_length: int = 16
    key_length: int = 32

    @property
    def maxmem(self) -> int:
        """Memory ceiling handed to scrypt, with headroom over 128·N·r."""
        return 2 * 128 * (2 ** self.log_n) * self.r * self.p + 1024 * 1024


class PasswordVault(object):
    """
    Hashes and verifies passwords.

    Hashes are self-describing strings of the form
    ``$scrypt$ln=14,r=8,p=1$<salt>$<key>`` with base64 salt and key, so that
    the cost parameters may be raised later without invalidating stored
    hashes. Parameters are fixed for the lifetime of the vault.
    """

    def __init__(self, params: HashParams = HashParams()) -> None:
        self._params = params

    def hash(self, password: str) -> str:
        """
        Generate a salted hash of a password.

        Raises
        ------
        :class:`CryptoError`
            If the entropy source or the hashing primitive fails.

        """
        params = self._params
        try:
            salt = secrets.token_bytes(params.salt_length)
        except (OSError, NotImplementedError) as e:
            raise CryptoError('Could not generate salt') from e
        key = _derive(password, salt, params.log_n, params.r, params.p,
                      params.key_length)
        return '$'.join([
            '',
            ALGORITHM,
            f'ln={params.log_n},r={params.r},p={params.p}',
            b64encode(salt).decode('ascii'),
            b64encode(key).decode('ascii')
        ])

    def verify(self, password: str, salted_hash: str) -> bool:
        """
        Check a password against a stored salted hash.

        Returns
        -------
        bool
            Whether or not the password matches.

        Raises
        ------
        :class:`CryptoError`
            If the stored hash is malformed or the primitive fails. This is
            never reported as a mismatch.

        """
        try:
            _, algorithm, settings, salt_enc, key_enc = salted_hash.split('$')
            if algorithm != ALGORITHM:
                raise ValueError(f'Unsupported algorithm {algorithm}')
            opts = dict(opt.split('=', 1) for opt in settings.split(','))
            log_n, r, p = int(opts['ln']), int(opts['r']), int(opts['p'])
            if min(log_n, r, p) < 1:
                raise ValueError('Cost parameters must be positive')
            salt = b64decode(salt_enc, validate=True)
            expected = b64decode(key_enc, validate=True)
        except (ValueError, KeyError, binascii.Error, AttributeError) as e:
            logger.error('Malformed password hash: %s', e)
            raise CryptoError('Malformed password hash') from e
        if not expected:
            raise CryptoError('Malformed password hash')
        key = _derive(password, salt, log_n, r, p, len(expected))
        return hmac.compare_digest(key, expected)


def _derive(password: str, salt: bytes, log_n: int, r: int, p: int,
            key_length: int) -> bytes:
    maxmem = HashParams(log_n=log_n, r=r, p=p).maxmem
    secret = password.encode('utf-8')
    try:
        return hashlib.scrypt(secret, salt=salt,
                              n=2 ** log_n, r=r, p=p, maxmem=maxmem,
                              dklen=key_length)
    except (ValueError, MemoryError, OverflowError) as e:
        logger.error('scrypt failed: %s', e)
        raise CryptoError(f'Password hashing failed: {e}') from e
