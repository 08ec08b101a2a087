"""Generation of random credential tokens."""

import secrets
import string
from typing import Callable

from arxiv.base import logging

from ..exceptions import CryptoError

logger = logging.getLogger(__name__)

ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
"""The 62 symbols a token may contain."""

_ACCEPT_BELOW = 256 - (256 % len(ALPHABET))
"""Bytes at or above this value would bias the draw, and are rejected."""

_BATCH = 32


class TokenIssuer(object):
    """
    Generates cryptographically secure alphanumeric tokens.

    Parameters
    ----------
    source : callable
        Returns ``n`` random bytes when called with ``n``. Defaults to
        :func:`secrets.token_bytes`.

    """

    def __init__(self, source: Callable[[int], bytes] = secrets.token_bytes) \
            -> None:
        self._source = source

    def generate(self, length: int) -> str:
        """
        Generate a token of exactly ``length`` characters from
        :data:`ALPHABET`.

        Random bytes are drawn from the source and mapped onto the alphabet;
        bytes that would introduce a modulo bias are discarded, and more are
        drawn until the token is complete.

        Raises
        ------
        :class:`CryptoError`
            If the entropy source fails.

        """
        if length < 0:
            raise ValueError('Token length must not be negative')
        chars = []
        while len(chars) < length:
            try:
                batch = self._source(_BATCH)
            except Exception as e:
                logger.error('Entropy source failed: %s', e)
                raise CryptoError('Could not generate token') from e
            for byte in batch:
                if byte >= _ACCEPT_BELOW:
                    continue
                chars.append(ALPHABET[byte % len(ALPHABET)])
                if len(chars) == length:
                    break
        return ''.join(chars)


def generate(length: int) -> str:
    """Generate a token using the system's secure random source."""
    return TokenIssuer().generate(length)
