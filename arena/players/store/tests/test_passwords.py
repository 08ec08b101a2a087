"""Tests for :mod:`arena.players.store.passwords`."""

import string
from unittest import TestCase, mock

from hypothesis import given, settings
from hypothesis import strategies as st

from ...exceptions import CryptoError
from .. import passwords
from ..passwords import HashParams, PasswordVault

CHEAP = HashParams(log_n=4, r=8, p=1)


class TestHashPassword(TestCase):
    """Tests for :meth:`.PasswordVault.hash`."""

    def setUp(self):
        self.vault = PasswordVault(CHEAP)

    def test_hash_is_self_describing(self):
        """The hash names the algorithm and the cost parameters."""
        salted_hash = self.vault.hash('fooP@ss')
        _, algorithm, settings_, salt, key = salted_hash.split('$')
        self.assertEqual(algorithm, 'scrypt')
        self.assertEqual(settings_, 'ln=4,r=8,p=1')
        self.assertTrue(salt)
        self.assertTrue(key)

    def test_hash_is_salted(self):
        """Hashing the same password twice gives different hashes."""
        self.assertNotEqual(self.vault.hash('fooP@ss'),
                            self.vault.hash('fooP@ss'))

    def test_default_parameters(self):
        """The default vault uses N=2^14."""
        salted_hash = PasswordVault().hash('fooP@ss')
        self.assertIn('$ln=14,r=8,p=1$', salted_hash)

    @mock.patch(f'{passwords.__name__}.secrets.token_bytes')
    def test_salt_source_fails(self, mock_token_bytes):
        """If no salt can be drawn, a :class:`CryptoError` is raised."""
        for error in [OSError('no entropy'),
                      NotImplementedError('no urandom')]:
            mock_token_bytes.side_effect = error
            with self.assertRaises(CryptoError, msg=repr(error)):
                self.vault.hash('fooP@ss')

    @mock.patch(f'{passwords.__name__}.hashlib.scrypt')
    def test_primitive_fails(self, mock_scrypt):
        """A failure of scrypt itself is raised as :class:`CryptoError`."""
        mock_scrypt.side_effect = ValueError('memory limit exceeded')
        with self.assertRaises(CryptoError):
            self.vault.hash('fooP@ss')


class TestVerifyPassword(TestCase):
    """Tests for :meth:`.PasswordVault.verify`."""

    def setUp(self):
        self.vault = PasswordVault(CHEAP)

    @given(st.text(alphabet=string.printable))
    @settings(max_examples=25, deadline=None)
    def test_verify_successful(self, password):
        salted_hash = self.vault.hash(password)
        self.assertTrue(self.vault.verify(password, salted_hash),
                        f"should work for password '{password}'")

    @given(st.text(alphabet=string.printable), st.text())
    @settings(max_examples=25, deadline=None)
    def test_verify_fuzz(self, password, attempt):
        salted_hash = self.vault.hash(password)
        self.assertEqual(self.vault.verify(attempt, salted_hash),
                         password == attempt)

    def test_verify_with_other_parameters(self):
        """Hashes made with other cost parameters still verify."""
        salted_hash = PasswordVault(HashParams(log_n=5, r=4, p=2)) \
            .hash('fooP@ss')
        self.assertTrue(self.vault.verify('fooP@ss', salted_hash))
        self.assertFalse(self.vault.verify('barP@ss', salted_hash))

    def test_malformed_hash(self):
        """A malformed hash is an error, not a mismatch."""
        for malformed in ['', 'plaintext', '$scrypt$ln=4,r=8,p=1$abc',
                          '$bcrypt$ln=4,r=8,p=1$AAAA$AAAA',
                          '$scrypt$ln=x,r=8,p=1$AAAA$AAAA',
                          '$scrypt$ln=0,r=8,p=1$AAAA$AAAA',
                          '$scrypt$r=8,p=1$AAAA$AAAA',
                          '$scrypt$ln=4,r=8,p=1$!!!!$AAAA',
                          '$scrypt$ln=4,r=8,p=1$AAAA$']:
            with self.assertRaises(CryptoError, msg=malformed):
                self.vault.verify('fooP@ss', malformed)
