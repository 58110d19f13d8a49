"""
Password hashing and verification.

Uses scrypt (memory-hard KDF) from the ``cryptography`` library.  Stored
form is ``<salt_hex>:<derived_key_hex>`` where the salt is 16 random bytes
and the derived key is 64 bytes.  The hex salt string itself is the KDF salt
input, so hashes written by the previous storefront backend still verify.
"""

from __future__ import annotations

import os

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

_SALT_BYTES = 16
_KEY_LENGTH = 64
_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1


def _kdf(salt_hex: str) -> Scrypt:
    # Scrypt instances are single-use.
    return Scrypt(
        salt=salt_hex.encode(),
        length=_KEY_LENGTH,
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
    )


def hash_password(password: str) -> str:
    """Hash a password with a fresh random salt."""
    salt_hex = os.urandom(_SALT_BYTES).hex()
    derived = _kdf(salt_hex).derive(password.encode())
    return f"{salt_hex}:{derived.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison against a stored scrypt hash."""
    try:
        salt_hex, key_hex = password_hash.split(":")
        expected = bytes.fromhex(key_hex)
        if not salt_hex or len(expected) != _KEY_LENGTH:
            return False
        _kdf(salt_hex).verify(password.encode(), expected)
        return True
    except (InvalidKey, ValueError, TypeError, AttributeError):
        return False
