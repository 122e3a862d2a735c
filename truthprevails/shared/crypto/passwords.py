# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""Password hashing with scrypt."""

import base64
import os

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

_SCHEME = "scrypt"
_N = 2**14
_R = 8
_P = 1
_LENGTH = 32


def _kdf(salt: bytes) -> Scrypt:
    return Scrypt(salt=salt, length=_LENGTH, n=_N, r=_R, p=_P)


def hash_password(password: str) -> str:
    """
    Hash a password for storage.

    Returns:
        ``scrypt$<salt b64>$<hash b64>``
    """
    salt = os.urandom(16)
    derived = _kdf(salt).derive(password.encode("utf-8"))
    return "$".join(
        [
            _SCHEME,
            base64.b64encode(salt).decode("ascii"),
            base64.b64encode(derived).decode("ascii"),
        ]
    )


def verify_password(password: str, stored: str) -> bool:
    """Check a password against a stored hash. Malformed hashes never match."""
    try:
        scheme, salt_b64, hash_b64 = stored.split("$")
        if scheme != _SCHEME:
            return False
        salt = base64.b64decode(salt_b64, validate=True)
        expected = base64.b64decode(hash_b64, validate=True)
    except (ValueError, AttributeError):
        return False

    try:
        _kdf(salt).verify(password.encode("utf-8"), expected)
        return True
    except InvalidKey:
        return False
