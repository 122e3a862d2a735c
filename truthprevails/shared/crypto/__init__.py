"""Cryptographic helpers: content hashing, custodial wallets and password hashing."""

from .hashing import (
    ZERO_HASH,
    from_bytes32,
    normalize_hash,
    sha256_file,
    sha256_hex,
    to_bytes32,
    verify_hash_format,
)

__all__ = [
    "ZERO_HASH",
    "from_bytes32",
    "normalize_hash",
    "sha256_file",
    "sha256_hex",
    "to_bytes32",
    "verify_hash_format",
]
