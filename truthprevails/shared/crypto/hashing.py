# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""Content hashing utilities shared by upload and verification paths."""

import hashlib
import re
from pathlib import Path
from typing import Union

ZERO_HASH = "0" * 64

_HASH_RE = re.compile(r"^[a-f0-9]{64}$", re.IGNORECASE)


def sha256_hex(data: bytes) -> str:
    """Compute SHA-256 hash and return as hex string."""
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: Union[str, Path], chunk_size: int = 1024 * 1024) -> str:
    """
    Hash a file on disk without loading it into memory.

    Produces the same digest as ``sha256_hex`` over the file's bytes.
    """
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def verify_hash_format(hash_str: str) -> bool:
    """
    Verify that a string is a valid SHA-256 hash.

    Args:
        hash_str: String to validate

    Returns:
        True if valid 64-character hex string
    """
    if not isinstance(hash_str, str):
        return False
    return bool(_HASH_RE.match(hash_str))


def normalize_hash(value: str) -> str:
    """
    Canonicalize a hash to 64 lowercase hex characters.

    A leading ``0x`` (as returned by Ethereum tooling) is stripped.

    Raises:
        ValueError: If the value is not a SHA-256 hex digest
    """
    if not isinstance(value, str):
        raise ValueError("Hash must be a string")
    candidate = value.strip()
    if candidate[:2].lower() == "0x":
        candidate = candidate[2:]
    if not verify_hash_format(candidate):
        raise ValueError("Hash must be 64 hexadecimal characters")
    return candidate.lower()


def to_bytes32(hash_hex: str) -> bytes:
    """Convert a hex digest to the 32-byte value the registry contract expects."""
    return bytes.fromhex(normalize_hash(hash_hex))


def from_bytes32(value: bytes) -> str:
    """Convert a ``bytes32`` value read from the contract back to hex."""
    if len(value) != 32:
        raise ValueError(f"Expected 32 bytes, got {len(value)}")
    return bytes(value).hex()
