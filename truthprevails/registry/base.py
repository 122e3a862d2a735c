# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""
Hash registry interface.

The registry maps a content hash to the address that first submitted it and
the submission time. Each hash moves from absent to present exactly once;
entries are never updated or removed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

ZERO_ADDRESS = "0x" + "0" * 40


class RegistryError(Exception):
    """The registry backend could not be reached or returned an error."""


class InvalidHashError(RegistryError):
    """Zero or malformed hash submitted."""


class HashAlreadyRegisteredError(RegistryError):
    """The hash is already present; the first submitter keeps it."""

    def __init__(self, content_hash: str):
        super().__init__(f"Hash already exists: {content_hash[:16]}...")
        self.content_hash = content_hash


@dataclass(frozen=True)
class RegistryRecord:
    """Result of a registry lookup. Absent hashes carry zero values."""

    exists: bool
    submitter: str = ZERO_ADDRESS
    timestamp: int = 0

    @classmethod
    def absent(cls) -> "RegistryRecord":
        return cls(exists=False)


@dataclass(frozen=True)
class SubmissionReceipt:
    """Confirmation of an accepted submission."""

    content_hash: str
    submitter: str
    timestamp: int
    tx_hash: str
    block_number: Optional[int] = None


@dataclass(frozen=True)
class RegistryStats:
    total_hashes: int
    created_at: Optional[int] = None


class HashRegistry(ABC):
    """Operations shared by every registry backend. Hashes are 64-char hex."""

    backend: str = "abstract"

    @abstractmethod
    async def submit_hash(self, content_hash: str, signer_private_key: str) -> SubmissionReceipt:
        """
        Register a hash, signed by the given key.

        Raises:
            InvalidHashError: For the zero hash
            HashAlreadyRegisteredError: If any account already submitted it
            RegistryError: If the backend fails
        """

    @abstractmethod
    async def verify_hash(self, content_hash: str) -> RegistryRecord:
        """Look up a hash. Absent hashes return ``RegistryRecord.absent()``."""

    @abstractmethod
    async def get_all_hashes(self) -> List[str]:
        """All hashes in submission order."""

    @abstractmethod
    async def get_hashes_by_submitter(self, submitter: str) -> List[str]:
        """Hashes submitted by one address, in submission order."""

    @abstractmethod
    async def get_recent_hashes(self, count: int) -> List[str]:
        """
        The last ``count`` hashes, oldest of the window first.

        Clamped to the number of hashes available.
        """

    @abstractmethod
    async def get_total_hashes(self) -> int:
        """Number of registered hashes."""

    async def has_submitted_hashes(self, submitter: str) -> bool:
        return bool(await self.get_hashes_by_submitter(submitter))

    async def get_stats(self) -> RegistryStats:
        return RegistryStats(total_hashes=await self.get_total_hashes())

    async def close(self) -> None:
        """Release backend resources."""
