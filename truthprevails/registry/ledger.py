# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""Append-only hash registry stored in the service database."""

import json
import logging
import time
from typing import List

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from web3 import Web3

from truthprevails.registry.base import (
    HashAlreadyRegisteredError,
    HashRegistry,
    InvalidHashError,
    RegistryError,
    RegistryRecord,
    RegistryStats,
    SubmissionReceipt,
)
from truthprevails.shared.crypto.hashing import ZERO_HASH, normalize_hash, sha256_hex
from truthprevails.shared.crypto.wallet import address_for_key
from truthprevails.shared.database.connection import Database
from truthprevails.shared.database.models import RegistryEntry

logger = logging.getLogger(__name__)


def compute_transaction_hash(content_hash: str, submitter: str, timestamp: int) -> str:
    """
    Deterministic transaction reference for a ledger entry.

    Returns:
        0x-prefixed SHA-256 (66 chars)
    """
    tx_data = {
        "hash": content_hash,
        "submitter": submitter.lower(),
        "timestamp": timestamp,
    }
    canonical_json = json.dumps(tx_data, sort_keys=True, separators=(",", ":"))
    return "0x" + sha256_hex(canonical_json.encode("utf-8"))


class LedgerRegistry(HashRegistry):
    """
    Registry backed by the ``registry_entries`` table.

    Uses its own sessions, independent of request transactions, so a
    submission is durable as soon as ``submit_hash`` returns.
    """

    backend = "ledger"

    def __init__(self, database: Database):
        self.database = database

    async def submit_hash(self, content_hash: str, signer_private_key: str) -> SubmissionReceipt:
        try:
            content_hash = normalize_hash(content_hash)
        except ValueError as e:
            raise InvalidHashError(str(e)) from e
        if content_hash == ZERO_HASH:
            raise InvalidHashError("Invalid hash")

        try:
            submitter = address_for_key(signer_private_key)
        except (ValueError, TypeError) as e:
            raise RegistryError(f"Invalid signing key: {e}") from e

        timestamp = int(time.time())
        tx_hash = compute_transaction_hash(content_hash, submitter, timestamp)

        try:
            async with self.database.session() as db:
                stmt = select(RegistryEntry.seq).where(RegistryEntry.content_hash == content_hash)
                result = await db.execute(stmt)
                if result.scalar_one_or_none() is not None:
                    raise HashAlreadyRegisteredError(content_hash)

                db.add(
                    RegistryEntry(
                        content_hash=content_hash,
                        submitter=submitter,
                        timestamp=timestamp,
                        tx_hash=tx_hash,
                    )
                )
                try:
                    await db.flush()
                except IntegrityError as e:
                    # Lost a race with a concurrent submission of the same hash
                    raise HashAlreadyRegisteredError(content_hash) from e
        except SQLAlchemyError as e:
            raise RegistryError(f"Ledger write failed: {e}") from e

        logger.info(f"Ledger entry {content_hash[:16]}... submitted by {submitter}: tx={tx_hash[:18]}...")
        return SubmissionReceipt(
            content_hash=content_hash,
            submitter=submitter,
            timestamp=timestamp,
            tx_hash=tx_hash,
        )

    async def verify_hash(self, content_hash: str) -> RegistryRecord:
        try:
            content_hash = normalize_hash(content_hash)
        except ValueError:
            return RegistryRecord.absent()

        try:
            async with self.database.session() as db:
                stmt = select(RegistryEntry).where(RegistryEntry.content_hash == content_hash)
                result = await db.execute(stmt)
                entry = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RegistryError(f"Ledger read failed: {e}") from e

        if entry is None:
            return RegistryRecord.absent()
        return RegistryRecord(exists=True, submitter=entry.submitter, timestamp=entry.timestamp)

    async def _hashes(self, stmt) -> List[str]:
        try:
            async with self.database.session() as db:
                result = await db.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise RegistryError(f"Ledger read failed: {e}") from e

    async def get_all_hashes(self) -> List[str]:
        return await self._hashes(select(RegistryEntry.content_hash).order_by(RegistryEntry.seq))

    async def get_hashes_by_submitter(self, submitter: str) -> List[str]:
        # Entries store checksum addresses
        try:
            address = Web3.to_checksum_address(submitter)
        except ValueError:
            return []
        stmt = (
            select(RegistryEntry.content_hash)
            .where(RegistryEntry.submitter == address)
            .order_by(RegistryEntry.seq)
        )
        return await self._hashes(stmt)

    async def get_recent_hashes(self, count: int) -> List[str]:
        if count <= 0:
            return []
        stmt = select(RegistryEntry.content_hash).order_by(RegistryEntry.seq.desc()).limit(count)
        newest_first = await self._hashes(stmt)
        return list(reversed(newest_first))

    async def get_total_hashes(self) -> int:
        try:
            async with self.database.session() as db:
                result = await db.execute(select(func.count(RegistryEntry.seq)))
                return result.scalar_one()
        except SQLAlchemyError as e:
            raise RegistryError(f"Ledger read failed: {e}") from e

    async def get_stats(self) -> RegistryStats:
        try:
            async with self.database.session() as db:
                result = await db.execute(
                    select(func.count(RegistryEntry.seq), func.min(RegistryEntry.timestamp))
                )
                total, first_timestamp = result.one()
        except SQLAlchemyError as e:
            raise RegistryError(f"Ledger read failed: {e}") from e
        return RegistryStats(total_hashes=total, created_at=first_timestamp)
