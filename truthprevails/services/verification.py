# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""
Public verification of content hashes.

The registry answers whether a hash is anchored; the file store only adds
descriptive metadata. Either answer stands on its own.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from truthprevails.context import AppContext
from truthprevails.registry.base import ZERO_ADDRESS, RegistryError
from truthprevails.services.files import FileService
from truthprevails.shared.crypto.hashing import normalize_hash, sha256_hex
from truthprevails.shared.database.models import (
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_VERIFIED,
    FileRecord,
    UserAccount,
)
from truthprevails.shared.errors import Unavailable, UpstreamError, ValidationFailedError
from truthprevails.shared.models.schemas import (
    BatchSummary,
    BatchVerificationItem,
    FileMetadata,
    Pagination,
    RegistryStats,
    VerificationResult,
    VerificationStats,
    VerificationStatusItem,
)

logger = logging.getLogger(__name__)

MAX_RECENT = 100


class VerificationService:
    def __init__(self, ctx: AppContext):
        self.ctx = ctx
        self.database = ctx.database
        self.files = FileService(ctx)

    async def verify_hash(self, content_hash: str) -> VerificationResult:
        """
        Look up a hash in the registry and the file store.

        Raises:
            ValidationFailedError: If the hash is malformed
            UpstreamError: If the registry backend or the file store fails
        """
        try:
            content_hash = normalize_hash(content_hash)
        except ValueError as e:
            raise ValidationFailedError(str(e), field="hash") from e

        logger.info(f"Verification query for hash: {content_hash[:16]}...")

        registry = self.ctx.registry
        registry_available = not isinstance(registry, Unavailable)
        exists, submitter, timestamp = False, ZERO_ADDRESS, 0
        if registry_available:
            try:
                record = await registry.verify_hash(content_hash)
            except RegistryError as e:
                raise UpstreamError("Failed to verify hash", details=str(e)) from e
            exists, submitter, timestamp = record.exists, record.submitter, record.timestamp

        try:
            file_record = await self.files.find_first_by_hash(content_hash)
        except SQLAlchemyError as e:
            logger.error(f"File metadata lookup failed for {content_hash[:16]}...: {e}")
            raise UpstreamError("Failed to load file metadata", details=str(e)) from e
        metadata = None
        tx_hash = None
        if file_record is not None:
            metadata = FileMetadata(
                file_name=file_record.file_name,
                file_size=file_record.file_size,
                file_type=file_record.file_type,
                upload_time=file_record.upload_time,
            )
            tx_hash = file_record.transaction_hash

        if exists:
            logger.info(f"Hash VERIFIED: {content_hash[:16]}... submitted by {submitter}")
        else:
            logger.info(f"Hash NOT FOUND: {content_hash[:16]}...")

        return VerificationResult(
            hash=content_hash,
            exists=exists,
            submitter=submitter,
            timestamp=timestamp,
            transaction_hash=tx_hash,
            transaction_url=self.ctx.settings.transaction_url(tx_hash),
            file_metadata=metadata,
            registry_available=registry_available,
        )

    async def verify_bytes(self, data: bytes) -> VerificationResult:
        """Hash uploaded bytes and verify the digest."""
        if not data:
            raise ValidationFailedError("No file provided", field="file")
        return await self.verify_hash(sha256_hex(data))

    async def verify_batch(self, hashes: List[str]) -> Tuple[List[BatchVerificationItem], BatchSummary]:
        """
        Verify each hash independently.

        A malformed hash or a failing lookup only produces an error entry for
        that item.
        """
        limit = self.ctx.settings.max_batch_size
        if len(hashes) > limit:
            raise ValidationFailedError(f"At most {limit} hashes per batch", field="hashes")

        results: List[BatchVerificationItem] = []
        for value in hashes:
            try:
                result = await self.verify_hash(value)
            except (ValidationFailedError, UpstreamError) as e:
                detail = e.details if isinstance(e.details, str) else e.message
                results.append(BatchVerificationItem(hash=str(value), error=detail))
                continue
            results.append(
                BatchVerificationItem(
                    hash=result.hash,
                    exists=result.exists,
                    submitter=result.submitter,
                    timestamp=result.timestamp,
                    transaction_url=result.transaction_url,
                    file_metadata=result.file_metadata,
                    registry_available=result.registry_available,
                )
            )

        errors = sum(1 for r in results if r.error is not None)
        verified = sum(1 for r in results if r.exists)
        summary = BatchSummary(
            total=len(results),
            verified=verified,
            not_found=len(results) - verified - errors,
            errors=errors,
        )
        return results, summary

    async def recent(self, limit: int = 10) -> List[str]:
        registry = self.ctx.registry
        if isinstance(registry, Unavailable):
            raise registry.error()
        limit = max(0, min(limit, MAX_RECENT))
        try:
            return await registry.get_recent_hashes(limit)
        except RegistryError as e:
            raise UpstreamError("Failed to fetch recent hashes", details=str(e)) from e

    async def stats(self) -> VerificationStats:
        async with self.database.session() as db:
            result = await db.execute(
                select(FileRecord.verification_status, func.count(FileRecord.id)).group_by(
                    FileRecord.verification_status
                )
            )
            counts = dict(result.all())

        total = sum(counts.values())
        verified = counts.get(STATUS_VERIFIED, 0)

        blockchain_stats: Optional[RegistryStats] = None
        registry = self.ctx.registry
        if not isinstance(registry, Unavailable):
            try:
                stats = await registry.get_stats()
                blockchain_stats = RegistryStats(total_hashes=stats.total_hashes, created_at=stats.created_at)
            except RegistryError as e:
                logger.warning(f"Registry stats unavailable: {e}")

        return VerificationStats(
            total_files=total,
            verified_files=verified,
            pending_files=counts.get(STATUS_PENDING, 0),
            failed_files=counts.get(STATUS_FAILED, 0),
            verification_rate=round(verified / total * 100, 2) if total else 0.0,
            blockchain_stats=blockchain_stats,
        )

    async def status_for_user(
        self,
        user: UserAccount,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
    ) -> Tuple[List[VerificationStatusItem], Pagination]:
        records, pagination = await self.files.list_for_owner(user, page=page, limit=limit, status=status)
        items = [
            VerificationStatusItem(
                id=r.id,
                file_name=r.file_name,
                file_hash=r.content_hash,
                verification_status=r.verification_status,
                transaction_hash=r.transaction_hash,
                transaction_url=self.ctx.settings.transaction_url(r.transaction_hash),
                upload_time=r.upload_time,
                verified_at=r.verified_at,
            )
            for r in records
        ]
        return items, pagination
