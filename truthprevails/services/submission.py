# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""
Upload and registry submission flow.

An upload is committed in two steps with no transaction spanning them:

1. the bytes are stored and a FileRecord is written with status ``pending``
2. the hash is submitted to the registry with the owner's wallet key, and the
   record moves to ``verified`` or ``failed``

A failure in step 2 never undoes step 1. The caller receives the stored file
together with the failed verification outcome.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError

from truthprevails.context import AppContext
from truthprevails.registry.base import RegistryError
from truthprevails.services.files import FileService
from truthprevails.shared.crypto import wallet as wallet_crypto
from truthprevails.shared.crypto.hashing import sha256_hex
from truthprevails.shared.database.models import (
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_VERIFIED,
    FileRecord,
    UserAccount,
    utcnow,
)
from truthprevails.shared.errors import (
    ConflictError,
    DuplicateFileError,
    Unavailable,
    UpstreamError,
    ValidationFailedError,
)
from truthprevails.shared.models.schemas import VerificationOutcome
from truthprevails.storage.object_store import StorageError

logger = logging.getLogger(__name__)

# Media types accepted for upload and tamper analysis
ALLOWED_TYPES = (
    "image/jpeg",
    "image/png",
    "image/gif",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "video/mp4",
    "video/avi",
    "video/mov",
    "audio/mpeg",
    "audio/wav",
    "audio/m4a",
)


def check_upload(data: bytes, content_type: str, max_bytes: int) -> None:
    """
    Reject uploads that are empty, oversized or of a disallowed type.

    Raises:
        ValidationFailedError
    """
    if not data:
        raise ValidationFailedError("No file provided", field="file")
    if len(data) > max_bytes:
        raise ValidationFailedError(
            f"File exceeds the {max_bytes // (1024 * 1024)}MB limit", field="file"
        )
    if content_type not in ALLOWED_TYPES:
        raise ValidationFailedError("Invalid file type", field="file")


class _SubmissionUnavailable(Exception):
    """Registry or wallet secret is not configured."""


@dataclass
class SubmissionResult:
    record: FileRecord
    outcome: VerificationOutcome


class SubmissionService:
    def __init__(self, ctx: AppContext):
        self.ctx = ctx
        self.database = ctx.database
        self.files = FileService(ctx)

    async def upload_and_submit(
        self,
        user: UserAccount,
        file_name: str,
        content_type: str,
        data: bytes,
    ) -> SubmissionResult:
        """
        Store a file for a user and anchor its hash in the registry.

        Raises:
            ValidationFailedError: If the upload is empty, too large or of a
                disallowed type
            DuplicateFileError: If the user already uploaded identical bytes
            FeatureUnavailableError: If object storage is not configured
            UpstreamError: If the object store fails
        """
        check_upload(data, content_type, self.ctx.settings.max_upload_bytes)

        store = self.ctx.object_store
        if isinstance(store, Unavailable):
            raise store.error()

        content_hash = sha256_hex(data)
        logger.info(
            f"Upload from {user.uid}: {file_name!r} ({len(data)} bytes, {content_type}) "
            f"hash={content_hash[:16]}..."
        )

        existing = await self.files.find_by_owner_and_hash(user.uid, content_hash)
        if existing is not None:
            logger.info(f"Duplicate upload of {content_hash[:16]}... (existing file {existing.id})")
            raise DuplicateFileError(existing.id, existing.file_name)

        try:
            stored = await store.put(user.uid, content_hash, file_name, data, content_type=content_type)
        except StorageError as e:
            raise UpstreamError("Failed to store file", details=str(e)) from e

        record = FileRecord(
            owner_id=user.uid,
            file_name=file_name,
            content_hash=content_hash,
            file_size=len(data),
            file_type=content_type,
            upload_time=utcnow(),
            wallet_address=user.wallet_address,
            verification_status=STATUS_PENDING,
            storage_key=stored.key,
            storage_url=stored.url,
        )
        try:
            async with self.database.session() as db:
                db.add(record)
        except IntegrityError as e:
            # A concurrent upload of the same bytes by this user won the insert
            winner = await self.files.find_by_owner_and_hash(user.uid, content_hash)
            if winner is None or winner.storage_key != stored.key:
                await self._discard_object(stored.key)
            if winner is None:
                raise
            raise DuplicateFileError(winner.id, winner.file_name) from e

        outcome = await self._submit(record, user)
        return SubmissionResult(record=record, outcome=outcome)

    async def retry(self, user: UserAccount, file_id: str) -> SubmissionResult:
        """
        Submit a record that was left pending.

        Raises:
            NotFoundError / AccessDeniedError: Ownership checks
            ValidationFailedError: If the file is already verified
            ConflictError: If an earlier submission failed
        """
        record = await self.files.get_owned(user, file_id)
        if record.verification_status == STATUS_VERIFIED:
            raise ValidationFailedError("File is already verified", field="fileId")
        if record.verification_status == STATUS_FAILED:
            raise ConflictError(
                "Verification already failed",
                details=record.verification_error,
            )

        outcome = await self._submit(record, user)
        return SubmissionResult(record=record, outcome=outcome)

    async def _discard_object(self, key: str) -> None:
        store = self.ctx.object_store
        if isinstance(store, Unavailable):
            return
        try:
            await store.delete(key)
        except StorageError as e:
            logger.warning(f"Failed to discard stored object {key}: {e}")

    async def _submit(self, record: FileRecord, user: UserAccount) -> VerificationOutcome:
        """Submit the record's hash and persist the resulting status."""
        try:
            tx_hash = await self._submit_to_registry(record.content_hash, user)
        except (RegistryError, wallet_crypto.WalletDecryptionError, _SubmissionUnavailable) as e:
            error = str(e)
            logger.warning(f"Registry submission failed for file {record.id}: {error}")
            await self._mark(record, STATUS_FAILED, error=error)
            return VerificationOutcome(status=STATUS_FAILED, error=error)

        await self._mark(record, STATUS_VERIFIED, tx_hash=tx_hash)
        logger.info(f"File {record.id} verified: tx={tx_hash}")
        return VerificationOutcome(
            status=STATUS_VERIFIED,
            transaction_hash=tx_hash,
            transaction_url=self.ctx.settings.transaction_url(tx_hash),
        )

    async def _submit_to_registry(self, content_hash: str, user: UserAccount) -> str:
        registry = self.ctx.registry
        if isinstance(registry, Unavailable):
            raise _SubmissionUnavailable(f"{registry.feature} is not configured: {registry.reason}")
        secret = self.ctx.encryption_secret
        if isinstance(secret, Unavailable):
            raise _SubmissionUnavailable(f"{secret.feature} is not configured: {secret.reason}")

        wallet = wallet_crypto.decrypt(user.encrypted_wallet, secret)
        receipt = await registry.submit_hash(content_hash, wallet.private_key)
        return receipt.tx_hash

    async def _mark(self, record: FileRecord, status: str, tx_hash: Optional[str] = None, error: Optional[str] = None) -> None:
        now = utcnow()
        async with self.database.session() as db:
            current = await db.get(FileRecord, record.id)
            if current is None:
                # Deleted while the submission was in flight
                return
            current.verification_status = status
            current.updated_at = now
            if status == STATUS_VERIFIED:
                current.transaction_hash = tx_hash
                current.verified_at = now
                current.verification_error = None
            else:
                current.verification_error = error

        record.verification_status = status
        record.updated_at = now
        if status == STATUS_VERIFIED:
            record.transaction_hash = tx_hash
            record.verified_at = now
            record.verification_error = None
        else:
            record.verification_error = error
