# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""File record store: lookups, listing, rename, delete and download links."""

import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func, select

from truthprevails.context import AppContext
from truthprevails.shared.database.models import (
    VERIFICATION_STATUSES,
    FileRecord,
    UserAccount,
    utcnow,
)
from truthprevails.shared.errors import (
    AccessDeniedError,
    NotFoundError,
    Unavailable,
    UpstreamError,
    ValidationFailedError,
)
from truthprevails.shared.models.schemas import FileOut, FileStats, Pagination
from truthprevails.storage.object_store import StorageError

logger = logging.getLogger(__name__)

RECENT_UPLOAD_WINDOW = timedelta(days=7)


class FileService:
    def __init__(self, ctx: AppContext):
        self.ctx = ctx
        self.database = ctx.database

    def to_out(self, record: FileRecord) -> FileOut:
        out = FileOut.model_validate(record)
        return out.model_copy(
            update={"transaction_url": self.ctx.settings.transaction_url(record.transaction_hash)}
        )

    async def get_owned(self, user: UserAccount, file_id: str) -> FileRecord:
        """
        Load a file record the user owns.

        Raises:
            NotFoundError: If no record has this id
            AccessDeniedError: If the record belongs to another user
        """
        async with self.database.session() as db:
            record = await db.get(FileRecord, file_id)
        if record is None:
            raise NotFoundError("File not found")
        if record.owner_id != user.uid:
            raise AccessDeniedError("Access denied")
        return record

    async def find_by_owner_and_hash(self, owner_id: str, content_hash: str) -> Optional[FileRecord]:
        async with self.database.session() as db:
            stmt = select(FileRecord).where(
                FileRecord.owner_id == owner_id,
                FileRecord.content_hash == content_hash,
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

    async def find_first_by_hash(self, content_hash: str) -> Optional[FileRecord]:
        """Earliest record holding this hash, across all owners."""
        async with self.database.session() as db:
            stmt = (
                select(FileRecord)
                .where(FileRecord.content_hash == content_hash)
                .order_by(FileRecord.upload_time, FileRecord.created_at)
                .limit(1)
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

    async def list_for_owner(
        self,
        user: UserAccount,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
    ) -> Tuple[List[FileRecord], Pagination]:
        """List a user's files, newest first."""
        if status is not None and status not in VERIFICATION_STATUSES:
            raise ValidationFailedError(
                f"Status must be one of: {', '.join(VERIFICATION_STATUSES)}", field="status"
            )

        conditions = [FileRecord.owner_id == user.uid]
        if status is not None:
            conditions.append(FileRecord.verification_status == status)

        async with self.database.session() as db:
            total = (
                await db.execute(select(func.count(FileRecord.id)).where(*conditions))
            ).scalar_one()
            stmt = (
                select(FileRecord)
                .where(*conditions)
                .order_by(FileRecord.upload_time.desc(), FileRecord.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            files = list((await db.execute(stmt)).scalars().all())

        pagination = Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit))
        return files, pagination

    async def rename(self, user: UserAccount, file_id: str, file_name: Optional[str]) -> List[str]:
        record = await self.get_owned(user, file_id)
        updated: List[str] = []
        async with self.database.session() as db:
            record = await db.get(FileRecord, record.id)
            if record is None:
                raise NotFoundError("File not found")
            if file_name:
                record.file_name = file_name
                updated.append("fileName")
            record.updated_at = utcnow()
        return updated

    async def delete(self, user: UserAccount, file_id: str) -> None:
        """Delete the record, then the stored object (best-effort)."""
        record = await self.get_owned(user, file_id)
        async with self.database.session() as db:
            current = await db.get(FileRecord, record.id)
            if current is None:
                raise NotFoundError("File not found")
            await db.delete(current)

        store = self.ctx.object_store
        if record.storage_key and not isinstance(store, Unavailable):
            try:
                await store.delete(record.storage_key)
            except StorageError as e:
                logger.warning(f"Failed to delete stored object for file {file_id}: {e}")

        logger.info(f"Deleted file {file_id} ({record.content_hash[:16]}...)")

    async def download_url(self, user: UserAccount, file_id: str) -> Tuple[str, datetime]:
        record = await self.get_owned(user, file_id)
        store = self.ctx.object_store
        if isinstance(store, Unavailable):
            raise store.error()
        if not record.storage_key:
            raise NotFoundError("File content not found")

        expires_in = self.ctx.settings.download_url_expiry_seconds
        try:
            url = await store.presigned_url(record.storage_key, expires_in=expires_in)
        except StorageError as e:
            raise UpstreamError("Failed to generate download URL", details=str(e)) from e
        return url, utcnow() + timedelta(seconds=expires_in)

    async def stats(self, user: UserAccount) -> FileStats:
        async with self.database.session() as db:
            result = await db.execute(
                select(
                    FileRecord.file_size,
                    FileRecord.file_type,
                    FileRecord.verification_status,
                    FileRecord.upload_time,
                ).where(FileRecord.owner_id == user.uid)
            )
            rows = result.all()

        cutoff = utcnow() - RECENT_UPLOAD_WINDOW
        by_type: dict = {}
        by_status = {status: 0 for status in VERIFICATION_STATUSES}
        total_size = 0
        recent = 0
        for size, file_type, status, upload_time in rows:
            total_size += size or 0
            file_type = file_type or "unknown"
            by_type[file_type] = by_type.get(file_type, 0) + 1
            by_status[status] = by_status.get(status, 0) + 1
            if upload_time and upload_time > cutoff:
                recent += 1

        return FileStats(
            total_files=len(rows),
            total_size=total_size,
            by_type=by_type,
            by_status=by_status,
            recent_uploads=recent,
        )
