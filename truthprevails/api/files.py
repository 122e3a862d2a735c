# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""File upload and management endpoints (owner only)."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Path, Query, UploadFile, status

from truthprevails.auth.dependencies import get_current_user
from truthprevails.context import AppContext, get_context
from truthprevails.services.files import FileService
from truthprevails.services.submission import SubmissionService
from truthprevails.shared.database.models import UserAccount
from truthprevails.shared.models.schemas import (
    DownloadResponse,
    FileListResponse,
    FileResponse,
    FileStatsResponse,
    FileUpdateRequest,
    MessageResponse,
    UpdatedFieldsResponse,
    UploadResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["files"])


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    user: UserAccount = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> UploadResponse:
    """
    Store a file and anchor its hash in the registry.

    The upload succeeds even when the registry step fails; the outcome is
    reported in ``verification`` and persisted on the file record.

    Returns:
        201 with the file record and verification outcome; 409 when this user
        already uploaded identical content
    """
    data = await file.read()
    result = await SubmissionService(ctx).upload_and_submit(
        user,
        file_name=file.filename or "upload",
        content_type=file.content_type or "application/octet-stream",
        data=data,
    )
    return UploadResponse(
        file_id=result.record.id,
        file=FileService(ctx).to_out(result.record),
        verification=result.outcome,
    )


@router.get("/my-files", response_model=FileListResponse)
async def list_my_files(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None, description="pending, verified or failed"),
    user: UserAccount = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> FileListResponse:
    service = FileService(ctx)
    records, pagination = await service.list_for_owner(user, page=page, limit=limit, status=status)
    return FileListResponse(files=[service.to_out(r) for r in records], pagination=pagination)


# Registered before /{file_id} so "stats" is not taken for an id
@router.get("/stats/overview", response_model=FileStatsResponse)
async def file_stats(
    user: UserAccount = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> FileStatsResponse:
    return FileStatsResponse(stats=await FileService(ctx).stats(user))


@router.get("/{file_id}", response_model=FileResponse)
async def get_file(
    file_id: str = Path(..., max_length=64),
    user: UserAccount = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> FileResponse:
    service = FileService(ctx)
    return FileResponse(file=service.to_out(await service.get_owned(user, file_id)))


@router.put("/{file_id}", response_model=UpdatedFieldsResponse)
async def update_file(
    request: FileUpdateRequest,
    file_id: str = Path(..., max_length=64),
    user: UserAccount = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> UpdatedFieldsResponse:
    updated = await FileService(ctx).rename(user, file_id, request.file_name)
    return UpdatedFieldsResponse(message="File updated successfully", updated_fields=updated)


@router.delete("/{file_id}", response_model=MessageResponse)
async def delete_file(
    file_id: str = Path(..., max_length=64),
    user: UserAccount = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> MessageResponse:
    await FileService(ctx).delete(user, file_id)
    return MessageResponse(message="File deleted successfully")


@router.get("/{file_id}/download", response_model=DownloadResponse)
async def download_file(
    file_id: str = Path(..., max_length=64),
    user: UserAccount = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> DownloadResponse:
    url, expires_at = await FileService(ctx).download_url(user, file_id)
    return DownloadResponse(download_url=url, expires_at=expires_at)
