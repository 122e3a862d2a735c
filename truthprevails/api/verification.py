# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""Public verification API for querying content hashes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Path, Query, UploadFile

from truthprevails.auth.dependencies import get_current_user
from truthprevails.context import AppContext, get_context
from truthprevails.services.submission import SubmissionService
from truthprevails.services.verification import VerificationService
from truthprevails.shared.database.models import UserAccount
from truthprevails.shared.models.schemas import (
    RecentHashesResponse,
    SubmitResponse,
    VerificationStatsResponse,
    VerificationStatusResponse,
    VerifyBatchRequest,
    VerifyBatchResponse,
    VerifyRequest,
    VerifyResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/verification", tags=["verification"])


@router.post("/verify", response_model=VerifyResponse)
async def verify_hash(
    request: VerifyRequest,
    ctx: AppContext = Depends(get_context),
) -> VerifyResponse:
    """
    Verify whether a hash is anchored in the registry.

    Anyone can query any SHA-256 hash. Metadata from a matching uploaded file
    is attached when one exists.
    """
    return VerifyResponse(verification=await VerificationService(ctx).verify_hash(request.hash))


@router.post("/verify-file", response_model=VerifyResponse)
async def verify_file(
    file: UploadFile = File(...),
    ctx: AppContext = Depends(get_context),
) -> VerifyResponse:
    """Hash an uploaded file server-side and verify the digest. The file is not stored."""
    data = await file.read()
    return VerifyResponse(verification=await VerificationService(ctx).verify_bytes(data))


@router.post("/verify-batch", response_model=VerifyBatchResponse)
async def verify_batch(
    request: VerifyBatchRequest,
    ctx: AppContext = Depends(get_context),
) -> VerifyBatchResponse:
    results, summary = await VerificationService(ctx).verify_batch(request.hashes)
    return VerifyBatchResponse(results=results, summary=summary)


@router.post("/submit/{file_id}", response_model=SubmitResponse)
async def submit_pending_file(
    file_id: str = Path(..., max_length=64),
    user: UserAccount = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> SubmitResponse:
    """
    Submit a file that was left pending to the registry.

    Files whose submission already succeeded or failed are not resubmitted.
    """
    result = await SubmissionService(ctx).retry(user, file_id)
    message = (
        "File submitted to registry"
        if result.outcome.status == "verified"
        else "Registry submission failed"
    )
    return SubmitResponse(message=message, file_id=result.record.id, verification=result.outcome)


@router.get("/status", response_model=VerificationStatusResponse)
async def verification_status(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    user: UserAccount = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> VerificationStatusResponse:
    files, pagination = await VerificationService(ctx).status_for_user(user, page=page, limit=limit, status=status)
    return VerificationStatusResponse(files=files, pagination=pagination)


@router.get("/stats", response_model=VerificationStatsResponse)
async def verification_stats(ctx: AppContext = Depends(get_context)) -> VerificationStatsResponse:
    return VerificationStatsResponse(stats=await VerificationService(ctx).stats())


@router.get("/recent", response_model=RecentHashesResponse)
async def recent_hashes(
    limit: int = Query(10, ge=1, le=100),
    ctx: AppContext = Depends(get_context),
) -> RecentHashesResponse:
    """Most recently registered hashes, oldest of the window first."""
    hashes = await VerificationService(ctx).recent(limit)
    return RecentHashesResponse(hashes=hashes, count=len(hashes))
