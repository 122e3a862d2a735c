# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""Tamper heuristics over uploaded files. Files are analyzed in memory and not stored."""

from functools import partial
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile

from truthprevails.context import AppContext, get_context
from truthprevails.services import tamper
from truthprevails.services.submission import check_upload
from truthprevails.shared.errors import ValidationFailedError
from truthprevails.shared.models.schemas import AnalyzeBatchResponse, AnalyzeResponse

router = APIRouter(prefix="/api/tamper-detection", tags=["tamper-detection"])


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_file(
    file: UploadFile = File(...),
    ctx: AppContext = Depends(get_context),
) -> AnalyzeResponse:
    data = await file.read()
    content_type = file.content_type or "application/octet-stream"
    check_upload(data, content_type, ctx.settings.max_upload_bytes)
    analysis = tamper.analyze(data, file.filename or "upload", content_type)
    return AnalyzeResponse(analysis=analysis.to_out())


@router.post("/analyze-batch", response_model=AnalyzeBatchResponse)
async def analyze_batch(
    files: List[UploadFile] = File(...),
    ctx: AppContext = Depends(get_context),
) -> AnalyzeBatchResponse:
    """
    Analyze up to ``MAX_BATCH_FILES`` files; each result stands alone.

    Only the batch size is checked for the request as a whole. An empty,
    oversized or disallowed file becomes a failed entry in its position.
    """
    limit = ctx.settings.max_batch_files
    if len(files) > limit:
        raise ValidationFailedError(f"At most {limit} files per batch", field="files")

    batch = []
    for upload in files:
        data = await upload.read()
        batch.append((upload.filename or "upload", upload.content_type or "application/octet-stream", data))

    check = partial(check_upload, max_bytes=ctx.settings.max_upload_bytes)
    analyses, summary = tamper.analyze_batch(batch, check=check)
    return AnalyzeBatchResponse(analyses=[a.to_out() for a in analyses], summary=summary)
