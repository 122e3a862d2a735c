# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""Service status and health check endpoints."""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends

from truthprevails import __version__
from truthprevails.context import AppContext, get_context
from truthprevails.shared.models.schemas import HealthResponse, ServiceStatus

router = APIRouter(tags=["status"])

# Track when server started (for uptime calculation)
SERVER_START_TIME = datetime.now(timezone.utc)


@router.get("/health", response_model=HealthResponse)
async def health_check(ctx: AppContext = Depends(get_context)) -> HealthResponse:
    """
    Basic health check endpoint.

    Returns:
        Status indicator with service name and version
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        service=ctx.settings.service_name,
        version=__version__,
    )


@router.get("/api/status", response_model=ServiceStatus)
async def service_status(ctx: AppContext = Depends(get_context)) -> ServiceStatus:
    """Which optional features are configured, and why the others are not."""
    uptime_seconds = (datetime.now(timezone.utc) - SERVER_START_TIME).total_seconds()
    return ServiceStatus(
        service=ctx.settings.service_name,
        version=__version__,
        environment=ctx.settings.environment,
        features=ctx.feature_status(),
        uptime=str(timedelta(seconds=int(uptime_seconds))),
    )
