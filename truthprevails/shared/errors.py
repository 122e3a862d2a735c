# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""
Error taxonomy for the Truth Prevails API.

Services raise these; a single exception handler in ``main`` renders them as
``{"error": ..., "details": ...}`` with the matching HTTP status.
"""

from dataclasses import dataclass
from typing import Any, Optional


class TruthPrevailsError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[str] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        self.details = details
        self.extra = extra

    def to_dict(self) -> dict:
        body: dict = {"error": self.message}
        if self.details:
            body["details"] = self.details
        body.update(self.extra)
        return body


class ValidationFailedError(TruthPrevailsError):
    """Malformed input rejected before any side effect."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, **extra: Any):
        errors = [{"field": field, "message": message}] if field else []
        super().__init__(message, errors=errors, **extra)


class AuthenticationError(TruthPrevailsError):
    status_code = 401


class AccessDeniedError(TruthPrevailsError):
    status_code = 403


class NotFoundError(TruthPrevailsError):
    status_code = 404


class ConflictError(TruthPrevailsError):
    status_code = 409


class DuplicateFileError(ConflictError):
    """The acting user already registered byte-identical content."""

    def __init__(self, file_id: str, file_name: str):
        super().__init__(
            "File already exists",
            fileId=file_id,
            existingFileName=file_name,
        )
        self.file_id = file_id
        self.file_name = file_name


class UpstreamError(TruthPrevailsError):
    """A dependency (database, object store, RPC node) failed."""

    status_code = 502


class FeatureUnavailableError(TruthPrevailsError):
    """A feature is disabled because its configuration is missing."""

    status_code = 503


@dataclass(frozen=True)
class Unavailable:
    """
    Placeholder for a collaborator that could not be configured.

    Held in the application context in place of the real object so callers
    branch on availability explicitly instead of checking for ``None``.
    """

    feature: str
    reason: str

    def error(self) -> FeatureUnavailableError:
        return FeatureUnavailableError(f"{self.feature} is not configured", details=self.reason)
