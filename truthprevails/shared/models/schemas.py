# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""Pydantic schemas for API request/response validation."""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from truthprevails.shared.crypto.hashing import normalize_hash

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- Auth ---------------------------------------------------------------


class SignupRequest(CamelModel):
    name: str = Field(..., description="Display name (at least 2 characters)")
    email: str
    password: str = Field(..., min_length=6, description="At least 6 characters")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not _EMAIL_RE.match(v):
            raise ValueError("Valid email is required")
        return v


class LoginRequest(CamelModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ProfileUpdateRequest(CamelModel):
    name: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v


class UserOut(CamelModel):
    """User profile as exposed to clients (never includes the encrypted wallet)."""

    uid: str
    name: str
    email: str
    wallet_address: str
    provider: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserResponse(CamelModel):
    message: Optional[str] = None
    user: UserOut


class TokenResponse(CamelModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut


class WalletResponse(CamelModel):
    wallet_address: str


class UpdatedFieldsResponse(CamelModel):
    success: bool = True
    message: str
    updated_fields: List[str]


class MessageResponse(CamelModel):
    success: bool = True
    message: str


# --- Files --------------------------------------------------------------


class FileOut(CamelModel):
    id: str
    user_id: str = Field(..., validation_alias=AliasChoices("owner_id", "userId"), serialization_alias="userId")
    file_name: str
    file_hash: str = Field(..., validation_alias=AliasChoices("content_hash", "fileHash"), serialization_alias="fileHash")
    file_size: int
    file_type: str
    upload_time: datetime
    wallet_address: Optional[str] = None
    verification_status: str
    transaction_hash: Optional[str] = None
    transaction_url: Optional[str] = None
    verified_at: Optional[datetime] = None
    verification_error: Optional[str] = None
    storage_path: Optional[str] = Field(None, validation_alias=AliasChoices("storage_key", "storagePath"), serialization_alias="storagePath")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VerificationOutcome(CamelModel):
    """Result of the registry step that follows an upload."""

    status: str
    transaction_hash: Optional[str] = None
    transaction_url: Optional[str] = None
    error: Optional[str] = None


class UploadResponse(CamelModel):
    success: bool = True
    file_id: str
    file: FileOut
    verification: VerificationOutcome


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class FileListResponse(CamelModel):
    success: bool = True
    files: List[FileOut]
    pagination: Pagination


class FileResponse(CamelModel):
    success: bool = True
    file: FileOut


class FileUpdateRequest(CamelModel):
    file_name: Optional[str] = None

    @field_validator("file_name")
    @classmethod
    def validate_file_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("File name cannot be empty")
        return v


class DownloadResponse(CamelModel):
    success: bool = True
    download_url: str
    expires_at: datetime


class FileStats(CamelModel):
    total_files: int
    total_size: int
    by_type: Dict[str, int]
    by_status: Dict[str, int]
    recent_uploads: int


class FileStatsResponse(CamelModel):
    success: bool = True
    stats: FileStats


# --- Verification -------------------------------------------------------


class VerifyRequest(CamelModel):
    hash: str = Field(..., description="SHA-256 hash (64 hex chars, optional 0x prefix)")

    @field_validator("hash")
    @classmethod
    def validate_hash(cls, v: str) -> str:
        """Validate SHA-256 hash format."""
        return normalize_hash(v)


class VerifyBatchRequest(CamelModel):
    # Items are validated one by one so a malformed hash only fails its own entry
    hashes: List[str] = Field(..., min_length=1)


class FileMetadata(CamelModel):
    file_name: str
    file_size: int
    file_type: str
    upload_time: datetime


class VerificationResult(CamelModel):
    hash: str
    exists: bool
    submitter: str
    timestamp: int
    transaction_hash: Optional[str] = None
    transaction_url: Optional[str] = None
    file_metadata: Optional[FileMetadata] = None
    registry_available: bool = True


class VerifyResponse(CamelModel):
    success: bool = True
    verification: VerificationResult


class BatchVerificationItem(CamelModel):
    hash: str
    exists: Optional[bool] = None
    submitter: Optional[str] = None
    timestamp: Optional[int] = None
    transaction_url: Optional[str] = None
    file_metadata: Optional[FileMetadata] = None
    registry_available: Optional[bool] = None
    error: Optional[str] = None


class BatchSummary(CamelModel):
    total: int
    verified: int
    not_found: int
    errors: int


class VerifyBatchResponse(CamelModel):
    success: bool = True
    results: List[BatchVerificationItem]
    summary: BatchSummary


class SubmitResponse(CamelModel):
    success: bool = True
    message: str
    file_id: str
    verification: VerificationOutcome


class VerificationStatusItem(CamelModel):
    id: str
    file_name: str
    file_hash: str
    verification_status: str
    transaction_hash: Optional[str] = None
    transaction_url: Optional[str] = None
    upload_time: datetime
    verified_at: Optional[datetime] = None


class VerificationStatusResponse(CamelModel):
    success: bool = True
    files: List[VerificationStatusItem]
    pagination: Pagination


class RegistryStats(CamelModel):
    total_hashes: int
    created_at: Optional[int] = None


class VerificationStats(CamelModel):
    total_files: int
    verified_files: int
    pending_files: int
    failed_files: int
    verification_rate: float
    blockchain_stats: Optional[RegistryStats] = None


class VerificationStatsResponse(CamelModel):
    success: bool = True
    stats: VerificationStats


class RecentHashesResponse(CamelModel):
    success: bool = True
    hashes: List[str]
    count: int


# --- Tamper detection ---------------------------------------------------


class FileInfo(CamelModel):
    name: str
    type: str
    size: int
    analyzed_at: datetime


class TamperAnalysisOut(CamelModel):
    status: str
    details: str
    confidence: float
    metadata: Dict[str, Any] = Field(default_factory=dict)
    file_info: Optional[FileInfo] = None
    error: Optional[str] = None


class AnalyzeResponse(CamelModel):
    success: bool = True
    analysis: TamperAnalysisOut


class BatchAnalysisSummary(CamelModel):
    total_files: int
    overall_confidence: float
    suspicious_files: int
    failed_analyses: int
    clean_files: int


class AnalyzeBatchResponse(CamelModel):
    success: bool = True
    analyses: List[TamperAnalysisOut]
    summary: BatchAnalysisSummary


# --- Status -------------------------------------------------------------


class HealthResponse(CamelModel):
    status: str
    timestamp: datetime
    service: str
    version: str


class FeatureStatus(CamelModel):
    available: bool
    backend: Optional[str] = None
    reason: Optional[str] = None


class ServiceStatus(CamelModel):
    service: str
    version: str
    environment: str
    features: Dict[str, FeatureStatus]
    uptime: Optional[str] = None
