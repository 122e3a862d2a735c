# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""SQLAlchemy ORM models for Truth Prevails."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    CHAR,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from truthprevails.shared.database.connection import Base

STATUS_PENDING = "pending"
STATUS_VERIFIED = "verified"
STATUS_FAILED = "failed"
VERIFICATION_STATUSES = (STATUS_PENDING, STATUS_VERIFIED, STATUS_FAILED)


def utcnow() -> datetime:
    """Naive UTC timestamp (stored without zone on every backend)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return uuid.uuid4().hex


class UserAccount(Base):
    """
    Registered identity with its custodial wallet.

    The wallet is created together with the account and never replaced.
    ``encrypted_wallet`` must never leave the service.
    """

    __tablename__ = "users"

    uid = Column(String(64), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)  # None for federated accounts
    wallet_address = Column(CHAR(42), nullable=False, index=True)
    encrypted_wallet = Column(Text, nullable=False)
    provider = Column(String(50), nullable=False, default="email")
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    files = relationship("FileRecord", back_populates="owner", cascade="all, delete-orphan")


class FileRecord(Base):
    """
    Descriptive record of an uploaded file.

    Status moves pending -> verified or pending -> failed only. A user may
    register a given content hash once; other users may register the same hash.
    """

    __tablename__ = "files"

    id = Column(String(64), primary_key=True, default=new_id)
    owner_id = Column(String(64), ForeignKey("users.uid", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(512), nullable=False)
    content_hash = Column(CHAR(64), nullable=False, index=True)
    file_size = Column(BigInteger, nullable=False)
    file_type = Column(String(255), nullable=False)
    upload_time = Column(DateTime, default=utcnow, nullable=False)

    # Registry submission
    wallet_address = Column(CHAR(42), nullable=True)
    verification_status = Column(String(16), default=STATUS_PENDING, nullable=False, index=True)
    transaction_hash = Column(String(66), nullable=True)
    verified_at = Column(DateTime, nullable=True)
    verification_error = Column(Text, nullable=True)

    # Object storage location
    storage_key = Column(String(1024), nullable=True)
    storage_url = Column(String(2048), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("UserAccount", back_populates="files")

    __table_args__ = (
        UniqueConstraint("owner_id", "content_hash", name="uq_files_owner_hash"),
        Index("idx_files_owner_upload", "owner_id", "upload_time"),
    )


class RegistryEntry(Base):
    """
    Append-only hash registry used by the ledger backend.

    One row per hash. ``seq`` preserves submission order for enumeration.
    Rows are never updated or deleted.
    """

    __tablename__ = "registry_entries"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    content_hash = Column(CHAR(64), nullable=False, unique=True, index=True)
    submitter = Column(CHAR(42), nullable=False, index=True)
    timestamp = Column(BigInteger, nullable=False)  # Unix timestamp
    tx_hash = Column(CHAR(66), nullable=False, unique=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (Index("idx_registry_timestamp", "timestamp"),)
