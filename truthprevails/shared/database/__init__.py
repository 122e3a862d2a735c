"""Database module exports."""

from .connection import Base, Database
from .models import (
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_VERIFIED,
    VERIFICATION_STATUSES,
    FileRecord,
    RegistryEntry,
    UserAccount,
    utcnow,
)

__all__ = [
    "Base",
    "Database",
    "STATUS_FAILED",
    "STATUS_PENDING",
    "STATUS_VERIFIED",
    "VERIFICATION_STATUSES",
    "FileRecord",
    "RegistryEntry",
    "UserAccount",
    "utcnow",
]
