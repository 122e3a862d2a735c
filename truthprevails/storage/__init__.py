"""Object storage for uploaded files."""

from .object_store import S3ObjectStore, StorageError, StoredObject, build_object_store, object_key

__all__ = ["S3ObjectStore", "StorageError", "StoredObject", "build_object_store", "object_key"]
