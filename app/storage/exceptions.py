class StorageError(Exception):
    """Base exception for object storage failures."""


class ObjectNotFoundError(StorageError):
    """Raised when a storage key does not exist."""


class UploadError(StorageError):
    """Raised when an upload session is not confirmed by the storage service."""
