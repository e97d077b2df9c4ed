class StorageError(Exception):
    """Raised when an object store operation fails."""


class ObjectNotFoundError(StorageError):
    """Raised when a bucket/path pair does not exist."""
