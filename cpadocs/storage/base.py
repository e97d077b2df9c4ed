from abc import ABC, abstractmethod


class BaseStorageGateway(ABC):
    """Contract for all object storage adapters."""

    @abstractmethod
    def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        """Store content under bucket/path without overwriting.

        Returns:
            The stored object path.

        Raises:
            StorageError: if the object exists or the store rejects the write.
        """

    @abstractmethod
    def download(self, bucket: str, path: str) -> bytes:
        """Raises ObjectNotFoundError if the object does not exist."""

    @abstractmethod
    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        """Return a time-limited URL for reading bucket/path."""

    @abstractmethod
    def remove(self, bucket: str, paths: list[str]) -> None:
        """Delete objects. Missing objects are ignored."""
