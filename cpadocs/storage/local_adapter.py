import hashlib
import hmac
import time
from pathlib import Path
from urllib.parse import quote, urlencode

from cpadocs.storage.base import BaseStorageGateway
from cpadocs.storage.exceptions import ObjectNotFoundError, StorageError


def object_file_path(storage_root: Path, bucket: str, path: str) -> Path:
    """Build path to an object file: {storage_root}/{bucket}/{path}"""
    parts = Path(path).parts
    if not parts or Path(path).is_absolute() or ".." in parts:
        raise StorageError(f"Invalid object path '{path}'")
    return storage_root / bucket / path


class LocalStorageGateway(BaseStorageGateway):
    """Stores objects on the local filesystem and signs URLs with HMAC-SHA256."""

    def __init__(self, storage_root: Path, public_base_url: str, signing_key: str) -> None:
        self._storage_root = storage_root
        self._public_base_url = public_base_url.rstrip("/")
        self._signing_key = signing_key.encode("utf-8")

    def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        target = object_file_path(self._storage_root, bucket, path)
        if target.exists():
            raise StorageError(f"Object already exists: {bucket}/{path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as exc:
            raise StorageError(f"Failed to write {bucket}/{path}: {exc}") from exc
        return path

    def download(self, bucket: str, path: str) -> bytes:
        target = object_file_path(self._storage_root, bucket, path)
        if not target.exists():
            raise ObjectNotFoundError(f"Object not found: {bucket}/{path}")
        return target.read_bytes()

    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        target = object_file_path(self._storage_root, bucket, path)
        if not target.exists():
            raise ObjectNotFoundError(f"Object not found: {bucket}/{path}")
        expires = int(time.time()) + expires_in
        query = urlencode({"expires": expires, "signature": self._sign(bucket, path, expires)})
        return f"{self._public_base_url}/{quote(bucket)}/{quote(path)}?{query}"

    def verify_signature(
        self,
        bucket: str,
        path: str,
        expires: int,
        signature: str,
        now: float | None = None,
    ) -> bool:
        """Check a signed URL's parameters, e.g. in the handler serving files."""
        current = time.time() if now is None else now
        if expires < current:
            return False
        return hmac.compare_digest(self._sign(bucket, path, expires), signature)

    def remove(self, bucket: str, paths: list[str]) -> None:
        for path in paths:
            target = object_file_path(self._storage_root, bucket, path)
            try:
                target.unlink(missing_ok=True)
            except OSError as exc:
                raise StorageError(f"Failed to remove {bucket}/{path}: {exc}") from exc

    def _sign(self, bucket: str, path: str, expires: int) -> str:
        message = f"{bucket}/{path}:{expires}".encode("utf-8")
        return hmac.new(self._signing_key, message, hashlib.sha256).hexdigest()
