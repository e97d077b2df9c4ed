import io
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from cpadocs.storage.base import BaseStorageGateway
from cpadocs.storage.exceptions import ObjectNotFoundError, StorageError

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class S3StorageGateway(BaseStorageGateway):
    """AWS S3 / MinIO compatible object storage. Buckets map 1:1 to S3 buckets."""

    def __init__(
        self,
        *,
        access_key_id: str,
        secret_access_key: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        if client is not None:
            self._client = client
            return
        kwargs: dict[str, Any] = {
            "aws_access_key_id": access_key_id or None,
            "aws_secret_access_key": secret_access_key or None,
            "region_name": region,
        }
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("s3", **kwargs)

    def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        if self._exists(bucket, path):
            raise StorageError(f"Object already exists: {bucket}/{path}")
        try:
            self._client.upload_fileobj(
                io.BytesIO(content),
                bucket,
                path,
                ExtraArgs={"ContentType": content_type, "CacheControl": "max-age=3600"},
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Failed to upload {bucket}/{path}: {exc}") from exc
        return path

    def download(self, bucket: str, path: str) -> bytes:
        buffer = io.BytesIO()
        try:
            self._client.download_fileobj(bucket, path, buffer)
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(f"Object not found: {bucket}/{path}") from exc
            raise StorageError(f"Failed to download {bucket}/{path}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to download {bucket}/{path}: {exc}") from exc
        return buffer.getvalue()

    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        if not self._exists(bucket, path):
            raise ObjectNotFoundError(f"Object not found: {bucket}/{path}")
        try:
            return str(
                self._client.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": bucket, "Key": path},
                    ExpiresIn=expires_in,
                )
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Failed to sign {bucket}/{path}: {exc}") from exc

    def remove(self, bucket: str, paths: list[str]) -> None:
        if not paths:
            return
        try:
            self._client.delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": p} for p in paths], "Quiet": True},
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Failed to remove objects from {bucket}: {exc}") from exc

    def _exists(self, bucket: str, path: str) -> bool:
        try:
            self._client.head_object(Bucket=bucket, Key=path)
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES:
                return False
            raise StorageError(f"Failed to stat {bucket}/{path}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to stat {bucket}/{path}: {exc}") from exc
        return True


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))
