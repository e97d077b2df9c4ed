from cpadocs.config.settings import Settings
from cpadocs.storage.base import BaseStorageGateway
from cpadocs.storage.local_adapter import LocalStorageGateway
from cpadocs.storage.s3_adapter import S3StorageGateway


class StorageGatewayFactory:
    """Creates the configured object storage adapter."""

    BACKENDS = ("local", "s3")

    @classmethod
    def create(cls, settings: Settings) -> BaseStorageGateway:
        backend = settings.storage_backend.lower()
        if backend == "local":
            return LocalStorageGateway(
                storage_root=settings.storage_root,
                public_base_url=settings.storage_public_base_url,
                signing_key=settings.storage_signing_key,
            )
        if backend == "s3":
            return S3StorageGateway(
                access_key_id=settings.s3_access_key_id,
                secret_access_key=settings.s3_secret_access_key,
                region=settings.s3_region,
                endpoint_url=settings.s3_endpoint_url,
            )
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
