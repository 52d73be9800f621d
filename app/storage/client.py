from typing import Any, BinaryIO, Protocol

from minio import Minio

from app.config.settings import Settings


class ObjectStorageClient(Protocol):
    """The subset of the MinIO client API the worker relies on.

    ``minio.Minio`` satisfies it; tests inject an in-memory fake.
    """

    def get_object(self, bucket_name: str, object_name: str) -> Any: ...

    def put_object(
        self,
        bucket_name: str,
        object_name: str,
        data: BinaryIO,
        length: int,
        content_type: str = "application/octet-stream",
        part_size: int = 0,
    ) -> Any: ...


def build_minio_client(settings: Settings) -> Minio:
    """Create the S3-compatible client from settings."""
    return Minio(
        settings.storage_endpoint,
        access_key=settings.storage_access_key,
        secret_key=settings.storage_secret_key,
        secure=settings.storage_secure,
        region=settings.storage_region,
    )


def read_object(client: ObjectStorageClient, bucket: str, key: str) -> bytes:
    """Read a whole object and release the pooled HTTP connection."""
    response = client.get_object(bucket, key)
    try:
        return response.read()
    finally:
        response.close()
        response.release_conn()
