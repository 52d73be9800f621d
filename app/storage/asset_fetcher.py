from minio.error import S3Error

from app.logging.logger import Log
from app.onboarding.models import FileAssetRef
from app.storage.client import ObjectStorageClient, read_object
from app.storage.exceptions import ObjectNotFoundError, StorageError


class AssetFetcher:
    """Reads raw bytes of uploaded onboarding files from object storage."""

    def __init__(self, client: ObjectStorageClient, bucket: str) -> None:
        self._client = client
        self._bucket = bucket

    def fetch(self, asset: FileAssetRef) -> bytes:
        """Read the bytes behind a file reference.

        Raises:
            ObjectNotFoundError: if the key does not exist.
            StorageError: on any other read failure or an empty object.
        """
        key = asset.storage_key.strip()
        if not key:
            raise ObjectNotFoundError("File reference has no storage key")
        try:
            data = read_object(self._client, self._bucket, key)
        except S3Error as exc:
            if exc.code == "NoSuchKey":
                raise ObjectNotFoundError(f"Object not found: {key}") from exc
            raise StorageError(f"Failed to read {key}: {exc}") from exc
        except Exception as exc:
            raise StorageError(f"Failed to read {key}: {exc}") from exc
        if not data:
            raise StorageError(f"Empty object body for {key}")
        Log.debug(f"Fetched {len(data)} bytes", key=key)
        return data
