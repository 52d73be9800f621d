import io
import json
from abc import ABC, abstractmethod

from app.jobs.models import JobStatus, status_from_record, status_to_record
from app.logging.logger import Log
from app.storage.client import ObjectStorageClient, read_object
from app.storage.exceptions import StorageError
from app.storage.keys import StorageKeys


class BaseStatusStore(ABC):
    """Contract for job status persistence, keyed by job id.

    Every ``put`` is a full overwrite; the last writer wins.
    """

    @abstractmethod
    def get(self, job_id: str) -> JobStatus | None:
        """Return the stored status, or None if absent or unreadable."""

    @abstractmethod
    def put(self, job_id: str, status: JobStatus) -> None:
        """Persist the full status record.

        Raises:
            StorageError: if the record cannot be written.
        """


class ObjectStorageStatusStore(BaseStatusStore):
    """Stores status records as JSON objects next to the merged artifacts."""

    def __init__(self, client: ObjectStorageClient, bucket: str, keys: StorageKeys) -> None:
        self._client = client
        self._bucket = bucket
        self._keys = keys

    def get(self, job_id: str) -> JobStatus | None:
        key = self._keys.status_key(job_id)
        try:
            raw = read_object(self._client, self._bucket, key)
            return status_from_record(json.loads(raw.decode("utf-8")))
        except Exception as exc:
            # Missing and corrupt records both mean "start fresh".
            Log.debug(f"No usable status record for job {job_id}: {exc}", key=key)
            return None

    def put(self, job_id: str, status: JobStatus) -> None:
        key = self._keys.status_key(job_id)
        body = json.dumps(status_to_record(status)).encode("utf-8")
        try:
            self._client.put_object(
                self._bucket,
                key,
                io.BytesIO(body),
                len(body),
                content_type="application/json",
            )
        except Exception as exc:
            raise StorageError(f"Failed to write status for job {job_id}: {exc}") from exc
        Log.debug(
            f"Job {job_id} status {status.state} {status.progress_percent}%", key=key
        )
