import os
import threading
from concurrent.futures import ThreadPoolExecutor
from types import TracebackType
from typing import Any, BinaryIO

from app.logging.logger import Log
from app.storage.client import ObjectStorageClient
from app.storage.exceptions import UploadError

MIN_PART_SIZE = 5 * 1024 * 1024


class _AbortableReader:
    """Read end of the session pipe; EOF after ``abort`` becomes an error.

    Without this, closing the pipe on abort would look like a normal end of
    stream and the storage service would commit a truncated object.
    """

    def __init__(self, stream: BinaryIO, aborted: threading.Event) -> None:
        self._stream = stream
        self._aborted = aborted

    def read(self, size: int = -1) -> bytes:
        data = self._stream.read(size)
        if not data and self._aborted.is_set():
            raise UploadError("Upload session aborted before completion")
        return data

    def close(self) -> None:
        self._stream.close()


class UploadSession:
    """One streaming multi-part upload.

    The storage request starts in a background thread as soon as the session
    opens and consumes whatever is written until ``complete`` closes the
    stream.
    """

    def __init__(
        self,
        client: ObjectStorageClient,
        bucket: str,
        key: str,
        content_type: str,
        part_size: int,
    ) -> None:
        self.key = key
        self._aborted = threading.Event()
        read_fd, write_fd = os.pipe()
        self._reader = _AbortableReader(os.fdopen(read_fd, "rb"), self._aborted)
        self._writer = os.fdopen(write_fd, "wb")
        self._bytes_written = 0
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="upload")
        self._future = self._executor.submit(
            self._run, client, bucket, key, content_type, part_size
        )

    def _run(
        self,
        client: ObjectStorageClient,
        bucket: str,
        key: str,
        content_type: str,
        part_size: int,
    ) -> Any:
        try:
            return client.put_object(
                bucket,
                key,
                self._reader,  # type: ignore[arg-type]
                -1,
                content_type=content_type,
                part_size=part_size,
            )
        finally:
            # Unblocks the writer with BrokenPipeError if we stopped early.
            self._reader.close()

    def write(self, data: bytes) -> None:
        """Feed bytes into the upload stream.

        Raises:
            UploadError: if the storage request already failed.
        """
        try:
            self._writer.write(data)
        except (BrokenPipeError, ValueError) as exc:
            self._writer_close_quietly()
            raise self._failure(exc) from exc
        self._bytes_written += len(data)

    def complete(self) -> Any:
        """Close the stream and wait for the storage service to confirm.

        Raises:
            UploadError: if the upload was not confirmed.
        """
        self._writer_close_quietly()
        try:
            result = self._future.result()
        except Exception as exc:
            raise UploadError(f"Upload of {self.key} failed: {exc}") from exc
        finally:
            self._executor.shutdown(wait=True)
        if result is None:
            raise UploadError(f"Upload of {self.key} was not confirmed")
        Log.info(f"Uploaded {self._bytes_written} bytes", key=self.key)
        return result

    def abort(self) -> None:
        """Stop the session without committing the object."""
        self._aborted.set()
        self._writer_close_quietly()
        try:
            self._future.result()
        except Exception as exc:
            Log.debug(f"Upload session aborted: {exc}", key=self.key)
        finally:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> "UploadSession":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.abort()

    def _writer_close_quietly(self) -> None:
        try:
            self._writer.close()
        except OSError:
            # The upload outcome is reported by the background request.
            pass

    def _failure(self, cause: BaseException) -> UploadError:
        try:
            self._future.result()
        except Exception as exc:
            return UploadError(f"Upload of {self.key} failed: {exc}")
        return UploadError(f"Upload stream of {self.key} closed unexpectedly: {cause}")


class Uploader:
    """Streams final artifacts to object storage."""

    def __init__(
        self,
        client: ObjectStorageClient,
        bucket: str,
        part_size: int = 8 * 1024 * 1024,
    ) -> None:
        if part_size < MIN_PART_SIZE:
            raise ValueError(f"part_size must be at least {MIN_PART_SIZE} bytes")
        self._client = client
        self._bucket = bucket
        self._part_size = part_size

    def open(self, key: str, content_type: str = "application/pdf") -> UploadSession:
        """Begin an upload session; bytes may be written afterwards."""
        Log.info("Opening upload session", key=key)
        return UploadSession(self._client, self._bucket, key, content_type, self._part_size)
