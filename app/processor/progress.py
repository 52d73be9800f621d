import math
from collections.abc import Callable
from datetime import datetime

from app.jobs.models import DoneStatus, ErrorStatus, RunningStatus, utc_now
from app.storage.status_store import BaseStatusStore

FORM_READY_PERCENT = 25
DOCUMENT_SEEDED_PERCENT = 45
ATTACHMENTS_SPAN_PERCENT = 45


def attachment_progress(done: int, total: int) -> int:
    """Checkpoint after ``done`` of ``total`` attachments, rounded half up."""
    total = max(total, 1)
    return DOCUMENT_SEEDED_PERCENT + math.floor(done / total * ATTACHMENTS_SPAN_PERCENT + 0.5)


class ProgressTracker:
    """Writes status checkpoints for one job run.

    Progress never goes backwards: a checkpoint below the last one written is
    dropped.
    """

    def __init__(
        self,
        status_store: BaseStatusStore,
        job_id: str,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._status_store = status_store
        self._job_id = job_id
        self._clock = clock
        self._started_at = clock()
        self._percent = 0

    @property
    def percent(self) -> int:
        return self._percent

    def start(self) -> None:
        self._percent = 0
        self._status_store.put(
            self._job_id,
            RunningStatus(self._started_at, self._clock(), progress_percent=0),
        )

    def checkpoint(self, percent: int) -> None:
        if percent <= self._percent:
            return
        self._percent = percent
        self._status_store.put(
            self._job_id,
            RunningStatus(self._started_at, self._clock(), progress_percent=self._percent),
        )

    def done(self, download_key: str, download_url: str) -> DoneStatus:
        status = DoneStatus(
            self._started_at,
            self._clock(),
            download_key=download_key,
            download_url=download_url,
        )
        self._status_store.put(self._job_id, status)
        self._percent = 100
        return status

    def fail(self, message: str) -> ErrorStatus:
        status = ErrorStatus(
            self._started_at,
            self._clock(),
            error_message=message,
            progress_percent=self._percent,
        )
        self._status_store.put(self._job_id, status)
        return status
