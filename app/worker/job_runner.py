from typing import Any

from app.jobs.models import DoneStatus, JobRequest, JobResult
from app.logging.logger import Log
from app.processor.exceptions import InvalidJobRequestError
from app.processor.processor import Processor
from app.storage.status_store import BaseStatusStore


class JobRunner:
    """Run one invocation: parse, short-circuit finished jobs, process."""

    def __init__(self, processor: Processor, status_store: BaseStatusStore) -> None:
        self._processor = processor
        self._status_store = status_store

    def run(self, event: dict[str, Any] | str | bytes) -> dict[str, Any]:
        """Execute a single job and return the invocation result.

        A job whose status is already DONE is not recomputed. Failures are
        recorded by the processor and re-raised to the caller; there is no
        retry.

        Raises:
            InvalidJobRequestError: if the event is malformed or has no job id.
        """
        request = JobRequest.from_event(event)
        if not request.job_id:
            raise InvalidJobRequestError("jobId is required")

        existing = self._status_store.get(request.job_id)
        if isinstance(existing, DoneStatus):
            Log.info(f"Job {request.job_id} already done", key=existing.download_key)
            return JobResult(job_id=request.job_id, already_done=True).to_dict()

        Log.info(f"Running job {request.job_id}", subsidiary=request.subsidiary)
        return self._processor.process(request).to_dict()
