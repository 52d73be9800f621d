import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, ClassVar

from app.processor.exceptions import InvalidJobRequestError


class JobState(StrEnum):
    RUNNING = "RUNNING"
    DONE = "DONE"
    ERROR = "ERROR"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _check_progress(value: int) -> None:
    if not 0 <= value <= 100:
        raise ValueError(f"progress_percent must be within 0..100, got {value}")


@dataclass(frozen=True)
class RunningStatus:
    started_at: datetime
    updated_at: datetime
    progress_percent: int = 0

    state: ClassVar[JobState] = JobState.RUNNING

    def __post_init__(self) -> None:
        _check_progress(self.progress_percent)


@dataclass(frozen=True)
class DoneStatus:
    started_at: datetime
    updated_at: datetime
    download_key: str
    download_url: str

    state: ClassVar[JobState] = JobState.DONE
    progress_percent: ClassVar[int] = 100


@dataclass(frozen=True)
class ErrorStatus:
    """Terminal failure. Keeps the last checkpoint reached for display."""

    started_at: datetime
    updated_at: datetime
    error_message: str
    progress_percent: int = 0

    state: ClassVar[JobState] = JobState.ERROR

    def __post_init__(self) -> None:
        _check_progress(self.progress_percent)


JobStatus = RunningStatus | DoneStatus | ErrorStatus


def _iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def _parse_iso(raw: Any) -> datetime:
    if not isinstance(raw, str):
        raise ValueError("timestamp must be a string")
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))


def status_to_record(status: JobStatus) -> dict[str, Any]:
    """Poller-facing JSON shape. Fields foreign to the state are null."""
    return {
        "state": status.state.value,
        "progressPercent": status.progress_percent,
        "startedAt": _iso(status.started_at),
        "updatedAt": _iso(status.updated_at),
        "downloadKey": status.download_key if isinstance(status, DoneStatus) else None,
        "downloadUrl": status.download_url if isinstance(status, DoneStatus) else None,
        "errorMessage": status.error_message if isinstance(status, ErrorStatus) else None,
    }


def status_from_record(record: dict[str, Any]) -> JobStatus:
    """Rebuild the tagged status from a stored record.

    Raises:
        ValueError: if the record is malformed.
    """
    state = JobState(record.get("state"))
    started_at = _parse_iso(record.get("startedAt"))
    updated_at = _parse_iso(record.get("updatedAt"))
    progress = record.get("progressPercent", 0)
    if isinstance(progress, bool) or not isinstance(progress, int):
        raise ValueError("progressPercent must be an integer")

    if state is JobState.DONE:
        key = record.get("downloadKey")
        url = record.get("downloadUrl")
        if not isinstance(key, str) or not isinstance(url, str):
            raise ValueError("DONE record requires downloadKey and downloadUrl")
        return DoneStatus(started_at, updated_at, download_key=key, download_url=url)
    if state is JobState.ERROR:
        message = record.get("errorMessage") or ""
        return ErrorStatus(
            started_at, updated_at, error_message=str(message), progress_percent=progress
        )
    return RunningStatus(started_at, updated_at, progress_percent=progress)


@dataclass(frozen=True)
class JobRequest:
    """Invocation payload: which onboarding to assemble and where."""

    job_id: str
    onboarding_id: str
    subsidiary: str
    requested_at: str | None = None
    filename: str | None = None

    @classmethod
    def from_event(cls, event: dict[str, Any] | str | bytes) -> "JobRequest":
        """Parse a runtime event (a dict or its JSON encoding).

        Identifier presence is validated later by the job runner and the
        pipeline, so that failures after the status write are recorded.
        """
        if isinstance(event, (str, bytes)):
            try:
                event = json.loads(event)
            except json.JSONDecodeError as exc:
                raise InvalidJobRequestError(f"Event is not valid JSON: {exc}") from exc
        if not isinstance(event, dict):
            raise InvalidJobRequestError("Event must be a JSON object")

        def text(key: str, strip: bool = True) -> str:
            value = event.get(key)
            if value is None:
                return ""
            return str(value).strip() if strip else str(value)

        return cls(
            job_id=text("jobId"),
            onboarding_id=text("onboardingId"),
            subsidiary=text("subsidiary", strip=False),
            requested_at=text("requestedAt") or None,
            filename=text("filename") or None,
        )


@dataclass(frozen=True)
class JobResult:
    job_id: str
    download_key: str | None = None
    download_url: str | None = None
    already_done: bool = False

    def to_dict(self) -> dict[str, Any]:
        if self.already_done:
            return {"ok": True, "jobId": self.job_id, "alreadyDone": True}
        return {
            "ok": True,
            "jobId": self.job_id,
            "downloadKey": self.download_key,
            "downloadUrl": self.download_url,
        }
