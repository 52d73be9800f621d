from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

import pymupdf

from app.application_form.attachments import AttachmentEntry
from app.database.models import OnboardingRecord
from app.jobs.models import JobRequest
from app.onboarding.exceptions import SnapshotValidationError
from app.onboarding.models import IndiaOnboardingFormSnapshot
from app.pdf.exceptions import PdfError
from app.pdf.merger import MergedDocument
from app.processor.exceptions import ProcessorError
from app.processor.progress import ProgressTracker
from app.storage.exceptions import StorageError

FATAL_ERRORS = (ProcessorError, SnapshotValidationError, PdfError, StorageError)


class StepOutcome(Enum):
    CONTINUE = "continue"
    DEGRADED = "degraded"
    ABORT = "abort"


@dataclass(frozen=True)
class StepResult:
    outcome: StepOutcome
    reason: str = ""
    error: Exception | None = None

    @classmethod
    def proceed(cls) -> "StepResult":
        return cls(StepOutcome.CONTINUE)

    @classmethod
    def degraded(cls, reason: str) -> "StepResult":
        return cls(StepOutcome.DEGRADED, reason=reason)

    @classmethod
    def abort(cls, error: Exception) -> "StepResult":
        return cls(StepOutcome.ABORT, reason=str(error), error=error)


@dataclass(slots=True)
class PipelineContext:
    request: JobRequest
    progress: ProgressTracker
    record: OnboardingRecord | None = None
    snapshot: IndiaOnboardingFormSnapshot | None = None
    filled_document: pymupdf.Document | None = None
    merged: MergedDocument | None = None
    attachments: list[AttachmentEntry] = field(default_factory=list)
    download_key: str = ""
    download_url: str = ""
    warnings: list[str] = field(default_factory=list)

    @property
    def job_id(self) -> str:
        return self.request.job_id

    def close(self) -> None:
        """Release every document still held by the run."""
        if self.filled_document is not None:
            self.filled_document.close()
            self.filled_document = None
        if self.merged is not None:
            self.merged.close()
            self.merged = None


class PipelineStep(ABC):
    name: str = "step"

    def execute(self, context: PipelineContext) -> StepResult:
        """Run the step, turning known domain failures into an abort result."""
        try:
            return self.run(context)
        except FATAL_ERRORS as exc:
            return StepResult.abort(exc)

    @abstractmethod
    def run(self, context: PipelineContext) -> StepResult:
        raise NotImplementedError
