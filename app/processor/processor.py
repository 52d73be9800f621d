from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path

from app.application_form.attachments import AttachmentSelector
from app.application_form.fields import (
    REQUIRED_FIELDS,
    SIGNATURE_PAGE_INDEX,
    ApplicationFormField,
)
from app.config.settings import Settings
from app.database.connection import Database
from app.database.repositories.onboarding_repository import OnboardingRepository
from app.jobs.models import JobRequest, JobResult, utc_now
from app.logging.logger import Log
from app.pdf.form_filler import FormFiller
from app.pdf.merger import DocumentMerger
from app.pdf.page_normalizer import PageNormalizer
from app.pdf.signature_overlay import SignatureOverlay
from app.processor.exceptions import ProcessorError
from app.processor.pipeline import PipelineContext, PipelineStep, StepOutcome
from app.processor.progress import ProgressTracker
from app.processor.steps import (
    AppendAttachmentsStep,
    FillFormStep,
    FlattenFormStep,
    LoadOnboardingStep,
    OverlaySignatureStep,
    SeedMergedDocumentStep,
    UploadStep,
    ValidateRequestStep,
)
from app.storage.asset_fetcher import AssetFetcher
from app.storage.client import ObjectStorageClient
from app.storage.keys import StorageKeys
from app.storage.status_store import BaseStatusStore
from app.storage.uploader import Uploader

UNKNOWN_ERROR_MESSAGE = "Unknown PDF job error"


class Processor:
    """Assembles the application-form PDF for one job.

    Pipeline: validate -> load onboarding -> fill -> signature -> flatten ->
    seed output -> attachments -> upload. The RUNNING record is written first;
    every failure after it is recorded once as ERROR and re-raised.
    """

    def __init__(
        self,
        steps: Sequence[PipelineStep],
        status_store: BaseStatusStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._steps = list(steps)
        self._status_store = status_store
        self._clock = clock

    def process(self, request: JobRequest) -> JobResult:
        job_id = request.job_id
        progress = ProgressTracker(self._status_store, job_id, clock=self._clock)
        progress.start()
        Log.info(f"Job {job_id} started", onboarding_id=request.onboarding_id)

        context = PipelineContext(request=request, progress=progress)
        try:
            for step in self._steps:
                result = step.execute(context)
                if result.outcome is StepOutcome.ABORT:
                    raise result.error or ProcessorError(result.reason)
                if result.outcome is StepOutcome.DEGRADED:
                    Log.warning(result.reason, job_id=job_id, step=step.name)
                    context.warnings.append(result.reason)

            progress.done(context.download_key, context.download_url)
        except Exception as exc:
            self._record_failure(progress, job_id, exc)
            raise
        finally:
            context.close()

        Log.info(
            f"Job {job_id} done",
            key=context.download_key,
            warnings=len(context.warnings),
        )
        return JobResult(
            job_id=job_id,
            download_key=context.download_key,
            download_url=context.download_url,
        )

    @staticmethod
    def _record_failure(progress: ProgressTracker, job_id: str, exc: Exception) -> None:
        message = str(exc).strip() or UNKNOWN_ERROR_MESSAGE
        Log.exception(f"Job {job_id} failed: {message}", progress=progress.percent)
        try:
            progress.fail(message)
        except Exception as write_exc:
            Log.error(f"Job {job_id} error status could not be written: {write_exc}")


def build_processor(
    settings: Settings,
    database: Database,
    storage_client: ObjectStorageClient,
    status_store: BaseStatusStore,
) -> Processor:
    """Build a Processor with all required collaborators."""
    bucket = settings.storage_bucket
    keys = StorageKeys(settings)
    asset_fetcher = AssetFetcher(storage_client, bucket)
    form_filler = FormFiller(REQUIRED_FIELDS, date_format=settings.form_date_format)
    signature_overlay = SignatureOverlay(
        asset_fetcher,
        field_name=ApplicationFormField.DECLARATION_SIGNATURE,
        page_index=SIGNATURE_PAGE_INDEX,
    )
    merger = DocumentMerger(PageNormalizer(), add_outline=settings.merge_add_outline)
    uploader = Uploader(storage_client, bucket, part_size=settings.upload_part_size_bytes)

    steps: list[PipelineStep] = [
        ValidateRequestStep(),
        LoadOnboardingStep(OnboardingRepository(database)),
        FillFormStep(form_filler, Path(settings.template_path)),
        OverlaySignatureStep(signature_overlay),
        FlattenFormStep(form_filler),
        SeedMergedDocumentStep(merger),
        AppendAttachmentsStep(AttachmentSelector(), asset_fetcher),
        UploadStep(uploader, keys),
    ]
    return Processor(steps, status_store)
