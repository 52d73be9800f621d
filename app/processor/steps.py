from pathlib import Path

from app.application_form.attachments import AttachmentSelector
from app.application_form.payload import build_application_form_payload
from app.database.repositories.onboarding_repository import OnboardingRepository
from app.logging.logger import Log
from app.onboarding.models import Subsidiary
from app.onboarding.snapshot_builder import validate_and_build
from app.pdf.exceptions import SignatureOverlayError, TemplateReadError
from app.pdf.form_filler import FormFiller
from app.pdf.merger import DocumentMerger
from app.pdf.signature_overlay import SignatureOverlay
from app.processor.exceptions import (
    FormIncompleteError,
    InvalidJobRequestError,
    MissingFormDataError,
    OnboardingNotFoundError,
    SubsidiaryMismatchError,
    UnsupportedSubsidiaryError,
)
from app.processor.pipeline import PipelineContext, PipelineStep, StepResult
from app.processor.progress import (
    DOCUMENT_SEEDED_PERCENT,
    FORM_READY_PERCENT,
    attachment_progress,
)
from app.storage.asset_fetcher import AssetFetcher
from app.storage.keys import StorageKeys
from app.storage.uploader import Uploader

SUPPORTED_SUBSIDIARIES = frozenset({Subsidiary.INDIA})


class ValidateRequestStep(PipelineStep):
    name = "validate-request"

    def run(self, context: PipelineContext) -> StepResult:
        request = context.request
        if not request.onboarding_id:
            return StepResult.abort(InvalidJobRequestError("onboardingId is required"))
        if request.subsidiary not in SUPPORTED_SUBSIDIARIES:
            return StepResult.abort(
                UnsupportedSubsidiaryError(
                    f"Unsupported subsidiary '{request.subsidiary or 'none'}': "
                    f"an application form exists only for {Subsidiary.INDIA}"
                )
            )
        return StepResult.proceed()


class LoadOnboardingStep(PipelineStep):
    name = "load-onboarding"

    def __init__(self, repository: OnboardingRepository) -> None:
        self._repository = repository

    def run(self, context: PipelineContext) -> StepResult:
        onboarding_id = context.request.onboarding_id
        record = self._repository.find_by_id(onboarding_id)
        if record is None:
            return StepResult.abort(
                OnboardingNotFoundError(f"Onboarding {onboarding_id} not found")
            )
        if record.subsidiary != context.request.subsidiary:
            return StepResult.abort(
                SubsidiaryMismatchError(
                    f"Onboarding {onboarding_id} belongs to {record.subsidiary}, "
                    f"not {context.request.subsidiary}"
                )
            )
        if not record.is_form_complete:
            return StepResult.abort(
                FormIncompleteError(f"Onboarding {onboarding_id} form is not complete")
            )
        if not record.india_form_data:
            return StepResult.abort(
                MissingFormDataError(f"Onboarding {onboarding_id} has no India form data")
            )

        context.record = record
        context.snapshot = validate_and_build(record.india_form_data)
        Log.info(f"Loaded onboarding {onboarding_id}", job_id=context.job_id)
        return StepResult.proceed()


class FillFormStep(PipelineStep):
    name = "fill-form"

    def __init__(self, form_filler: FormFiller, template_path: Path) -> None:
        self._form_filler = form_filler
        self._template_path = template_path

    def run(self, context: PipelineContext) -> StepResult:
        if context.snapshot is None:
            raise ValueError("PipelineContext.snapshot must be set before filling the form")
        try:
            template_bytes = self._template_path.read_bytes()
        except OSError as exc:
            raise TemplateReadError(
                f"Template {self._template_path} could not be read: {exc}"
            ) from exc
        payload = build_application_form_payload(context.snapshot)
        context.filled_document = self._form_filler.fill(template_bytes, payload)
        return StepResult.proceed()


class OverlaySignatureStep(PipelineStep):
    name = "overlay-signature"

    def __init__(self, signature_overlay: SignatureOverlay) -> None:
        self._signature_overlay = signature_overlay

    def run(self, context: PipelineContext) -> StepResult:
        if context.snapshot is None or context.filled_document is None:
            raise ValueError("PipelineContext.filled_document must be set before the overlay")
        try:
            self._signature_overlay.apply(
                context.filled_document, context.snapshot.declaration.signature_file
            )
        except SignatureOverlayError as exc:
            return StepResult.degraded(f"Signature skipped: {exc}")
        return StepResult.proceed()


class FlattenFormStep(PipelineStep):
    name = "flatten-form"

    def __init__(self, form_filler: FormFiller) -> None:
        self._form_filler = form_filler

    def run(self, context: PipelineContext) -> StepResult:
        if context.filled_document is None:
            raise ValueError("PipelineContext.filled_document must be set before flattening")
        self._form_filler.finalize(context.filled_document)
        context.progress.checkpoint(FORM_READY_PERCENT)
        return StepResult.proceed()


class SeedMergedDocumentStep(PipelineStep):
    name = "seed-document"

    def __init__(self, merger: DocumentMerger) -> None:
        self._merger = merger

    def run(self, context: PipelineContext) -> StepResult:
        if context.filled_document is None:
            raise ValueError("PipelineContext.filled_document must be set before merging")
        context.merged = self._merger.start(context.filled_document)
        context.filled_document.close()
        context.filled_document = None
        context.progress.checkpoint(DOCUMENT_SEEDED_PERCENT)
        return StepResult.proceed()


class AppendAttachmentsStep(PipelineStep):
    name = "append-attachments"

    def __init__(self, selector: AttachmentSelector, asset_fetcher: AssetFetcher) -> None:
        self._selector = selector
        self._asset_fetcher = asset_fetcher

    def run(self, context: PipelineContext) -> StepResult:
        if context.snapshot is None or context.merged is None:
            raise ValueError("PipelineContext.merged must be set before appending attachments")
        context.attachments = self._selector.select(context.snapshot)
        total = len(context.attachments)
        Log.info(f"Appending {total} attachments", job_id=context.job_id)

        for done, entry in enumerate(context.attachments, start=1):
            data = self._asset_fetcher.fetch(entry.asset)
            pages = context.merged.append(entry.label, entry.asset, data)
            Log.debug(f"{entry.label}: {pages} page(s)", job_id=context.job_id)
            context.progress.checkpoint(attachment_progress(done, total))
        return StepResult.proceed()


class UploadStep(PipelineStep):
    name = "upload"

    def __init__(self, uploader: Uploader, keys: StorageKeys) -> None:
        self._uploader = uploader
        self._keys = keys

    def run(self, context: PipelineContext) -> StepResult:
        if context.merged is None:
            raise ValueError("PipelineContext.merged must be set before upload")
        key = self._keys.output_key(context.job_id, context.request.filename)
        with self._uploader.open(key) as session:
            data = context.merged.to_bytes()
            session.write(data)
            session.complete()
        context.download_key = key
        context.download_url = self._keys.public_url(key)
        return StepResult.proceed()
