from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch

import pymupdf
import pytest

from app.config.settings import Settings
from app.database.models import OnboardingRecord
from app.jobs.models import DoneStatus, ErrorStatus, JobRequest
from app.pdf.exceptions import TemplateReadError
from app.processor.exceptions import (
    FormIncompleteError,
    InvalidJobRequestError,
    MissingFormDataError,
    OnboardingNotFoundError,
    ProcessorError,
    SubsidiaryMismatchError,
    UnsupportedSubsidiaryError,
)
from app.processor.pipeline import PipelineContext, PipelineStep, StepResult
from app.processor.processor import UNKNOWN_ERROR_MESSAGE, Processor, build_processor
from app.storage.exceptions import ObjectNotFoundError, UploadError
from tests.support import (
    TEMPLATE_PAGES,
    FakeObjectStorageClient,
    RecordingStatusStore,
    make_jpeg,
    make_pdf,
    make_png,
)

OUTPUT_KEY = "temp/onboardings/application-form-pdf/job-1/Asha Verma.pdf"

# storage key -> bytes for every file referenced by the sample form.
ASSETS: dict[str, bytes] = {
    "uploads/aadhaar.pdf": make_pdf(2, "Aadhaar"),
    "uploads/pan.png": make_png(600, 400),
    "uploads/passport-front.jpg": make_jpeg(400, 600),
    "uploads/passport-back.jpg": make_jpeg(400, 600),
    "uploads/void-cheque.png": make_png(1200, 500),
    "uploads/acme-certificate.pdf": make_pdf(1, "Certificate"),
    "uploads/signature.png": make_png(300, 90),
}
# Aadhaar (2) + PAN + passport front + passport back + void cheque + certificate.
ATTACHMENT_PAGES = 7


@pytest.fixture()
def seeded_client(
    storage_client: FakeObjectStorageClient, settings: Settings
) -> FakeObjectStorageClient:
    for key, data in ASSETS.items():
        storage_client.add(settings.storage_bucket, key, data)
    return storage_client


@pytest.fixture()
def repository() -> Generator[MagicMock, None, None]:
    with patch("app.processor.processor.OnboardingRepository") as repository_cls:
        yield repository_cls.return_value


def _record(form_data: dict[str, Any] | None, **overrides: Any) -> OnboardingRecord:
    values: dict[str, Any] = {
        "id": "ob-1",
        "subsidiary": "INDIA",
        "is_form_complete": True,
        "india_form_data": form_data,
    }
    values.update(overrides)
    return OnboardingRecord(**values)


def _request(**overrides: Any) -> JobRequest:
    values: dict[str, Any] = {
        "job_id": "job-1",
        "onboarding_id": "ob-1",
        "subsidiary": "INDIA",
        "filename": "Asha Verma",
    }
    values.update(overrides)
    return JobRequest(**values)


def _processor(
    settings: Settings, client: FakeObjectStorageClient, store: RecordingStatusStore
) -> Processor:
    return build_processor(settings, MagicMock(), client, store)


def _output_pdf(client: FakeObjectStorageClient, settings: Settings) -> pymupdf.Document:
    return pymupdf.open(stream=client.objects[(settings.storage_bucket, OUTPUT_KEY)])


class TestSuccessfulRun:
    def test_uploads_merged_document(
        self,
        settings: Settings,
        seeded_client: FakeObjectStorageClient,
        repository: MagicMock,
        form_data: dict[str, Any],
    ) -> None:
        repository.find_by_id.return_value = _record(form_data)
        store = RecordingStatusStore()

        result = _processor(settings, seeded_client, store).process(_request())

        assert result.download_key == OUTPUT_KEY
        assert result.download_url == f"http://minio.local:9000/test-bucket/{OUTPUT_KEY}"
        repository.find_by_id.assert_called_once_with("ob-1")
        with _output_pdf(seeded_client, settings) as output:
            assert output.page_count == TEMPLATE_PAGES + ATTACHMENT_PAGES
            assert len(output[4].get_images()) == 1
            assert "Asha" in output[0].get_text()
            assert all(not list(page.widgets()) for page in output)

    def test_progress_is_monotonic_and_ends_at_100(
        self,
        settings: Settings,
        seeded_client: FakeObjectStorageClient,
        repository: MagicMock,
        form_data: dict[str, Any],
    ) -> None:
        repository.find_by_id.return_value = _record(form_data)
        store = RecordingStatusStore()

        _processor(settings, seeded_client, store).process(_request())

        assert store.progress == [0, 25, 45, 53, 60, 68, 75, 83, 90, 100]
        assert store.progress == sorted(store.progress)
        final = store.history[-1]
        assert isinstance(final, DoneStatus)
        assert final.download_key == OUTPUT_KEY
        assert all(s.started_at == final.started_at for s in store.history)

    def test_missing_signature_still_completes(
        self,
        settings: Settings,
        seeded_client: FakeObjectStorageClient,
        repository: MagicMock,
        form_data: dict[str, Any],
    ) -> None:
        form_data["declaration"]["signature"] = None
        repository.find_by_id.return_value = _record(form_data)
        store = RecordingStatusStore()

        _processor(settings, seeded_client, store).process(_request())

        assert isinstance(store.history[-1], DoneStatus)
        with _output_pdf(seeded_client, settings) as output:
            assert output.page_count == TEMPLATE_PAGES + ATTACHMENT_PAGES
            assert output[4].get_images() == []

    def test_unreadable_signature_still_completes(
        self,
        settings: Settings,
        seeded_client: FakeObjectStorageClient,
        repository: MagicMock,
        form_data: dict[str, Any],
    ) -> None:
        seeded_client.add(settings.storage_bucket, "uploads/signature.png", b"broken")
        repository.find_by_id.return_value = _record(form_data)
        store = RecordingStatusStore()

        _processor(settings, seeded_client, store).process(_request())

        assert isinstance(store.history[-1], DoneStatus)

    def test_default_filename_is_job_id(
        self,
        settings: Settings,
        seeded_client: FakeObjectStorageClient,
        repository: MagicMock,
        form_data: dict[str, Any],
    ) -> None:
        repository.find_by_id.return_value = _record(form_data)

        result = _processor(settings, seeded_client, RecordingStatusStore()).process(
            _request(filename=None)
        )

        assert result.download_key == "temp/onboardings/application-form-pdf/job-1/job-1.pdf"


class TestPreconditionFailures:
    def test_unsupported_subsidiary_never_uploads(
        self,
        settings: Settings,
        seeded_client: FakeObjectStorageClient,
        repository: MagicMock,
    ) -> None:
        store = RecordingStatusStore()

        with pytest.raises(UnsupportedSubsidiaryError):
            _processor(settings, seeded_client, store).process(_request(subsidiary="CANADA"))

        final = store.history[-1]
        assert isinstance(final, ErrorStatus)
        assert "CANADA" in final.error_message
        assert not any(isinstance(s, DoneStatus) for s in store.history)
        assert seeded_client.puts == []
        repository.find_by_id.assert_not_called()

    def test_missing_onboarding_id(
        self,
        settings: Settings,
        seeded_client: FakeObjectStorageClient,
        repository: MagicMock,
    ) -> None:
        store = RecordingStatusStore()

        with pytest.raises(InvalidJobRequestError):
            _processor(settings, seeded_client, store).process(_request(onboarding_id=""))

        assert store.progress == [0, 0]
        assert isinstance(store.history[-1], ErrorStatus)

    @pytest.mark.parametrize(
        "record_overrides,error",
        [
            ({"subsidiary": "USA"}, SubsidiaryMismatchError),
            ({"is_form_complete": False}, FormIncompleteError),
            ({"india_form_data": None}, MissingFormDataError),
        ],
    )
    def test_onboarding_preconditions(
        self,
        settings: Settings,
        seeded_client: FakeObjectStorageClient,
        repository: MagicMock,
        form_data: dict[str, Any],
        record_overrides: dict[str, Any],
        error: type[Exception],
    ) -> None:
        repository.find_by_id.return_value = _record(form_data, **record_overrides)
        store = RecordingStatusStore()

        with pytest.raises(error):
            _processor(settings, seeded_client, store).process(_request())

        assert isinstance(store.history[-1], ErrorStatus)
        assert seeded_client.puts == []

    def test_onboarding_not_found(
        self,
        settings: Settings,
        seeded_client: FakeObjectStorageClient,
        repository: MagicMock,
    ) -> None:
        repository.find_by_id.return_value = None
        store = RecordingStatusStore()

        with pytest.raises(OnboardingNotFoundError, match="ob-1"):
            _processor(settings, seeded_client, store).process(_request())

        final = store.history[-1]
        assert isinstance(final, ErrorStatus)
        assert final.error_message == "Onboarding ob-1 not found"


class TestIoFailures:
    def test_missing_template(
        self,
        settings: Settings,
        seeded_client: FakeObjectStorageClient,
        repository: MagicMock,
        form_data: dict[str, Any],
        tmp_path: Any,
    ) -> None:
        repository.find_by_id.return_value = _record(form_data)
        settings = settings.model_copy(update={"template_path": str(tmp_path / "nope.pdf")})
        store = RecordingStatusStore()

        with pytest.raises(TemplateReadError):
            _processor(settings, seeded_client, store).process(_request())

        final = store.history[-1]
        assert isinstance(final, ErrorStatus)
        assert "nope.pdf" in final.error_message
        assert final.progress_percent == 0

    def test_missing_attachment_object(
        self,
        settings: Settings,
        seeded_client: FakeObjectStorageClient,
        repository: MagicMock,
        form_data: dict[str, Any],
    ) -> None:
        del seeded_client.objects[(settings.storage_bucket, "uploads/void-cheque.png")]
        repository.find_by_id.return_value = _record(form_data)
        store = RecordingStatusStore()

        with pytest.raises(ObjectNotFoundError, match="void-cheque"):
            _processor(settings, seeded_client, store).process(_request())

        final = store.history[-1]
        assert isinstance(final, ErrorStatus)
        assert final.progress_percent == 75
        assert seeded_client.puts == []

    def test_upload_failure(
        self,
        settings: Settings,
        seeded_client: FakeObjectStorageClient,
        repository: MagicMock,
        form_data: dict[str, Any],
    ) -> None:
        seeded_client.fail_puts.add(OUTPUT_KEY)
        repository.find_by_id.return_value = _record(form_data)
        store = RecordingStatusStore()

        with pytest.raises(UploadError):
            _processor(settings, seeded_client, store).process(_request())

        final = store.history[-1]
        assert isinstance(final, ErrorStatus)
        assert final.progress_percent == 90


class _RaisingStep(PipelineStep):
    name = "raising"

    def __init__(self, error: Exception) -> None:
        self._error = error

    def run(self, context: PipelineContext) -> StepResult:
        raise self._error


class _DegradedStep(PipelineStep):
    name = "degraded"

    def run(self, context: PipelineContext) -> StepResult:
        return StepResult.degraded("optional part skipped")


class TestFailurePolicy:
    def test_empty_message_falls_back(self) -> None:
        store = RecordingStatusStore()

        with pytest.raises(ProcessorError):
            Processor([_RaisingStep(ProcessorError(""))], store).process(_request())

        final = store.history[-1]
        assert isinstance(final, ErrorStatus)
        assert final.error_message == UNKNOWN_ERROR_MESSAGE

    def test_unexpected_exception_is_recorded_and_reraised(self) -> None:
        store = RecordingStatusStore()

        with pytest.raises(KeyError):
            Processor([_RaisingStep(KeyError("india"))], store).process(_request())

        assert isinstance(store.history[-1], ErrorStatus)

    def test_error_written_exactly_once(self) -> None:
        store = RecordingStatusStore()

        with pytest.raises(ProcessorError):
            Processor(
                [_RaisingStep(ProcessorError("first")), _RaisingStep(ProcessorError("second"))],
                store,
            ).process(_request())

        errors = [s for s in store.history if isinstance(s, ErrorStatus)]
        assert [e.error_message for e in errors] == ["first"]

    def test_degraded_step_continues(self) -> None:
        store = RecordingStatusStore()

        result = Processor([_DegradedStep()], store).process(_request())

        assert result.job_id == "job-1"
        assert isinstance(store.history[-1], DoneStatus)

    def test_failed_error_write_keeps_original_exception(self) -> None:
        store = MagicMock()
        store.put.side_effect = [None, ConnectionError("storage down")]

        with pytest.raises(ProcessorError, match="boom"):
            Processor([_RaisingStep(ProcessorError("boom"))], store).process(_request())
