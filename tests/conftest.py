import copy
from collections.abc import Callable
from typing import Any

import pytest

from app.config.settings import Settings
from tests.support import (
    SAMPLE_FORM_DATA,
    FakeObjectStorageClient,
    build_form_template,
    make_pdf,
    make_png,
)


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    return make_pdf(1, "Hello PDF World")


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    return make_pdf(2)


@pytest.fixture()
def form_template_bytes() -> bytes:
    return build_form_template()


@pytest.fixture()
def png_factory() -> Callable[[int, int], bytes]:
    return make_png


@pytest.fixture()
def form_data() -> dict[str, Any]:
    return copy.deepcopy(SAMPLE_FORM_DATA)


@pytest.fixture()
def storage_client() -> FakeObjectStorageClient:
    return FakeObjectStorageClient()


@pytest.fixture()
def settings(tmp_path: Any) -> Settings:
    template = tmp_path / "template.pdf"
    template.write_bytes(build_form_template())
    return Settings(
        storage_bucket="test-bucket",
        storage_temp_prefix="temp",
        storage_endpoint="minio.local:9000",
        template_path=str(template),
        upload_part_size_bytes=5 * 1024 * 1024,
    )
