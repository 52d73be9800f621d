
import pymupdf

from app.logging.logger import Log
from app.onboarding.models import FileAssetRef
from app.pdf.exceptions import AttachmentReadError, DocumentMergeError
from app.pdf.page_normalizer import PageNormalizer

FORM_OUTLINE_TITLE = "Application Form"


class MergedDocument:
    """Output document under construction. Pages are only ever appended."""

    def __init__(
        self,
        document: pymupdf.Document,
        page_normalizer: PageNormalizer,
        add_outline: bool,
    ) -> None:
        self._document = document
        self._page_normalizer = page_normalizer
        self._add_outline = add_outline
        self._outline: list[list[object]] = []

    @property
    def page_count(self) -> int:
        return self._document.page_count

    @property
    def outline(self) -> list[list[object]]:
        return [list(entry) for entry in self._outline]

    def append_filled_form(self, filled: pymupdf.Document) -> int:
        return self._append_pages(filled, FORM_OUTLINE_TITLE)

    def append(self, label: str, asset: FileAssetRef, data: bytes) -> int:
        """Append one attachment and return how many pages it contributed.

        Raises:
            AttachmentReadError: if the bytes cannot be read as the asset's type.
        """
        if asset.is_pdf:
            return self.append_pdf(label, data)
        if asset.is_image:
            return self.append_image(label, data)
        raise AttachmentReadError(f"Unsupported attachment type '{asset.mime_type}' ({label})")

    def append_pdf(self, label: str, data: bytes) -> int:
        try:
            source = pymupdf.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise AttachmentReadError(f"{label}: not a readable PDF: {exc}") from exc
        with source:
            if source.needs_pass:
                raise AttachmentReadError(f"{label}: PDF is password protected")
            if source.page_count == 0:
                raise AttachmentReadError(f"{label}: PDF has no pages")
            return self._append_pages(source, label)

    def append_image(self, label: str, data: bytes) -> int:
        first_page = self.page_count + 1
        placement = self._page_normalizer.add_image_page(self._document, data)
        self._record_outline(label, first_page)
        Log.debug(
            f"{label}: image placed at ({placement.x:.1f}, {placement.y:.1f}) "
            f"size {placement.width:.1f}x{placement.height:.1f}"
        )
        return 1

    def to_bytes(self) -> bytes:
        """Serialize the merged document, compacting unused objects."""
        try:
            if self._add_outline and self._outline:
                self._document.set_toc(self._outline)
            return self._document.tobytes(garbage=4, deflate=True)
        except Exception as exc:
            raise DocumentMergeError(f"Merged PDF could not be serialized: {exc}") from exc

    def close(self) -> None:
        self._document.close()

    def _append_pages(self, source: pymupdf.Document, label: str) -> int:
        first_page = self.page_count + 1
        try:
            self._document.insert_pdf(source)
        except Exception as exc:
            raise AttachmentReadError(f"{label}: pages could not be copied: {exc}") from exc
        self._record_outline(label, first_page)
        return source.page_count

    def _record_outline(self, title: str, page_number: int) -> None:
        self._outline.append([1, title, page_number])


class DocumentMerger:
    """Builds the single output document: form pages, then attachment pages."""

    def __init__(self, page_normalizer: PageNormalizer, add_outline: bool = True) -> None:
        self._page_normalizer = page_normalizer
        self._add_outline = add_outline

    def start(self, filled: pymupdf.Document) -> MergedDocument:
        """Create the output document seeded with every filled-form page.

        The form block keeps template order and is never reordered; the
        caller may close ``filled`` afterwards.
        """
        merged = MergedDocument(pymupdf.open(), self._page_normalizer, self._add_outline)
        try:
            merged.append_filled_form(filled)
        except AttachmentReadError as exc:
            merged.close()
            raise DocumentMergeError(f"Filled form could not be copied: {exc}") from exc
        return merged
