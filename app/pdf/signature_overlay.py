import pymupdf

from app.logging.logger import Log
from app.onboarding.models import FileAssetRef
from app.pdf.exceptions import AttachmentReadError, SignatureOverlayError
from app.pdf.page_normalizer import image_dimensions, scale_to_fit
from app.storage.asset_fetcher import AssetFetcher
from app.storage.exceptions import StorageError

MAX_SIGNATURE_WIDTH = 140.0
MAX_SIGNATURE_HEIGHT = 30.0


def signature_rect(
    field_rect: pymupdf.Rect,
    image_width: float,
    image_height: float,
    max_width: float = MAX_SIGNATURE_WIDTH,
    max_height: float = MAX_SIGNATURE_HEIGHT,
) -> pymupdf.Rect:
    """Target box for the signature inside the field's widget rectangle.

    The image is shrunk (never enlarged) with its aspect ratio kept, capped
    by both the field size and the fixed maximums, and anchored at the
    field's PDF origin, i.e. its bottom-left corner.
    """
    cap_width = min(field_rect.width, max_width)
    cap_height = min(field_rect.height, max_height)
    scale = scale_to_fit(image_width, image_height, cap_width, cap_height)
    width = image_width * scale
    height = image_height * scale
    return pymupdf.Rect(
        field_rect.x0,
        field_rect.y1 - height,
        field_rect.x0 + width,
        field_rect.y1,
    )


class SignatureOverlay:
    """Draws the declaration signature image into the filled form."""

    def __init__(self, asset_fetcher: AssetFetcher, field_name: str, page_index: int) -> None:
        self._asset_fetcher = asset_fetcher
        self._field_name = field_name
        self._page_index = page_index

    def apply(self, document: pymupdf.Document, asset: FileAssetRef | None) -> pymupdf.Rect:
        """Draw the signature as page content in place of the signature field.

        The field widget is removed so flattening cannot paint over the image.

        Returns the rectangle the image was drawn into.

        Raises:
            SignatureOverlayError: for any reason the signature was not drawn.
                Callers treat this as a degraded outcome, never a fatal one.
        """
        if asset is None or not asset.has_key:
            raise SignatureOverlayError("No signature file on the declaration")
        if not asset.is_image:
            raise SignatureOverlayError(
                f"Signature file is not a PNG/JPEG image ({asset.mime_type or 'unknown'})"
            )
        if self._page_index >= document.page_count:
            raise SignatureOverlayError(
                f"Template has {document.page_count} pages; "
                f"signature page index {self._page_index} is out of range"
            )

        page = document[self._page_index]
        widget = self._find_field(page)
        field_rect = pymupdf.Rect(widget.rect)

        try:
            image_bytes = self._asset_fetcher.fetch(asset)
            width, height = image_dimensions(image_bytes)
            target = signature_rect(field_rect, width, height)
            page.delete_widget(widget)
            page.insert_image(target, stream=image_bytes, keep_proportion=True, overlay=True)
        except (StorageError, AttachmentReadError, ValueError, RuntimeError) as exc:
            raise SignatureOverlayError(f"Signature could not be drawn: {exc}") from exc

        Log.info(f"Signature drawn on page {self._page_index + 1} at {tuple(target)}")
        return target

    def _find_field(self, page: pymupdf.Page) -> pymupdf.Widget:
        for widget in page.widgets():
            if widget.field_name == self._field_name:
                return widget
        raise SignatureOverlayError(
            f"Field '{self._field_name}' not found on page {self._page_index + 1}"
        )
