from dataclasses import dataclass

import pymupdf

from app.pdf.exceptions import AttachmentReadError


@dataclass(frozen=True)
class PageGeometry:
    """Page size and uniform margin, in PDF points."""

    width: float
    height: float
    margin: float

    @property
    def usable_width(self) -> float:
        return self.width - 2 * self.margin

    @property
    def usable_height(self) -> float:
        return self.height - 2 * self.margin


A4_PORTRAIT = PageGeometry(width=595.28, height=841.89, margin=36.0)


@dataclass(frozen=True)
class Placement:
    """Where an image lands on a page. ``y`` is measured from the top edge."""

    x: float
    y: float
    width: float
    height: float
    scale: float

    @property
    def rect(self) -> pymupdf.Rect:
        return pymupdf.Rect(self.x, self.y, self.x + self.width, self.y + self.height)


def scale_to_fit(width: float, height: float, max_width: float, max_height: float) -> float:
    """Largest scale <= 1 that fits ``width x height`` inside the box."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    return min(max_width / width, max_height / height, 1.0)


def fit_to_page(width: float, height: float, geometry: PageGeometry = A4_PORTRAIT) -> Placement:
    """Shrink (never enlarge) an image into the usable area and center it.

    Centering is symmetric, so ``y`` is the same whether measured from the top
    or the bottom edge.
    """
    scale = scale_to_fit(width, height, geometry.usable_width, geometry.usable_height)
    placed_width = width * scale
    placed_height = height * scale
    return Placement(
        x=(geometry.width - placed_width) / 2,
        y=(geometry.height - placed_height) / 2,
        width=placed_width,
        height=placed_height,
        scale=scale,
    )


def image_dimensions(image_bytes: bytes) -> tuple[int, int]:
    """Pixel width and height of a PNG or JPEG.

    Raises:
        AttachmentReadError: if the bytes are not a decodable image.
    """
    try:
        pixmap = pymupdf.Pixmap(image_bytes)
    except Exception as exc:
        raise AttachmentReadError(f"Image could not be decoded: {exc}") from exc
    return pixmap.width, pixmap.height


class PageNormalizer:
    """Turns an image attachment into exactly one full page."""

    def __init__(self, geometry: PageGeometry = A4_PORTRAIT) -> None:
        self._geometry = geometry

    def add_image_page(self, document: pymupdf.Document, image_bytes: bytes) -> Placement:
        """Append a new page to ``document`` with the image fitted and centered."""
        width, height = image_dimensions(image_bytes)
        placement = fit_to_page(width, height, self._geometry)
        page = document.new_page(width=self._geometry.width, height=self._geometry.height)
        try:
            page.insert_image(placement.rect, stream=image_bytes, keep_proportion=True)
        except Exception as exc:
            document.delete_page(-1)
            raise AttachmentReadError(f"Image could not be placed on page: {exc}") from exc
        return placement
