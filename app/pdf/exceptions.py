class PdfError(Exception):
    """Base exception for PDF assembly errors."""


class TemplateReadError(PdfError):
    """Raised when the fillable template cannot be opened as a form."""


class FormFillError(PdfError):
    """Raised when field values cannot be written or flattened."""


class MissingRequiredFieldError(FormFillError):
    """Raised when a business-required field cannot be resolved."""


class SignatureOverlayError(PdfError):
    """Raised when the signature cannot be drawn. Never fatal to a job."""


class AttachmentReadError(PdfError):
    """Raised when an attachment cannot be decoded as a PDF or image."""


class DocumentMergeError(PdfError):
    """Raised when the merged output cannot be built or serialized."""
