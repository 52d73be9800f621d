from collections.abc import Iterable, Mapping
from datetime import date

import pymupdf

from app.logging.logger import Log
from app.pdf.exceptions import FormFillError, MissingRequiredFieldError, TemplateReadError

FieldValue = str | bool | date

# Base-14 Helvetica; regular weight renders the same in every viewer.
APPEARANCE_FONT = "Helv"

_TOGGLE_TYPES = frozenset(
    {pymupdf.PDF_WIDGET_TYPE_CHECKBOX, pymupdf.PDF_WIDGET_TYPE_RADIOBUTTON}
)
_TEXT_TYPES = frozenset(
    {
        pymupdf.PDF_WIDGET_TYPE_TEXT,
        pymupdf.PDF_WIDGET_TYPE_COMBOBOX,
        pymupdf.PDF_WIDGET_TYPE_LISTBOX,
    }
)


class FormFiller:
    """Fills AcroForm fields of a template and flattens the result."""

    def __init__(
        self,
        required_fields: Iterable[str] = (),
        date_format: str = "%d/%m/%Y",
    ) -> None:
        self._required_fields = frozenset(required_fields)
        self._date_format = date_format

    def fill(
        self, template_bytes: bytes, payload: Mapping[str, FieldValue]
    ) -> pymupdf.Document:
        """Open the template and write every payload value to its named field.

        Names the template does not contain are ignored. The returned document
        is still interactive and owned by the caller, who must close it.

        Raises:
            TemplateReadError: if the bytes are not a fillable PDF.
            MissingRequiredFieldError: if a required field stays unresolved.
            FormFillError: if a value cannot be written.
        """
        document = self._open_template(template_bytes)
        try:
            present: set[str] = set()
            filled: set[str] = set()
            for page in document:
                for widget in page.widgets():
                    name = widget.field_name
                    present.add(name)
                    if name not in payload:
                        continue
                    self._write(widget, payload[name])
                    filled.add(name)

            ignored = sorted(set(payload) - present)
            if ignored:
                Log.debug(f"Template has no fields for {len(ignored)} payload keys: {ignored}")

            missing = sorted(self._required_fields - filled)
            if missing:
                raise MissingRequiredFieldError(
                    f"Required form fields could not be resolved: {', '.join(missing)}"
                )
        except Exception:
            document.close()
            raise

        Log.info(f"Filled {len(filled)} of {len(present)} template fields")
        return document

    def finalize(self, document: pymupdf.Document) -> None:
        """Regenerate every field appearance with one font, then flatten.

        Flattening is irreversible: afterwards the document has no widgets.
        """
        try:
            for page in document:
                for widget in page.widgets():
                    if widget.field_type in _TEXT_TYPES:
                        widget.text_font = APPEARANCE_FONT
                    widget.update()
            document.bake(annots=False, widgets=True)
        except Exception as exc:
            raise FormFillError(f"Form could not be flattened: {exc}") from exc

    def format_value(self, value: FieldValue) -> str:
        if isinstance(value, bool):
            return "Yes" if value else "No"
        if isinstance(value, date):
            return value.strftime(self._date_format)
        return value

    def _write(self, widget: pymupdf.Widget, value: FieldValue) -> None:
        try:
            if widget.field_type in _TOGGLE_TYPES:
                checked = value if isinstance(value, bool) else bool(value)
                widget.field_value = widget.on_state() if checked else "Off"
            else:
                widget.field_value = self.format_value(value)
            widget.update()
        except Exception as exc:
            raise FormFillError(
                f"Could not write field '{widget.field_name}': {exc}"
            ) from exc

    @staticmethod
    def _open_template(template_bytes: bytes) -> pymupdf.Document:
        try:
            document = pymupdf.open(stream=template_bytes, filetype="pdf")
        except Exception as exc:
            raise TemplateReadError(f"Template could not be opened: {exc}") from exc
        if not document.is_form_pdf:
            document.close()
            raise TemplateReadError("Template has no fillable form fields")
        return document

