"""PDF, image and object-storage builders shared by the test suite."""

import io
from typing import Any, BinaryIO

import pymupdf
from minio.error import S3Error
from reportlab.lib.pagesizes import A4, letter
from reportlab.pdfgen import canvas

from app.jobs.models import JobStatus
from app.storage.status_store import BaseStatusStore

TEMPLATE_PAGES = 5

# name -> (page index, x, y, width, height) in reportlab (bottom-left) coordinates.
TEMPLATE_TEXT_FIELDS: dict[str, tuple[int, int, int, int, int]] = {
    "first_name": (0, 150, 760, 200, 18),
    "last_name": (0, 150, 735, 200, 18),
    "email": (0, 150, 710, 200, 18),
    "date_of_birth": (0, 150, 685, 120, 18),
    "address_line1": (0, 150, 660, 300, 18),
    "address_city": (0, 150, 635, 150, 18),
    "phone_mobile": (0, 150, 610, 150, 18),
    "aadhaar_number": (1, 150, 760, 200, 18),
    "education_level": (1, 150, 735, 200, 18),
    "education_institution": (1, 150, 710, 300, 18),
    "employer_1_organization": (2, 150, 760, 250, 18),
    "employer_1_designation": (2, 150, 735, 250, 18),
    "bank_name": (3, 150, 760, 250, 18),
    "bank_account_number": (3, 150, 735, 250, 18),
    "bank_ifsc_code": (3, 150, 710, 150, 18),
    "declaration_date": (4, 150, 200, 120, 18),
    "declaration_signature": (4, 150, 120, 200, 40),
}

TEMPLATE_CHECKBOXES: dict[str, tuple[int, int, int]] = {
    "gender_male": (0, 400, 760),
    "gender_female": (0, 440, 760),
    "previous_employment_yes": (2, 400, 760),
    "previous_employment_no": (2, 440, 760),
    "declaration_accepted": (4, 150, 240),
}


def build_form_template(
    text_fields: dict[str, tuple[int, int, int, int, int]] | None = None,
    checkboxes: dict[str, tuple[int, int, int]] | None = None,
    pages: int = TEMPLATE_PAGES,
) -> bytes:
    """Generate a fillable AcroForm PDF laid out like the application form."""
    text_fields = TEMPLATE_TEXT_FIELDS if text_fields is None else text_fields
    checkboxes = TEMPLATE_CHECKBOXES if checkboxes is None else checkboxes
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    for page_index in range(pages):
        c.drawString(72, 800, f"Application form page {page_index + 1}")
        for name, (page, x, y, width, height) in text_fields.items():
            if page == page_index:
                c.drawString(40, y + 4, name)
                c.acroForm.textfield(
                    name=name, x=x, y=y, width=width, height=height, borderStyle="inset"
                )
        for name, (page, x, y) in checkboxes.items():
            if page == page_index:
                c.acroForm.checkbox(name=name, x=x, y=y, size=12, buttonStyle="check")
        c.showPage()
    c.save()
    return buf.getvalue()


def make_pdf(pages: int, text: str = "Attachment") -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    for page in range(pages):
        c.drawString(72, 720, f"{text} page {page + 1}")
        c.showPage()
    c.save()
    return buf.getvalue()


def make_png(width: int, height: int, shade: int = 200) -> bytes:
    pixmap = pymupdf.Pixmap(pymupdf.csRGB, pymupdf.IRect(0, 0, width, height), False)
    pixmap.clear_with(shade)
    return pixmap.tobytes("png")


def make_jpeg(width: int, height: int) -> bytes:
    pixmap = pymupdf.Pixmap(pymupdf.csRGB, pymupdf.IRect(0, 0, width, height), False)
    pixmap.clear_with(120)
    return pixmap.tobytes("jpeg")


class MissingObjectError(S3Error):
    """``NoSuchKey`` shaped like the MinIO client's error, without an HTTP response."""

    def __init__(self, key: str) -> None:
        Exception.__init__(self, key)
        self.key = key

    @property
    def code(self) -> str:
        return "NoSuchKey"

    def __str__(self) -> str:
        return f"NoSuchKey: {self.key}"


class _Response:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self.closed = False
        self.released = False

    def read(self) -> bytes:
        return self._data

    def close(self) -> None:
        self.closed = True

    def release_conn(self) -> None:
        self.released = True


class FakeObjectStorageClient:
    """In-memory stand-in for ``minio.Minio`` (get_object / put_object)."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.content_types: dict[tuple[str, str], str] = {}
        self.puts: list[str] = []
        self.fail_puts: set[str] = set()

    def add(self, bucket: str, key: str, data: bytes) -> None:
        self.objects[(bucket, key)] = data

    def get_object(self, bucket_name: str, object_name: str) -> _Response:
        try:
            return _Response(self.objects[(bucket_name, object_name)])
        except KeyError:
            raise MissingObjectError(object_name) from None

    def put_object(
        self,
        bucket_name: str,
        object_name: str,
        data: BinaryIO,
        length: int,
        content_type: str = "application/octet-stream",
        part_size: int = 0,
    ) -> dict[str, str]:
        if object_name in self.fail_puts:
            raise ConnectionError(f"storage unavailable for {object_name}")
        if length >= 0:
            body = data.read(length)
        else:
            chunks = []
            while chunk := data.read(part_size or 65536):
                chunks.append(chunk)
            body = b"".join(chunks)
        self.objects[(bucket_name, object_name)] = body
        self.content_types[(bucket_name, object_name)] = content_type
        self.puts.append(object_name)
        return {"bucket": bucket_name, "key": object_name, "etag": str(len(body))}


def _file(key: str, mime_type: str = "application/pdf", name: str = "") -> dict[str, Any]:
    return {
        "s3Key": key,
        "mimeType": mime_type,
        "originalName": name or key.rsplit("/", 1)[-1],
        "sizeBytes": 1024,
    }


SAMPLE_FORM_DATA: dict[str, Any] = {
    "personalInfo": {
        "firstName": "Asha",
        "lastName": "Verma",
        "email": "asha.verma@example.com",
        "gender": "FEMALE",
        "dateOfBirth": "1994-03-17",
        "canProvideProofOfAge": True,
        "residentialAddress": {
            "addressLine1": "12 MG Road",
            "city": "Pune",
            "state": "Maharashtra",
            "postalCode": "411001",
            "fromDate": "2019-06-01",
            "toDate": "2024-01-31",
        },
        "phoneHome": "",
        "phoneMobile": "+91 98200 12345",
        "emergencyContactName": "Ravi Verma",
        "emergencyContactNumber": "+91 98200 54321",
    },
    "governmentIds": {
        "aadhaar": {
            "aadhaarNumber": "1234 5678 9012",
            "file": _file("uploads/aadhaar.pdf"),
        },
        "panCard": {"file": _file("uploads/pan.png", "image/png")},
        "passport": {
            "frontFile": _file("uploads/passport-front.jpg", "image/jpg"),
            "backFile": _file("uploads/passport-back.jpg", "image/jpeg"),
        },
        "driversLicense": None,
    },
    "education": [
        {
            "highestLevel": "BACHELORS",
            "institutionName": "University of Pune",
            "universityOrBoard": "SPPU",
            "fieldOfStudy": "Commerce",
            "startYear": 2012,
            "endYear": 2015,
            "gradeOrCgpa": "8.1",
        }
    ],
    "hasPreviousEmployment": True,
    "employmentHistory": [
        {
            "organizationName": "Acme Logistics",
            "designation": "Analyst",
            "startDate": "2016-01-04",
            "endDate": "2023-12-29",
            "reasonForLeaving": "Relocation",
            "experienceCertificateFile": _file("uploads/acme-certificate.pdf"),
        }
    ],
    "bankDetails": {
        "bankName": "State Bank of India",
        "branchName": "Camp",
        "accountHolderName": "Asha Verma",
        "accountNumber": "00112233445566",
        "ifscCode": "sbin0000123",
        "upiId": None,
        "voidCheque": _file("uploads/void-cheque.png", "image/png"),
    },
    "declaration": {
        "hasAcceptedDeclaration": True,
        "declarationDate": "2024-02-01T09:30:00.000Z",
        "signature": {
            "file": _file("uploads/signature.png", "image/png"),
            "signedAt": "2024-02-01T09:30:00.000Z",
        },
    },
}


class RecordingStatusStore(BaseStatusStore):
    """Keeps every status write in order."""

    def __init__(self) -> None:
        self.records: dict[str, JobStatus] = {}
        self.history: list[JobStatus] = []

    def get(self, job_id: str) -> JobStatus | None:
        return self.records.get(job_id)

    def put(self, job_id: str, status: JobStatus) -> None:
        self.records[job_id] = status
        self.history.append(status)

    @property
    def progress(self) -> list[int]:
        return [status.progress_percent for status in self.history]
