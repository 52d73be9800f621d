from dataclasses import dataclass, field
from enum import StrEnum


class Subsidiary(StrEnum):
    INDIA = "INDIA"
    CANADA = "CANADA"
    USA = "USA"


class MimeType(StrEnum):
    PDF = "application/pdf"
    PNG = "image/png"
    JPEG = "image/jpeg"


_MIME_ALIASES = {"image/jpg": MimeType.JPEG}


def normalize_mime(raw: str | None) -> MimeType | None:
    """Map a stored mime type to a supported MimeType, or None if unsupported."""
    value = (raw or "").strip().lower()
    if value in _MIME_ALIASES:
        return _MIME_ALIASES[value]
    try:
        return MimeType(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class FileAssetRef:
    """Reference to an uploaded file in object storage. Never carries bytes."""

    storage_key: str
    mime_type: str
    original_name: str | None = None
    size_bytes: int | None = None

    @property
    def has_key(self) -> bool:
        return bool(self.storage_key.strip())

    @property
    def kind(self) -> MimeType | None:
        return normalize_mime(self.mime_type)

    @property
    def is_image(self) -> bool:
        return self.kind in (MimeType.PNG, MimeType.JPEG)

    @property
    def is_pdf(self) -> bool:
        return self.kind is MimeType.PDF


@dataclass(frozen=True)
class ResidentialAddress:
    address_line1: str
    city: str
    state: str
    postal_code: str
    from_date: str
    to_date: str


@dataclass(frozen=True)
class PersonalInfo:
    first_name: str
    last_name: str
    email: str
    gender: str
    date_of_birth: str
    can_provide_proof_of_age: bool
    residential_address: ResidentialAddress
    phone_mobile: str
    emergency_contact_name: str
    emergency_contact_number: str
    phone_home: str | None = None


@dataclass(frozen=True)
class Aadhaar:
    aadhaar_number: str
    file: FileAssetRef | None = None


@dataclass(frozen=True)
class TwoSidedId:
    front_file: FileAssetRef | None = None
    back_file: FileAssetRef | None = None


@dataclass(frozen=True)
class GovernmentIds:
    aadhaar: Aadhaar
    pan_card_file: FileAssetRef | None = None
    passport: TwoSidedId = field(default_factory=TwoSidedId)
    drivers_license: TwoSidedId | None = None


@dataclass(frozen=True)
class EducationEntry:
    highest_level: str
    school_name: str | None = None
    school_location: str | None = None
    primary_year_completed: int | None = None
    high_school_institution_name: str | None = None
    high_school_board: str | None = None
    high_school_stream: str | None = None
    high_school_year_completed: int | None = None
    high_school_grade_or_percentage: str | None = None
    institution_name: str | None = None
    university_or_board: str | None = None
    field_of_study: str | None = None
    start_year: int | None = None
    end_year: int | None = None
    grade_or_cgpa: str | None = None


@dataclass(frozen=True)
class EmploymentHistoryEntry:
    organization_name: str
    designation: str
    start_date: str
    end_date: str
    reason_for_leaving: str
    experience_certificate_file: FileAssetRef | None = None


@dataclass(frozen=True)
class BankDetails:
    bank_name: str
    branch_name: str
    account_holder_name: str
    account_number: str
    ifsc_code: str
    upi_id: str | None = None
    void_cheque_file: FileAssetRef | None = None


@dataclass(frozen=True)
class Declaration:
    has_accepted_declaration: bool
    declaration_date: str
    signature_file: FileAssetRef | None = None
    signed_at: str | None = None


@dataclass(frozen=True)
class IndiaOnboardingFormSnapshot:
    """Immutable, decrypted view of the India onboarding form."""

    personal_info: PersonalInfo
    government_ids: GovernmentIds
    bank_details: BankDetails
    declaration: Declaration
    education: list[EducationEntry] = field(default_factory=list)
    has_previous_employment: bool = False
    employment_history: list[EmploymentHistoryEntry] = field(default_factory=list)
