"""Builds the typed India form snapshot from the stored (decrypted) form JSON."""

from typing import Any

from app.onboarding.exceptions import SnapshotValidationError
from app.onboarding.models import (
    Aadhaar,
    BankDetails,
    Declaration,
    EducationEntry,
    EmploymentHistoryEntry,
    FileAssetRef,
    GovernmentIds,
    IndiaOnboardingFormSnapshot,
    PersonalInfo,
    ResidentialAddress,
    TwoSidedId,
)

MAX_EMPLOYMENT_ENTRIES = 3


def validate_and_build(data: dict[str, Any]) -> IndiaOnboardingFormSnapshot:
    """Validate the nested form document and build the snapshot.

    Only the shape is enforced here: required sections and keys must exist
    with the right types. Whether a value is business-required for the printed
    form is decided later, when the form payload is filled.

    Raises:
        SnapshotValidationError: on any structural problem.
    """
    if not isinstance(data, dict):
        raise SnapshotValidationError("form data must be an object")
    return IndiaOnboardingFormSnapshot(
        personal_info=_build_personal_info(_section(data, "personalInfo")),
        government_ids=_build_government_ids(_section(data, "governmentIds")),
        bank_details=_build_bank_details(_section(data, "bankDetails")),
        declaration=_build_declaration(_section(data, "declaration")),
        education=_build_education(data.get("education")),
        has_previous_employment=_bool(data, "hasPreviousEmployment", "", default=False),
        employment_history=_build_employment_history(data.get("employmentHistory")),
    )


def _section(data: dict[str, Any], key: str, path: str = "") -> dict[str, Any]:
    raw = data.get(key)
    if not isinstance(raw, dict):
        raise SnapshotValidationError(f"'{path}{key}' must be an object")
    return raw


def _str(data: dict[str, Any], key: str, path: str) -> str:
    raw = data.get(key)
    if not isinstance(raw, str):
        raise SnapshotValidationError(f"'{path}{key}' must be a string")
    return raw.strip()


def _optional_str(data: dict[str, Any], key: str, path: str) -> str | None:
    raw = data.get(key)
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise SnapshotValidationError(f"'{path}{key}' must be a string or null")
    return raw.strip() or None


def _optional_int(data: dict[str, Any], key: str, path: str) -> int | None:
    raw = data.get(key)
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise SnapshotValidationError(f"'{path}{key}' must be an integer or null")
    return raw


def _bool(data: dict[str, Any], key: str, path: str, default: bool | None = None) -> bool:
    raw = data.get(key)
    if raw is None or raw == "":
        raw = default
    if raw == "true":
        return True
    if raw == "false":
        return False
    if not isinstance(raw, bool):
        raise SnapshotValidationError(f"'{path}{key}' must be a boolean")
    return raw


def _file(data: dict[str, Any] | None, key: str, path: str) -> FileAssetRef | None:
    if data is None:
        return None
    raw = data.get(key)
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise SnapshotValidationError(f"'{path}{key}' must be a file object or null")
    size = raw.get("sizeBytes")
    return FileAssetRef(
        storage_key=str(raw.get("s3Key") or ""),
        mime_type=str(raw.get("mimeType") or ""),
        original_name=raw.get("originalName") or None,
        size_bytes=size if isinstance(size, int) and not isinstance(size, bool) else None,
    )


def _build_personal_info(raw: dict[str, Any]) -> PersonalInfo:
    path = "personalInfo."
    address = _section(raw, "residentialAddress", path)
    address_path = f"{path}residentialAddress."
    return PersonalInfo(
        first_name=_str(raw, "firstName", path),
        last_name=_str(raw, "lastName", path),
        email=_str(raw, "email", path),
        gender=_str(raw, "gender", path),
        date_of_birth=_str(raw, "dateOfBirth", path),
        can_provide_proof_of_age=_bool(raw, "canProvideProofOfAge", path, default=False),
        residential_address=ResidentialAddress(
            address_line1=_str(address, "addressLine1", address_path),
            city=_str(address, "city", address_path),
            state=_str(address, "state", address_path),
            postal_code=_str(address, "postalCode", address_path),
            from_date=_str(address, "fromDate", address_path),
            to_date=_str(address, "toDate", address_path),
        ),
        phone_home=_optional_str(raw, "phoneHome", path),
        phone_mobile=_str(raw, "phoneMobile", path),
        emergency_contact_name=_str(raw, "emergencyContactName", path),
        emergency_contact_number=_str(raw, "emergencyContactNumber", path),
    )


def _build_government_ids(raw: dict[str, Any]) -> GovernmentIds:
    path = "governmentIds."
    aadhaar = _section(raw, "aadhaar", path)
    pan = raw.get("panCard") if isinstance(raw.get("panCard"), dict) else None
    passport = raw.get("passport") if isinstance(raw.get("passport"), dict) else None
    licence = raw.get("driversLicense")
    if licence is not None and not isinstance(licence, dict):
        raise SnapshotValidationError(f"'{path}driversLicense' must be an object or null")
    return GovernmentIds(
        aadhaar=Aadhaar(
            aadhaar_number=_str(aadhaar, "aadhaarNumber", f"{path}aadhaar."),
            file=_file(aadhaar, "file", f"{path}aadhaar."),
        ),
        pan_card_file=_file(pan, "file", f"{path}panCard."),
        passport=TwoSidedId(
            front_file=_file(passport, "frontFile", f"{path}passport."),
            back_file=_file(passport, "backFile", f"{path}passport."),
        ),
        drivers_license=(
            TwoSidedId(
                front_file=_file(licence, "frontFile", f"{path}driversLicense."),
                back_file=_file(licence, "backFile", f"{path}driversLicense."),
            )
            if licence is not None
            else None
        ),
    )


def _build_education(raw: Any) -> list[EducationEntry]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise SnapshotValidationError("'education' must be a list")
    entries: list[EducationEntry] = []
    for i, item in enumerate(raw):
        path = f"education[{i}]."
        if not isinstance(item, dict):
            raise SnapshotValidationError(f"'education[{i}]' must be an object")
        entries.append(
            EducationEntry(
                highest_level=_str(item, "highestLevel", path),
                school_name=_optional_str(item, "schoolName", path),
                school_location=_optional_str(item, "schoolLocation", path),
                primary_year_completed=_optional_int(item, "primaryYearCompleted", path),
                high_school_institution_name=_optional_str(
                    item, "highSchoolInstitutionName", path
                ),
                high_school_board=_optional_str(item, "highSchoolBoard", path),
                high_school_stream=_optional_str(item, "highSchoolStream", path),
                high_school_year_completed=_optional_int(
                    item, "highSchoolYearCompleted", path
                ),
                high_school_grade_or_percentage=_optional_str(
                    item, "highSchoolGradeOrPercentage", path
                ),
                institution_name=_optional_str(item, "institutionName", path),
                university_or_board=_optional_str(item, "universityOrBoard", path),
                field_of_study=_optional_str(item, "fieldOfStudy", path),
                start_year=_optional_int(item, "startYear", path),
                end_year=_optional_int(item, "endYear", path),
                grade_or_cgpa=_optional_str(item, "gradeOrCgpa", path),
            )
        )
    return entries


def _build_employment_history(raw: Any) -> list[EmploymentHistoryEntry]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise SnapshotValidationError("'employmentHistory' must be a list")
    if len(raw) > MAX_EMPLOYMENT_ENTRIES:
        raise SnapshotValidationError(
            f"Too many employment history entries: {len(raw)} (max {MAX_EMPLOYMENT_ENTRIES})"
        )
    entries: list[EmploymentHistoryEntry] = []
    for i, item in enumerate(raw):
        path = f"employmentHistory[{i}]."
        if not isinstance(item, dict):
            raise SnapshotValidationError(f"'employmentHistory[{i}]' must be an object")
        entries.append(
            EmploymentHistoryEntry(
                organization_name=_str(item, "organizationName", path),
                designation=_str(item, "designation", path),
                start_date=_str(item, "startDate", path),
                end_date=_str(item, "endDate", path),
                reason_for_leaving=_str(item, "reasonForLeaving", path),
                experience_certificate_file=_file(item, "experienceCertificateFile", path),
            )
        )
    return entries


def _build_bank_details(raw: dict[str, Any]) -> BankDetails:
    path = "bankDetails."
    # Stored either as the file object itself or wrapped as {"file": {...}}.
    void_cheque = raw.get("voidCheque")
    if isinstance(void_cheque, dict) and "s3Key" in void_cheque:
        void_cheque_file = _file(raw, "voidCheque", path)
    elif isinstance(void_cheque, dict):
        void_cheque_file = _file(void_cheque, "file", f"{path}voidCheque.")
    else:
        void_cheque_file = None
    return BankDetails(
        bank_name=_str(raw, "bankName", path),
        branch_name=_str(raw, "branchName", path),
        account_holder_name=_str(raw, "accountHolderName", path),
        account_number=_str(raw, "accountNumber", path),
        ifsc_code=_str(raw, "ifscCode", path).upper(),
        upi_id=_optional_str(raw, "upiId", path),
        void_cheque_file=void_cheque_file,
    )


def _build_declaration(raw: dict[str, Any]) -> Declaration:
    path = "declaration."
    signature = raw.get("signature")
    if signature is not None and not isinstance(signature, dict):
        raise SnapshotValidationError(f"'{path}signature' must be an object or null")
    return Declaration(
        has_accepted_declaration=_bool(raw, "hasAcceptedDeclaration", path, default=False),
        declaration_date=_str(raw, "declarationDate", path),
        signature_file=_file(signature, "file", f"{path}signature."),
        signed_at=_optional_str(signature, "signedAt", f"{path}signature.")
        if signature is not None
        else None,
    )
