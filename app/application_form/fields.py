"""Field names of the India fillable application form template."""

from enum import StrEnum


class ApplicationFormField(StrEnum):
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    EMAIL = "email"
    GENDER_MALE = "gender_male"
    GENDER_FEMALE = "gender_female"
    DATE_OF_BIRTH = "date_of_birth"
    PROOF_OF_AGE = "proof_of_age"

    ADDRESS_LINE1 = "address_line1"
    ADDRESS_CITY = "address_city"
    ADDRESS_STATE = "address_state"
    ADDRESS_POSTAL_CODE = "address_postal_code"
    ADDRESS_FROM_DATE = "address_from_date"
    ADDRESS_TO_DATE = "address_to_date"

    PHONE_HOME = "phone_home"
    PHONE_MOBILE = "phone_mobile"
    EMERGENCY_CONTACT_NAME = "emergency_contact_name"
    EMERGENCY_CONTACT_NUMBER = "emergency_contact_number"

    AADHAAR_NUMBER = "aadhaar_number"

    EDUCATION_LEVEL = "education_level"
    EDUCATION_INSTITUTION = "education_institution"
    EDUCATION_BOARD = "education_board"
    EDUCATION_FIELD_OF_STUDY = "education_field_of_study"
    EDUCATION_YEAR_COMPLETED = "education_year_completed"
    EDUCATION_GRADE = "education_grade"

    PREVIOUS_EMPLOYMENT_YES = "previous_employment_yes"
    PREVIOUS_EMPLOYMENT_NO = "previous_employment_no"

    BANK_NAME = "bank_name"
    BANK_BRANCH_NAME = "bank_branch_name"
    BANK_ACCOUNT_HOLDER_NAME = "bank_account_holder_name"
    BANK_ACCOUNT_NUMBER = "bank_account_number"
    BANK_IFSC_CODE = "bank_ifsc_code"
    BANK_UPI_ID = "bank_upi_id"

    DECLARATION_ACCEPTED = "declaration_accepted"
    DECLARATION_DATE = "declaration_date"
    DECLARATION_SIGNATURE = "declaration_signature"


EMPLOYMENT_FIELD_SUFFIXES = (
    "organization",
    "designation",
    "start_date",
    "end_date",
    "reason_for_leaving",
)


def employment_field(position: int, suffix: str) -> str:
    """Name of a per-employer field, e.g. ``employer_2_designation``.

    ``position`` is 1-based, matching the numbered rows on the printed form.
    """
    if suffix not in EMPLOYMENT_FIELD_SUFFIXES:
        raise ValueError(f"Unknown employment field suffix '{suffix}'")
    return f"employer_{position}_{suffix}"


# Values the printed form cannot be issued without.
REQUIRED_FIELDS: frozenset[str] = frozenset(
    {
        ApplicationFormField.FIRST_NAME,
        ApplicationFormField.LAST_NAME,
        ApplicationFormField.DATE_OF_BIRTH,
        ApplicationFormField.PHONE_MOBILE,
        ApplicationFormField.AADHAAR_NUMBER,
        ApplicationFormField.DECLARATION_DATE,
    }
)

# Declaration page; index into the template's pages.
SIGNATURE_PAGE_INDEX = 4
