from datetime import date, datetime, timedelta, timezone

from app.application_form.fields import ApplicationFormField as F
from app.application_form.fields import employment_field
from app.onboarding.models import EducationEntry, IndiaOnboardingFormSnapshot
from app.pdf.form_filler import FieldValue

FormPayload = dict[str, FieldValue]

MAX_PRINTED_EMPLOYERS = 3

INDIA_STANDARD_TIME = timezone(timedelta(hours=5, minutes=30), "IST")


def build_application_form_payload(snapshot: IndiaOnboardingFormSnapshot) -> FormPayload:
    """Map the form snapshot onto template field names.

    Empty values are left out so the template keeps its blank field; the
    form filler decides whether a missing value is acceptable.
    """
    personal = snapshot.personal_info
    address = personal.residential_address
    gender = personal.gender.strip().upper()
    bank = snapshot.bank_details
    declaration = snapshot.declaration

    payload: dict[str, FieldValue | None] = {
        F.FIRST_NAME: personal.first_name,
        F.LAST_NAME: personal.last_name,
        F.EMAIL: personal.email,
        F.GENDER_MALE: gender == "MALE",
        F.GENDER_FEMALE: gender == "FEMALE",
        F.DATE_OF_BIRTH: parse_date(personal.date_of_birth),
        F.PROOF_OF_AGE: personal.can_provide_proof_of_age,
        F.ADDRESS_LINE1: address.address_line1,
        F.ADDRESS_CITY: address.city,
        F.ADDRESS_STATE: address.state,
        F.ADDRESS_POSTAL_CODE: address.postal_code,
        F.ADDRESS_FROM_DATE: parse_date(address.from_date),
        F.ADDRESS_TO_DATE: parse_date(address.to_date),
        F.PHONE_HOME: personal.phone_home,
        F.PHONE_MOBILE: personal.phone_mobile,
        F.EMERGENCY_CONTACT_NAME: personal.emergency_contact_name,
        F.EMERGENCY_CONTACT_NUMBER: personal.emergency_contact_number,
        F.AADHAAR_NUMBER: snapshot.government_ids.aadhaar.aadhaar_number,
        F.PREVIOUS_EMPLOYMENT_YES: snapshot.has_previous_employment,
        F.PREVIOUS_EMPLOYMENT_NO: not snapshot.has_previous_employment,
        F.BANK_NAME: bank.bank_name,
        F.BANK_BRANCH_NAME: bank.branch_name,
        F.BANK_ACCOUNT_HOLDER_NAME: bank.account_holder_name,
        F.BANK_ACCOUNT_NUMBER: bank.account_number,
        F.BANK_IFSC_CODE: bank.ifsc_code,
        F.BANK_UPI_ID: bank.upi_id,
        F.DECLARATION_ACCEPTED: declaration.has_accepted_declaration,
        F.DECLARATION_DATE: parse_date(declaration.declaration_date),
    }

    if snapshot.education:
        payload.update(_education_values(snapshot.education[0]))

    for position, entry in enumerate(
        snapshot.employment_history[:MAX_PRINTED_EMPLOYERS], start=1
    ):
        payload[employment_field(position, "organization")] = entry.organization_name
        payload[employment_field(position, "designation")] = entry.designation
        payload[employment_field(position, "start_date")] = parse_date(entry.start_date)
        payload[employment_field(position, "end_date")] = parse_date(entry.end_date)
        payload[employment_field(position, "reason_for_leaving")] = entry.reason_for_leaving

    return {
        str(name): value
        for name, value in payload.items()
        if value is not None and value != ""
    }


def _education_values(entry: EducationEntry) -> dict[str, FieldValue | None]:
    level = entry.highest_level.strip().upper()
    if level == "PRIMARY_SCHOOL":
        institution, board, field_of_study = entry.school_name, entry.school_location, None
        year, grade = entry.primary_year_completed, None
    elif level == "HIGH_SCHOOL":
        institution = entry.high_school_institution_name
        board = entry.high_school_board
        field_of_study = entry.high_school_stream
        year = entry.high_school_year_completed
        grade = entry.high_school_grade_or_percentage
    else:
        institution = entry.institution_name
        board = entry.university_or_board
        field_of_study = entry.field_of_study
        year = entry.end_year
        grade = entry.grade_or_cgpa

    return {
        F.EDUCATION_LEVEL: humanize_enum(level) if level else None,
        F.EDUCATION_INSTITUTION: institution,
        F.EDUCATION_BOARD: board,
        F.EDUCATION_FIELD_OF_STUDY: field_of_study,
        F.EDUCATION_YEAR_COMPLETED: str(year) if year is not None else None,
        F.EDUCATION_GRADE: grade,
    }


def parse_date(raw: str | None) -> date | str | None:
    """Parse an ISO date or timestamp; keep unparseable text as-is.

    Timestamps with an offset are read as calendar dates in India Standard
    Time, so an instant stored at IST midnight prints as that day.
    """
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return raw
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(INDIA_STANDARD_TIME)
    return parsed.date()


def humanize_enum(value: str) -> str:
    """``HIGH_SCHOOL`` -> ``High School``."""
    return " ".join(part.capitalize() for part in value.split("_") if part)
