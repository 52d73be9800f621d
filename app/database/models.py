from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class OnboardingRecord:
    """Represents a row from the onboardings table (subset of columns).

    ``india_form_data`` holds the decrypted nested form as exposed by the
    onboarding service; ``None`` when the employee never saved the form.
    """

    id: str
    subsidiary: str
    is_form_complete: bool
    india_form_data: dict[str, Any] | None = field(default=None, repr=False)
