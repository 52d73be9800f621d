class ProcessorError(Exception):
    """Base exception for all job processing errors."""


class InvalidJobRequestError(ProcessorError):
    """Raised when the invocation payload lacks a required identifier."""


class UnsupportedSubsidiaryError(ProcessorError):
    """Raised when a job targets a subsidiary without an application form."""


class OnboardingNotFoundError(ProcessorError):
    """Raised when the onboarding record does not exist."""


class OnboardingReadError(ProcessorError):
    """Raised when the onboarding store cannot be queried."""


class SubsidiaryMismatchError(ProcessorError):
    """Raised when the onboarding belongs to a different subsidiary."""


class FormIncompleteError(ProcessorError):
    """Raised when the onboarding form has not been completed."""


class MissingFormDataError(ProcessorError):
    """Raised when the onboarding has no nested form data."""
