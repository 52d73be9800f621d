class SnapshotValidationError(Exception):
    """Raised when stored form data does not match the expected form shape."""
