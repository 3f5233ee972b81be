"""Exception hierarchy for the result portal."""


class ResultPortalError(Exception):
    """Base class for all domain errors raised by the portal."""


class RecognitionError(ResultPortalError):
    """The OCR engine could not read text from a document."""


class ExtractionFailed(ResultPortalError):
    """A marksheet could not be turned into a usable student record.

    Args:
        filename: Display name of the offending document.
        hint: Human-readable remediation advice.
    """

    def __init__(self, filename: str, hint: str) -> None:
        self.filename = filename
        self.hint = hint
        super().__init__(f"{filename}: {hint}")


class NotFoundError(ResultPortalError):
    """A requested entity does not exist in the store."""


class ConflictError(ResultPortalError):
    """An entity with the same unique key already exists."""


class PolicyError(ResultPortalError):
    """An operation is refused by an administrative rule."""
