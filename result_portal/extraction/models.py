"""Value objects produced by marksheet field extraction."""

from dataclasses import asdict, dataclass
from enum import StrEnum

NAME_NOT_FOUND = "Name not found"
REGISTRATION_NOT_FOUND = "Registration not found"


class ResultStatus(StrEnum):
    """Pass/fail outcome of an exam result."""

    PASSED = "Passed"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class OCRResult:
    """Structured fields read from one scanned marksheet.

    ``name`` and ``tu_regd`` hold the ``NAME_NOT_FOUND`` and
    ``REGISTRATION_NOT_FOUND`` sentinels when extraction failed; use
    :attr:`is_complete` rather than comparing strings.
    ``needs_review`` is set when no pass/fail signal was present and the
    result was filled in from the configured fallback.
    """

    name: str
    tu_regd: str
    result: ResultStatus
    grade: str | None = None
    marks: int | None = None
    total_marks: int | None = None
    subject: str | None = None
    program: str | None = None
    faculty: str | None = None
    needs_review: bool = False

    @property
    def has_name(self) -> bool:
        return self.name != NAME_NOT_FOUND

    @property
    def has_registration(self) -> bool:
        return self.tu_regd != REGISTRATION_NOT_FOUND

    @property
    def is_complete(self) -> bool:
        return self.has_name and self.has_registration

    def to_dict(self) -> dict[str, object]:
        """Serialize using the camelCase keys shared with API clients."""
        data = asdict(self)
        return {
            "name": data["name"],
            "tuRegd": data["tu_regd"],
            "result": str(self.result),
            "grade": data["grade"],
            "marks": data["marks"],
            "totalMarks": data["total_marks"],
            "subject": data["subject"],
            "program": data["program"],
            "faculty": data["faculty"],
            "needsReview": data["needs_review"],
        }
