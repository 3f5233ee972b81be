"""Pass/fail classification for extracted marksheet data.

Applies a fixed precedence of signals: an explicit result keyword,
then the letter grade, then the marks percentage, then loose keywords
anywhere in the text. When none apply the outcome is ``UNKNOWN``.
"""

import re

from result_portal.utils.logger import get_logger

from .models import ResultStatus

logger = get_logger(__name__)

DEFAULT_PASS_PERCENTAGE = 40.0

_EXPLICIT_RESULT = re.compile(
    r"\b(?:Result|Status)\s*[:\-]?\s*(pass(?:ed)?|fail(?:ed)?|clear(?:ed)?)\b",
    re.IGNORECASE,
)
_FAILING_GRADES = frozenset({"F", "F+", "F-"})


class ResultClassifier:
    """Decide whether a marksheet records a pass or a fail.

    Args:
        pass_percentage: Minimum percentage of total marks counted as a pass.
    """

    def __init__(self, pass_percentage: float = DEFAULT_PASS_PERCENTAGE) -> None:
        self.pass_percentage = pass_percentage

    def classify(
        self,
        text: str,
        grade: str | None = None,
        marks: int | None = None,
        total_marks: int | None = None,
    ) -> ResultStatus:
        """Classify normalized marksheet text.

        Args:
            text: Whitespace-normalized OCR text.
            grade: Extracted letter grade, if any.
            marks: Extracted marks obtained, if any.
            total_marks: Extracted full marks, if any.

        Returns:
            ``PASSED`` or ``FAILED``, or ``UNKNOWN`` when the text carries
            no usable signal.
        """
        match = _EXPLICIT_RESULT.search(text)
        if match:
            keyword = match.group(1).lower()
            logger.debug("Explicit result keyword: %s", keyword)
            if keyword.startswith(("pass", "clear")):
                return ResultStatus.PASSED
            return ResultStatus.FAILED

        if grade:
            logger.debug("Classifying by grade %s", grade)
            if grade.upper() in _FAILING_GRADES:
                return ResultStatus.FAILED
            return ResultStatus.PASSED

        if marks is not None and total_marks:
            percentage = marks / total_marks * 100
            logger.debug("Classifying by percentage %.1f", percentage)
            if percentage >= self.pass_percentage:
                return ResultStatus.PASSED
            return ResultStatus.FAILED

        lowered = text.lower()
        if "pass" in lowered or "clear" in lowered:
            return ResultStatus.PASSED
        if "fail" in lowered:
            return ResultStatus.FAILED

        return ResultStatus.UNKNOWN

    @staticmethod
    def resolve(status: ResultStatus, fallback: ResultStatus) -> ResultStatus:
        """Replace ``UNKNOWN`` with ``fallback``; other values pass through."""
        if status is ResultStatus.UNKNOWN:
            return fallback
        return status
