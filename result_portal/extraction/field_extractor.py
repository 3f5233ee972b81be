"""Rule-based field extraction for scanned marksheets.

Reads student name, T.U. registration number, grade, marks, subject,
program, and faculty from OCR text using ordered regex pattern tables.
For each field the first pattern yielding a usable value wins; new
marksheet layouts are supported by appending patterns to a table.
"""

import re
from collections.abc import Callable

from result_portal.utils.config import ExtractionConfig
from result_portal.utils.logger import get_logger

from .classifier import ResultClassifier
from .models import NAME_NOT_FOUND, REGISTRATION_NOT_FOUND, OCRResult, ResultStatus

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")
_NAME_JUNK = re.compile(r"[^A-Za-z.\s]")

# Words that start the next labelled field on a marksheet. Free-text values
# (names, subjects) end where one of these begins.
_LABELS = (
    r"T\.?\s*U\b|Reg(?:d|istration)?\b|Roll\b|Symbol\b|Exam(?:ination)?\b|"
    r"Grade\b|Marks?\b|Obtained\b|Total\b|Full\b|Pass\b|Result\b|Status\b|"
    r"Program(?:me)?\b|Faculty\b|Subject\b|Course\b|Credit\b|Code\b|"
    r"Father|Mother|Guardian|D\.?O\.?B\b|Date\b|Level\b|Semester\b|Year\b|"
    r"Campus\b|College\b|University\b|Batch\b|Class\b|Division\b|"
    r"Percentage\b|C?GPA\b|Score\b|Department\b|Address\b|Gender\b|Remarks?\b"
)
_NAME_VALUE = r"([A-Za-z][A-Za-z.\s]*?)"
_NAME_STOP = rf"(?=\s+(?:{_LABELS})|\s*[:;,|\d]|\s*$)"
_TEXT_VALUE = r"([A-Za-z][A-Za-z0-9&.,()'\s\-]*?)"
_TEXT_STOP = rf"(?=\s+(?:{_LABELS})|\s*[:;|]|\s*$)"
_REG_VALUE = r"((?=[A-Z0-9\-/]*\d)[A-Z0-9][A-Z0-9\-/]*)"
_SEP = r"\s*[:\-]?\s*"

# Pattern definitions: (regex, flags), highest priority first
_NAME_PATTERNS: list[tuple[str, int]] = [
    (rf"\bStudent(?:'s)?\s+Name{_SEP}{_NAME_VALUE}{_NAME_STOP}", re.IGNORECASE),
    (rf"\bCandidate(?:'s)?\s+Name{_SEP}{_NAME_VALUE}{_NAME_STOP}", re.IGNORECASE),
    (
        rf"\bName\s+of\s+(?:the\s+)?(?:Student|Candidate){_SEP}"
        rf"{_NAME_VALUE}{_NAME_STOP}",
        re.IGNORECASE,
    ),
    (
        rf"(?<!Father's )(?<!Mother's )(?<!Father )(?<!Mother )"
        rf"(?<!Guardian's )(?<!Subject )(?<!Course )"
        rf"\bName{_SEP}{_NAME_VALUE}{_NAME_STOP}",
        re.IGNORECASE,
    ),
    (
        r"certif(?:y|ies)\s+that\s+(?:(?:Mr|Ms|Mrs|Miss)\.?\s+)?"
        r"([A-Z][a-z]+(?:\s+[A-Z][a-z]+){1,3})",
        0,
    ),
]

_REGISTRATION_PATTERNS: list[tuple[str, int]] = [
    (
        rf"\bT\.?\s*U\.?\s*Reg(?:d|istration)?\.?\s*(?:No|Number|#)?\.?"
        rf"{_SEP}{_REG_VALUE}",
        re.IGNORECASE,
    ),
    (
        rf"\bReg(?:d|istration)?\.?\s*(?:No|Number|#)\.?{_SEP}{_REG_VALUE}",
        re.IGNORECASE,
    ),
    (rf"\bRegistration\s*[:\-]\s*{_REG_VALUE}", re.IGNORECASE),
    (r"\b(\d{1,2}-\d{1,2}-\d{1,4}-\d{1,5}-\d{4})\b", 0),
]

_GRADE_PATTERNS: list[tuple[str, int]] = [
    (
        r"\bGrade(?:\s+(?:Obtained|Awarded|Secured))?\s*[:\-]?\s*"
        r"([A-F][+\-]?)(?![A-Za-z0-9])",
        re.IGNORECASE,
    ),
    (r"\b([A-F][+\-]?)\s+[Gg]rade\b", 0),
]

_MARKS_PATTERNS: list[tuple[str, int]] = [
    (
        r"\b(?:Marks|Score)(?:\s+(?:Obtained|Secured|Scored))?\s*[:\-]?\s*"
        r"(\d{1,4})\s*(?:/|out\s+of|of)\s*(\d{1,4})",
        re.IGNORECASE,
    ),
    (
        r"\b(?:Obtained|Secured)(?:\s+Marks)?\s*[:\-]?\s*"
        r"(\d{1,4})\s*(?:/|out\s+of)\s*(\d{1,4})",
        re.IGNORECASE,
    ),
    (r"(?<![/\d])(\d{1,4})\s*/\s*(\d{1,4})(?!\s*/)(?!\d)", 0),
    (
        r"(?<!Full )(?<!Pass )\bMarks(?:\s+(?:Obtained|Secured))?\s*[:\-]?\s*"
        r"(\d{1,4})(?!\d)",
        re.IGNORECASE,
    ),
]

_SUBJECT_PATTERNS: list[tuple[str, int]] = [
    (rf"\bSubject(?:\s+Name)?\s*[:\-]\s*{_TEXT_VALUE}{_TEXT_STOP}", re.IGNORECASE),
    (
        rf"\bCourse(?:\s+(?:Title|Name))?\s*[:\-]\s*{_TEXT_VALUE}{_TEXT_STOP}",
        re.IGNORECASE,
    ),
]

_PROGRAM_PATTERNS: list[tuple[str, int]] = [
    (rf"\bProgram(?:me)?\s*[:\-]\s*{_TEXT_VALUE}{_TEXT_STOP}", re.IGNORECASE),
    (rf"\bDegree\s*[:\-]\s*{_TEXT_VALUE}{_TEXT_STOP}", re.IGNORECASE),
    (
        rf"\b((?:Bachelor|Master)\s+(?:of|in)\s+[A-Z][A-Za-z]+"
        rf"(?:\s+(?!{_LABELS})(?:and\s+|of\s+|in\s+)?[A-Z][A-Za-z]+){{0,4}})",
        0,
    ),
    (r"\b(B\.?\s?Sc\.?\s?CSIT|BCA|BBA|BBS|BIM|BBM|BIT|BSW|B\.?\s?Ed|MBA|MBS|MCA)\b", 0),
]

_FACULTY_PATTERNS: list[tuple[str, int]] = [
    (rf"\bFaculty(?:\s+of)?{_SEP}{_TEXT_VALUE}{_TEXT_STOP}", re.IGNORECASE),
    (
        rf"\b(Institute\s+of\s+[A-Z][A-Za-z]+"
        rf"(?:\s+(?!{_LABELS})(?:and\s+)?[A-Z][A-Za-z]+){{0,3}})",
        0,
    ),
]


def normalize_text(text: str) -> str:
    """Collapse every whitespace run, newlines included, to one space."""
    return _WHITESPACE.sub(" ", text).strip()


def _clean_text(match: re.Match) -> str | None:
    value = normalize_text(match.group(1))
    return value or None


def _clean_registration(match: re.Match) -> str | None:
    value = match.group(1).strip().rstrip(".-/")
    return value if len(value) > 3 else None


def _clean_grade(match: re.Match) -> str | None:
    return match.group(1).upper()


def _parse_marks(match: re.Match) -> tuple[int, int | None]:
    total = match.group(2) if match.re.groups >= 2 else None
    return int(match.group(1)), int(total) if total is not None else None


class FieldExtractor:
    """Turns raw marksheet OCR text into an :class:`OCRResult`.

    Extraction never fails: fields that cannot be read are left empty,
    and the required name and registration fields fall back to their
    "not found" sentinels.

    Args:
        config: Extraction thresholds. Defaults are used when omitted.
    """

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()
        self.classifier = ResultClassifier(self.config.pass_percentage)
        self.fallback_result = ResultStatus(self.config.unknown_result_fallback)
        self.patterns: dict[str, list[tuple[str, int]]] = {
            "name": list(_NAME_PATTERNS),
            "tu_regd": list(_REGISTRATION_PATTERNS),
            "grade": list(_GRADE_PATTERNS),
            "subject": list(_SUBJECT_PATTERNS),
            "program": list(_PROGRAM_PATTERNS),
            "faculty": list(_FACULTY_PATTERNS),
        }
        self.marks_patterns = list(_MARKS_PATTERNS)

    def extract(self, text: str) -> OCRResult:
        """Extract structured result fields from OCR text.

        Args:
            text: Raw OCR output; may contain irregular whitespace.

        Returns:
            Fully populated result. ``result`` is always Passed or Failed.
        """
        normalized = normalize_text(text)

        name = self._first_usable("name", normalized, self._clean_name)
        tu_regd = self._first_usable("tu_regd", normalized, _clean_registration)
        grade = self._first_usable("grade", normalized, _clean_grade)
        marks, total_marks = self._extract_marks(normalized)
        subject = self._first_usable("subject", normalized, _clean_text)
        program = self._first_usable("program", normalized, _clean_text)
        faculty = self._first_usable("faculty", normalized, _clean_text)

        status = self.classifier.classify(normalized, grade, marks, total_marks)
        needs_review = status is ResultStatus.UNKNOWN
        if needs_review:
            logger.warning(
                "No pass/fail signal found, defaulting result to %s",
                self.fallback_result,
            )

        logger.info(
            "Extracted marksheet fields: name=%s regd=%s result=%s",
            name is not None,
            tu_regd is not None,
            status,
        )
        return OCRResult(
            name=name or NAME_NOT_FOUND,
            tu_regd=tu_regd or REGISTRATION_NOT_FOUND,
            result=self.classifier.resolve(status, self.fallback_result),
            grade=grade,
            marks=marks,
            total_marks=total_marks,
            subject=subject,
            program=program,
            faculty=faculty,
            needs_review=needs_review,
        )

    def _clean_name(self, match: re.Match) -> str | None:
        value = normalize_text(_NAME_JUNK.sub("", match.group(1)))
        if self.config.name_min_length < len(value) < self.config.name_max_length:
            return value
        return None

    def _first_usable(
        self,
        field_name: str,
        text: str,
        clean: Callable[[re.Match], str | None],
    ) -> str | None:
        """Return the first usable value from the field's ordered patterns."""
        for index, (pattern, flags) in enumerate(self.patterns[field_name]):
            for match in re.finditer(pattern, text, flags):
                value = clean(match)
                if value is not None:
                    logger.debug(
                        "Field %s matched pattern %d: %r", field_name, index, value
                    )
                    return value
        return None

    def _extract_marks(self, text: str) -> tuple[int | None, int | None]:
        for index, (pattern, flags) in enumerate(self.marks_patterns):
            match = re.search(pattern, text, flags)
            if match:
                marks, total = _parse_marks(match)
                logger.debug("Marks matched pattern %d: %s/%s", index, marks, total)
                return marks, total
        return None, None
