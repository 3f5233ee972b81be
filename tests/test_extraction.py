"""Tests for marksheet field extraction and result classification."""

import re

import pytest

from result_portal.extraction.classifier import ResultClassifier
from result_portal.extraction.field_extractor import FieldExtractor, normalize_text
from result_portal.extraction.models import (
    NAME_NOT_FOUND,
    REGISTRATION_NOT_FOUND,
    OCRResult,
    ResultStatus,
)
from result_portal.utils.config import ExtractionConfig


class TestNormalizeText:
    """Tests for whitespace normalization."""

    def test_collapses_newlines_and_tabs(self) -> None:
        assert normalize_text("  Name:\n\n John\tDoe  ") == "Name: John Doe"

    def test_empty(self) -> None:
        assert normalize_text("   \n ") == ""


class TestOCRResult:
    """Tests for the OCRResult value object."""

    def test_sentinels_mark_incomplete(self) -> None:
        result = OCRResult(NAME_NOT_FOUND, "12345678", ResultStatus.PASSED)
        assert not result.has_name
        assert result.has_registration
        assert not result.is_complete

    def test_complete(self) -> None:
        result = OCRResult("John Doe", "12345678", ResultStatus.PASSED)
        assert result.is_complete

    def test_to_dict_uses_camel_case(self) -> None:
        result = OCRResult(
            "John Doe", "12345678", ResultStatus.FAILED, marks=30, total_marks=100
        )
        data = result.to_dict()
        assert data["tuRegd"] == "12345678"
        assert data["totalMarks"] == 100
        assert data["result"] == "Failed"
        assert data["needsReview"] is False
        assert "tu_regd" not in data


class TestFieldExtractorRequiredFields:
    """Tests for name and registration extraction."""

    def setup_method(self) -> None:
        self.extractor = FieldExtractor()

    def test_simple_name_and_registration(self) -> None:
        result = self.extractor.extract("Name: John Doe\nT.U. Regd No: 12345678")
        assert result.name == "John Doe"
        assert result.tu_regd == "12345678"
        assert result.is_complete

    def test_full_marksheet(self) -> None:
        text = "Student Name: Alice Sharma T.U. Reg No: 7-2-123-45-2018 Grade: A Result: Pass"
        result = self.extractor.extract(text)
        assert result.name == "Alice Sharma"
        assert result.tu_regd == "7-2-123-45-2018"
        assert result.grade == "A"
        assert result.result == ResultStatus.PASSED
        assert result.needs_review is False

    def test_irregular_whitespace(self) -> None:
        text = "Student   Name:\n\n  Ram  Bahadur\tThapa\nT.U. Regd. No.: 7-2-48-1234-2019"
        result = self.extractor.extract(text)
        assert result.name == "Ram Bahadur Thapa"
        assert result.tu_regd == "7-2-48-1234-2019"

    def test_missing_fields_use_sentinels(self) -> None:
        result = self.extractor.extract("Marks: 35/100")
        assert result.name == NAME_NOT_FOUND
        assert result.tu_regd == REGISTRATION_NOT_FOUND
        assert result.marks == 35
        assert result.total_marks == 100
        assert result.result == ResultStatus.FAILED
        assert not result.is_complete

    def test_empty_text(self) -> None:
        result = self.extractor.extract("")
        assert result.name == NAME_NOT_FOUND
        assert result.tu_regd == REGISTRATION_NOT_FOUND
        assert result.result in (ResultStatus.PASSED, ResultStatus.FAILED)

    def test_short_name_rejected(self) -> None:
        result = self.extractor.extract("Name: Leo T.U. Regd No: 12345678")
        assert result.name == NAME_NOT_FOUND

    def test_overlong_name_rejected(self) -> None:
        long_name = " ".join(["Abcdefghij"] * 6)
        result = self.extractor.extract(f"Name: {long_name} T.U. Regd No: 12345678")
        assert result.name == NAME_NOT_FOUND

    def test_parent_name_skipped(self) -> None:
        text = "Father's Name: Hari Prasad Name: Sita Sharma T.U. Regd No: 12345678"
        result = self.extractor.extract(text)
        assert result.name == "Sita Sharma"

    def test_certificate_wording(self) -> None:
        text = "This is to certify that Mr. Suman Rai has completed the course. Regd No: 6-2-10-200-2016"
        result = self.extractor.extract(text)
        assert result.name == "Suman Rai"
        assert result.tu_regd == "6-2-10-200-2016"

    def test_registration_number_label(self) -> None:
        result = self.extractor.extract("Name: John Doe Registration Number: 5-2-39-120-2017")
        assert result.tu_regd == "5-2-39-120-2017"

    def test_bare_registration_format(self) -> None:
        result = self.extractor.extract("Name: John Doe 7-2-123-45-2018")
        assert result.tu_regd == "7-2-123-45-2018"

    def test_short_registration_rejected(self) -> None:
        result = self.extractor.extract("Name: John Doe T.U. Regd No: 123")
        assert result.tu_regd == REGISTRATION_NOT_FOUND

    def test_idempotent(self) -> None:
        text = "Student Name: Alice Sharma T.U. Reg No: 7-2-123-45-2018 Marks: 72/100"
        assert self.extractor.extract(text) == self.extractor.extract(text)


class TestFieldExtractorOptionalFields:
    """Tests for grade, marks, subject, program, and faculty extraction."""

    def setup_method(self) -> None:
        self.extractor = FieldExtractor()

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Grade: B+", "B+"),
            ("grade: b+", "B+"),
            ("Grade Obtained: A-", "A-"),
            ("Grade: F-", "F-"),
            ("secured A grade overall", "A"),
        ],
    )
    def test_grade(self, text: str, expected: str) -> None:
        assert self.extractor.extract(text).grade == expected

    def test_marks_out_of(self) -> None:
        result = self.extractor.extract("Marks Obtained: 72 out of 100")
        assert (result.marks, result.total_marks) == (72, 100)

    def test_marks_without_total(self) -> None:
        result = self.extractor.extract("Marks: 68")
        assert (result.marks, result.total_marks) == (68, None)

    def test_full_and_pass_marks_ignored(self) -> None:
        result = self.extractor.extract("Full Marks: 100 Pass Marks: 40 Obtained Marks: 55")
        assert (result.marks, result.total_marks) == (55, None)

    def test_labelled_text_fields(self) -> None:
        text = (
            "Name: Sita Sharma T.U. Regd No: 12345678 Program: Bachelor of Science "
            "Faculty: Science and Technology Subject: Physics Grade: A"
        )
        result = self.extractor.extract(text)
        assert result.name == "Sita Sharma"
        assert result.program == "Bachelor of Science"
        assert result.faculty == "Science and Technology"
        assert result.subject == "Physics"

    def test_faculty_of_phrase(self) -> None:
        result = self.extractor.extract("Faculty of Humanities and Social Sciences")
        assert result.faculty == "Humanities and Social Sciences"

    def test_degree_phrase(self) -> None:
        result = self.extractor.extract("passed the Bachelor in Computer Application examination")
        assert result.program == "Bachelor in Computer Application"

    def test_program_abbreviation(self) -> None:
        assert self.extractor.extract("BCA Third Semester").program == "BCA"

    def test_absent_optional_fields(self) -> None:
        result = self.extractor.extract("Name: John Doe T.U. Regd No: 12345678")
        assert result.grade is None
        assert result.marks is None
        assert result.subject is None
        assert result.program is None
        assert result.faculty is None

    def test_pattern_table_is_extensible(self) -> None:
        self.extractor.patterns["tu_regd"].append(
            (r"Symbol\s*No\.?\s*[:\-]?\s*(\d{5,})", re.IGNORECASE)
        )
        result = self.extractor.extract("Name: John Doe Symbol No: 7845123")
        assert result.tu_regd == "7845123"
        # other instances keep the stock table
        assert FieldExtractor().extract("Name: John Doe Symbol No: 7845123").tu_regd == (
            REGISTRATION_NOT_FOUND
        )


class TestFieldExtractorResult:
    """Tests for how the extractor fills in the pass/fail result."""

    def test_explicit_keyword_beats_grade(self) -> None:
        extractor = FieldExtractor()
        result = extractor.extract("Name: John Doe T.U. Regd No: 12345678 Grade: F Result: Passed")
        assert result.result == ResultStatus.PASSED

    def test_failing_grade(self) -> None:
        result = FieldExtractor().extract("Name: John Doe T.U. Regd No: 12345678 Grade: F")
        assert result.result == ResultStatus.FAILED

    @pytest.mark.parametrize("marks,expected", [(39, ResultStatus.FAILED), (40, ResultStatus.PASSED)])
    def test_pass_percentage_boundary(self, marks: int, expected: ResultStatus) -> None:
        text = f"Name: John Doe T.U. Regd No: 12345678 Marks: {marks}/100"
        assert FieldExtractor().extract(text).result == expected

    def test_no_signal_uses_fallback_and_flags_review(self) -> None:
        result = FieldExtractor().extract("Name: John Doe\nT.U. Regd No: 12345678")
        assert result.result == ResultStatus.PASSED
        assert result.needs_review is True

    def test_configured_fallback(self) -> None:
        extractor = FieldExtractor(ExtractionConfig(unknown_result_fallback="Failed"))
        result = extractor.extract("Name: John Doe T.U. Regd No: 12345678")
        assert result.result == ResultStatus.FAILED
        assert result.needs_review is True

    def test_configured_pass_percentage(self) -> None:
        extractor = FieldExtractor(ExtractionConfig(pass_percentage=50))
        result = extractor.extract("Name: John Doe T.U. Regd No: 12345678 Marks: 45/100")
        assert result.result == ResultStatus.FAILED

    def test_result_never_unknown(self) -> None:
        extractor = FieldExtractor()
        for text in ["", "random words", "Name: John Doe", "Marks: 10"]:
            assert extractor.extract(text).result is not ResultStatus.UNKNOWN


class TestResultClassifier:
    """Tests for the pass/fail precedence rules."""

    def setup_method(self) -> None:
        self.classifier = ResultClassifier()

    def test_explicit_pass(self) -> None:
        assert self.classifier.classify("Result: Pass") == ResultStatus.PASSED

    def test_explicit_fail_beats_good_grade(self) -> None:
        assert self.classifier.classify("Result: Fail", grade="A") == ResultStatus.FAILED

    def test_status_cleared(self) -> None:
        assert self.classifier.classify("Status: Cleared") == ResultStatus.PASSED

    @pytest.mark.parametrize("grade", ["F", "F+", "F-", "f"])
    def test_failing_grades(self, grade: str) -> None:
        assert self.classifier.classify("", grade=grade) == ResultStatus.FAILED

    @pytest.mark.parametrize("grade", ["A", "B+", "C-", "D"])
    def test_passing_grades(self, grade: str) -> None:
        assert self.classifier.classify("", grade=grade) == ResultStatus.PASSED

    def test_grade_beats_marks(self) -> None:
        status = self.classifier.classify("", grade="B", marks=10, total_marks=100)
        assert status == ResultStatus.PASSED

    def test_percentage(self) -> None:
        assert self.classifier.classify("", marks=40, total_marks=100) == ResultStatus.PASSED
        assert self.classifier.classify("", marks=39, total_marks=100) == ResultStatus.FAILED

    def test_zero_total_skips_percentage(self) -> None:
        assert self.classifier.classify("", marks=10, total_marks=0) == ResultStatus.UNKNOWN

    def test_loose_keywords(self) -> None:
        assert self.classifier.classify("you have passed the exam") == ResultStatus.PASSED
        assert self.classifier.classify("the candidate failed") == ResultStatus.FAILED

    def test_unknown(self) -> None:
        assert self.classifier.classify("nothing useful here") == ResultStatus.UNKNOWN

    def test_custom_threshold(self) -> None:
        classifier = ResultClassifier(pass_percentage=50)
        assert classifier.classify("", marks=45, total_marks=100) == ResultStatus.FAILED

    def test_resolve(self) -> None:
        assert (
            ResultClassifier.resolve(ResultStatus.UNKNOWN, ResultStatus.FAILED)
            == ResultStatus.FAILED
        )
        assert (
            ResultClassifier.resolve(ResultStatus.PASSED, ResultStatus.FAILED)
            == ResultStatus.PASSED
        )
