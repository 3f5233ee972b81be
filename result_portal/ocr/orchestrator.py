"""Marksheet processing: OCR recognition followed by field extraction.

Turns uploaded image bytes into a validated :class:`OCRResult`, and
processes batches of uploads on a bounded worker pool so that one bad
file never aborts its siblings.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from result_portal.errors import ExtractionFailed
from result_portal.extraction.field_extractor import FieldExtractor
from result_portal.extraction.models import OCRResult
from result_portal.utils.logger import get_logger

from .tesseract_engine import TextRecognizer

logger = get_logger(__name__)

MISSING_FIELDS_HINT = (
    "Could not extract valid student information. Please ensure the image "
    "contains clear, readable text with student name and T.U. registration number."
)


@dataclass
class BatchOutcome:
    """Per-file outcome of a batch run."""

    filename: str
    result: OCRResult | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.result is not None


class RecordOrchestrator:
    """Runs recognition and extraction for uploaded marksheets.

    Args:
        recognizer: OCR backend used to read image text.
        extractor: Field extractor applied to the recognized text.
        max_workers: Upper bound on concurrent OCR calls in a batch.
    """

    def __init__(
        self,
        recognizer: TextRecognizer,
        extractor: FieldExtractor | None = None,
        max_workers: int = 2,
    ) -> None:
        self.recognizer = recognizer
        self.extractor = extractor or FieldExtractor()
        self.max_workers = max(1, max_workers)

    def process(self, content: bytes, filename: str) -> OCRResult:
        """Recognize and extract one marksheet.

        Args:
            content: Raw image bytes.
            filename: Display name used in errors and logs.

        Returns:
            Extracted result with a real name and registration number.

        Raises:
            ExtractionFailed: If OCR fails or the required fields are missing.
        """
        logger.info("Processing marksheet: %s", filename)
        try:
            text = self.recognizer.recognize(content)
        except Exception as exc:
            raise ExtractionFailed(filename, f"Failed to read image: {exc}") from exc

        result = self.extractor.extract(text)
        if not result.is_complete:
            logger.warning(
                "Required fields missing in %s (name=%s, regd=%s)",
                filename,
                result.has_name,
                result.has_registration,
            )
            raise ExtractionFailed(filename, MISSING_FIELDS_HINT)
        return result

    def process_batch(self, files: list[tuple[str, bytes]]) -> list[BatchOutcome]:
        """Process several marksheets independently.

        Args:
            files: ``(filename, content)`` pairs.

        Returns:
            One outcome per input, in input order.
        """
        if not files:
            return []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(self.process, content, filename)
                for filename, content in files
            ]
            outcomes: list[BatchOutcome] = []
            for (filename, _), future in zip(files, futures):
                try:
                    outcomes.append(BatchOutcome(filename, result=future.result()))
                except ExtractionFailed as exc:
                    logger.error("Extraction failed for %s: %s", filename, exc.hint)
                    outcomes.append(BatchOutcome(filename, error=exc.hint))

        successful = sum(1 for o in outcomes if o.success)
        logger.info("Batch complete: %d/%d succeeded", successful, len(outcomes))
        return outcomes
