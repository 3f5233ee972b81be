"""Tesseract OCR engine wrapper for marksheet images.

Decodes uploaded image bytes, runs the preprocessing pipeline, and
returns the recognized text.
"""

import io
import shutil
from typing import Protocol

import numpy as np
import pytesseract
from PIL import Image, UnidentifiedImageError

from result_portal.errors import RecognitionError
from result_portal.preprocessing.pipeline import PreprocessingPipeline
from result_portal.utils.config import OCRConfig
from result_portal.utils.logger import get_logger

logger = get_logger(__name__)


class TextRecognizer(Protocol):
    """Anything that can read the text of a document image."""

    def recognize(self, content: bytes) -> str: ...


class TesseractEngine:
    """Recognizes marksheet text with Tesseract.

    Args:
        config: OCR settings (binary path, language, PSM, timeout).
        preprocessing: Cleanup pipeline run before recognition.
    """

    def __init__(
        self,
        config: OCRConfig | None = None,
        preprocessing: PreprocessingPipeline | None = None,
    ) -> None:
        self.config = config or OCRConfig()
        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd
        self.preprocessing = preprocessing or PreprocessingPipeline()

    @staticmethod
    def is_available() -> bool:
        return shutil.which("tesseract") is not None

    def load_image(self, content: bytes) -> np.ndarray:
        """Decode image bytes into an RGB array.

        Raises:
            RecognitionError: If the bytes are not a readable image.
        """
        try:
            with Image.open(io.BytesIO(content)) as img:
                return np.array(img.convert("RGB"))
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
            raise RecognitionError(f"Unreadable image data: {exc}") from exc

    def recognize(self, content: bytes) -> str:
        """Extract text from an encoded image.

        Args:
            content: Raw image file bytes (JPEG, PNG, ...).

        Returns:
            Recognized text, possibly empty.

        Raises:
            RecognitionError: If decoding fails, Tesseract is missing or
                errors out, or recognition exceeds the configured timeout.
        """
        image = self.preprocessing.process(self.load_image(content))
        try:
            text = pytesseract.image_to_string(
                Image.fromarray(image),
                lang=self.config.default_lang,
                config=f"--psm {self.config.psm}",
                timeout=self.config.timeout_seconds,
            )
        except pytesseract.TesseractNotFoundError as exc:
            raise RecognitionError("Tesseract is not installed or not on PATH") from exc
        except pytesseract.TesseractError as exc:
            raise RecognitionError(f"Tesseract failed: {exc.message}") from exc
        except RuntimeError as exc:
            # pytesseract signals a killed process with a bare RuntimeError
            raise RecognitionError(f"OCR timed out: {exc}") from exc

        logger.info("OCR recognized %d characters", len(text))
        return text
