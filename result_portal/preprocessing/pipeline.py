"""Image cleanup applied to scanned marksheets before OCR.

Converts to grayscale, removes scanner noise, and binarizes so that
Tesseract sees dark text on a clean white background.
"""

import cv2
import numpy as np

from result_portal.utils.config import PreprocessingConfig
from result_portal.utils.logger import get_logger

logger = get_logger(__name__)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert an RGB or RGBA image to grayscale; grayscale passes through."""
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)


def binarize(image: np.ndarray, method: str = "otsu") -> np.ndarray:
    """Threshold a grayscale image to pure black and white.

    Args:
        image: Grayscale image.
        method: ``"otsu"`` for a global threshold, anything else for
            adaptive Gaussian thresholding.

    Returns:
        Binary image with pixel values 0 or 255.
    """
    if method == "otsu":
        _, binary = cv2.threshold(image, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        return binary
    return cv2.adaptiveThreshold(
        image, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, 11, 2
    )


class PreprocessingPipeline:
    """Configurable marksheet cleanup pipeline.

    Args:
        config: Controls which steps run.
    """

    def __init__(self, config: PreprocessingConfig | None = None) -> None:
        self.config = config or PreprocessingConfig()

    def process(self, image: np.ndarray) -> np.ndarray:
        result = to_gray(image)

        if self.config.denoise_enabled:
            result = cv2.medianBlur(result, 3)

        if self.config.binarize_enabled:
            result = binarize(result, self.config.binarize_method)

        logger.debug("Preprocessed image of shape %s", result.shape)
        return result
