"""On-disk handling of uploaded marksheet images and their PDF copies."""

import random
import time
from pathlib import Path

from PIL import Image

from result_portal.utils.logger import get_logger

logger = get_logger(__name__)

# A4 at 96 DPI
_PAGE_SIZE = (794, 1123)
_JPEG_QUALITY = 90


class FileManager:
    """Saves uploads and renders downloadable PDFs.

    Args:
        uploads_dir: Directory for original images.
        pdfs_dir: Directory for generated PDFs.
    """

    def __init__(self, uploads_dir: Path, pdfs_dir: Path) -> None:
        self.uploads_dir = Path(uploads_dir)
        self.pdfs_dir = Path(pdfs_dir)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        self.pdfs_dir.mkdir(parents=True, exist_ok=True)

    def save_upload(self, content: bytes, original_name: str) -> Path:
        """Write uploaded bytes under a unique name, keeping the extension."""
        suffix = Path(original_name).suffix.lower() or ".jpg"
        unique = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
        path = self.uploads_dir / f"studentImages-{unique}{suffix}"
        path.write_bytes(content)
        logger.debug("Saved upload %s as %s", original_name, path.name)
        return path

    def pdf_path_for(self, image_path: Path) -> Path:
        return self.pdfs_dir / f"{Path(image_path).stem}.pdf"

    def convert_to_pdf(self, image_path: Path) -> Path:
        """Render an image as a single-page PDF sized to fit A4.

        The image is shrunk to fit inside the page but never enlarged.

        Returns:
            Path of the written PDF.
        """
        output = self.pdf_path_for(image_path)
        with Image.open(image_path) as img:
            page = img.convert("RGB")
            page.thumbnail(_PAGE_SIZE)
            page.save(output, "PDF", resolution=96.0, quality=_JPEG_QUALITY)
        logger.info("Converted %s to PDF", Path(image_path).name)
        return output

    @staticmethod
    def remove(*paths: Path | str | None) -> None:
        """Delete files, ignoring ones that are already gone."""
        for path in paths:
            if path:
                Path(path).unlink(missing_ok=True)
