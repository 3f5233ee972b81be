"""Configuration management for the result portal.

Loads and validates YAML configuration with sensible defaults
for preprocessing, OCR, extraction, storage, and authentication.
"""

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class PreprocessingConfig(BaseModel):
    """Configuration for marksheet image cleanup before OCR."""

    denoise_enabled: bool = True
    binarize_enabled: bool = True
    binarize_method: str = "otsu"


class OCRConfig(BaseModel):
    """Configuration for the Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3
    timeout_seconds: float = 30.0
    max_workers: int = 2


class ExtractionConfig(BaseModel):
    """Thresholds used by the marksheet field extractor."""

    pass_percentage: float = 40.0
    name_min_length: int = 3
    name_max_length: int = 50
    unknown_result_fallback: Literal["Passed", "Failed"] = "Passed"


class StorageConfig(BaseModel):
    """Locations and limits for persisted data and uploaded files."""

    data_path: str = "data/database.json"
    uploads_dir: str = "uploads"
    pdfs_dir: str = "pdfs"
    max_upload_bytes: int = 5 * 1024 * 1024
    max_files_per_upload: int = 10


class AuthConfig(BaseModel):
    """Token signing and bootstrap administrator settings."""

    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    token_expire_hours: int = 24
    bcrypt_rounds: int = 10
    default_admin_email: str = "admin@university.edu"
    default_admin_name: str = "System Administrator"
    default_admin_password: str = "admin123"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    log_level: str = "INFO"


_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "RESULT_PORTAL_JWT_SECRET": ("auth", "jwt_secret"),
    "ADMIN_EMAIL": ("auth", "default_admin_email"),
    "ADMIN_NAME": ("auth", "default_admin_name"),
    "ADMIN_PASSWORD": ("auth", "default_admin_password"),
    "RESULT_PORTAL_DATA_PATH": ("storage", "data_path"),
    "TESSERACT_CMD": ("ocr", "tesseract_cmd"),
}


def _apply_env_overrides(raw: dict) -> dict:
    """Overlay selected environment variables onto raw config data."""
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            raw.setdefault(section, {})[key] = value
            logger.debug("Config %s.%s overridden from %s", section, key, env_name)
    return raw


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to ``$RESULT_PORTAL_CONFIG`` or configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path(os.environ.get("RESULT_PORTAL_CONFIG", "configs/config.yaml"))

    raw: dict = {}
    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    else:
        logger.info("No config file found at %s, using defaults", path)

    return AppConfig(**_apply_env_overrides(raw))
