"""Shared services and request dependencies for the API."""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from result_portal.activity.tracker import ActivityTracker
from result_portal.auth.security import decode_token
from result_portal.extraction.field_extractor import FieldExtractor
from result_portal.ocr.orchestrator import RecordOrchestrator
from result_portal.ocr.tesseract_engine import TesseractEngine
from result_portal.preprocessing.pipeline import PreprocessingPipeline
from result_portal.storage.files import FileManager
from result_portal.storage.json_store import JsonStorage
from result_portal.storage.models import Admin
from result_portal.utils.config import AppConfig, load_config

_bearer = HTTPBearer(auto_error=False)


@dataclass
class Services:
    """Process-wide collaborators handed to request handlers."""

    config: AppConfig
    storage: JsonStorage
    files: FileManager
    orchestrator: RecordOrchestrator
    tracker: ActivityTracker


def build_services(config: AppConfig) -> Services:
    """Wire the storage, OCR, and activity services from configuration."""
    storage = JsonStorage(Path(config.storage.data_path), config.auth.bcrypt_rounds)
    storage.seed_defaults(config.auth)
    engine = TesseractEngine(config.ocr, PreprocessingPipeline(config.preprocessing))
    return Services(
        config=config,
        storage=storage,
        files=FileManager(Path(config.storage.uploads_dir), Path(config.storage.pdfs_dir)),
        orchestrator=RecordOrchestrator(
            engine, FieldExtractor(config.extraction), config.ocr.max_workers
        ),
        tracker=ActivityTracker(),
    )


@lru_cache(maxsize=1)
def get_services() -> Services:
    return build_services(load_config())


ServicesDep = Annotated[Services, Depends(get_services)]


def get_current_admin(
    services: ServicesDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> Admin:
    """Resolve the administrator behind a bearer token, or reject with 401."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_token(credentials.credentials, services.config.auth)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    admin = services.storage.get_admin_by_id(payload["adminId"])
    if admin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin not found"
        )
    return admin


CurrentAdmin = Annotated[Admin, Depends(get_current_admin)]
