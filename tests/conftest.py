"""Shared test fixtures for the result portal test suite."""

import io
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from result_portal.activity.tracker import ActivityTracker
from result_portal.api.app import app
from result_portal.api.deps import Services, get_services
from result_portal.errors import RecognitionError
from result_portal.extraction.field_extractor import FieldExtractor
from result_portal.ocr.orchestrator import RecordOrchestrator
from result_portal.storage.files import FileManager
from result_portal.storage.json_store import JsonStorage
from result_portal.utils.config import AppConfig, AuthConfig, StorageConfig

ALICE_TEXT = (
    "TRIBHUVAN UNIVERSITY\nStudent Name: Alice Sharma\n"
    "T.U. Reg No: 7-2-123-45-2018\nGrade: A\nResult: Pass"
)
BOB_TEXT = "Name: Bob Karki\nT.U. Regd No: 5-2-39-120-2017\nMarks: 35/100"
UNREADABLE_TEXT = "Marks: 35/100"


def make_jpeg(color: tuple[int, int, int] = (255, 255, 255), size: tuple[int, int] = (120, 80)) -> bytes:
    """Encode a solid-color JPEG; different colors give different bytes."""
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="JPEG")
    return buf.getvalue()


class FakeRecognizer:
    """Recognizer returning canned text keyed by image bytes."""

    def __init__(
        self, texts: dict[bytes, str | Exception] | None = None, default: str | Exception = ""
    ) -> None:
        self.texts = texts or {}
        self.default = default

    def recognize(self, content: bytes) -> str:
        text = self.texts.get(content, self.default)
        if isinstance(text, Exception):
            raise text
        return text


class FailingRecognizer:
    """Recognizer that always fails as Tesseract would."""

    def recognize(self, content: bytes) -> str:
        raise RecognitionError("Tesseract failed: bad image")


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Configuration pointing all storage at a temporary directory."""
    return AppConfig(
        storage=StorageConfig(
            data_path=str(tmp_path / "data" / "database.json"),
            uploads_dir=str(tmp_path / "uploads"),
            pdfs_dir=str(tmp_path / "pdfs"),
        ),
        auth=AuthConfig(jwt_secret="test-secret", bcrypt_rounds=4),
    )


@pytest.fixture
def storage(app_config: AppConfig) -> JsonStorage:
    """Fresh store seeded with the default admin and semester."""
    store = JsonStorage(Path(app_config.storage.data_path), app_config.auth.bcrypt_rounds)
    store.seed_defaults(app_config.auth)
    return store


@pytest.fixture
def alice_jpeg() -> bytes:
    return make_jpeg((250, 250, 250))


@pytest.fixture
def bob_jpeg() -> bytes:
    return make_jpeg((10, 10, 10))


@pytest.fixture
def unreadable_jpeg() -> bytes:
    return make_jpeg((120, 30, 30))


@pytest.fixture
def recognizer(alice_jpeg: bytes, bob_jpeg: bytes, unreadable_jpeg: bytes) -> FakeRecognizer:
    return FakeRecognizer(
        {alice_jpeg: ALICE_TEXT, bob_jpeg: BOB_TEXT, unreadable_jpeg: UNREADABLE_TEXT}
    )


@pytest.fixture
def services(app_config: AppConfig, storage: JsonStorage, recognizer: FakeRecognizer) -> Services:
    """Service bundle with a canned recognizer instead of Tesseract."""
    return Services(
        config=app_config,
        storage=storage,
        files=FileManager(
            Path(app_config.storage.uploads_dir), Path(app_config.storage.pdfs_dir)
        ),
        orchestrator=RecordOrchestrator(recognizer, FieldExtractor(app_config.extraction)),
        tracker=ActivityTracker(),
    )


@pytest.fixture
def client(services: Services) -> TestClient:
    """Create a FastAPI test client bound to the temporary services."""
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client: TestClient) -> dict[str, str]:
    """Bearer header for the seeded default admin."""
    response = client.post(
        "/api/admin/login",
        json={"email": "admin@university.edu", "password": "admin123"},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}
