"""
Pytest configuration and fixtures for photogallery tests.
"""

import io
from collections.abc import Callable, Generator
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from PIL import Image

from photogallery.config import get_config
from photogallery.error_handling import StorageError
from photogallery.services.cache import reset_tags
from photogallery.services.metadata import MetadataService
from photogallery.services.storage import StorageService

TEST_ENV = {
    "ENVIRONMENT": "test",
    "GOOGLE_CLOUD_PROJECT": "test-project",
    "GCS_PHOTOS_BUCKET": "test-photos-bucket",
    "GCS_DATABASE_BUCKET": "test-database-bucket",
    "SITE_URL": "https://gallery.example.com",
}


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Isolated configuration for every test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))

    get_config().clear_cache()
    reset_tags()
    yield
    get_config().clear_cache()
    reset_tags()


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Factory for encoded test images."""

    def _make_image(
        width: int = 100,
        height: int = 100,
        image_format: str = "JPEG",
        mode: str = "RGB",
        color: tuple = (200, 100, 50),
    ) -> bytes:
        image = Image.new(mode, (width, height), color)
        buffer = io.BytesIO()
        image.save(buffer, format=image_format)
        return buffer.getvalue()

    return _make_image


@pytest.fixture
def mock_storage() -> MagicMock:
    """Storage service double: no remote database, deterministic paths and URLs."""
    storage = MagicMock(spec=StorageService)
    storage.download_database_file.side_effect = StorageError("Database file not found", code="file_not_found")
    storage.upload_database_file.return_value = {"gcs_path": "databases/gallery.db", "file_size": "0"}
    storage.build_photo_path.side_effect = lambda user_id, category, filename: (
        f"{user_id}/{category}/1700000000000-abc123.{filename.rsplit('.', 1)[-1]}"
    )
    storage.get_public_url.side_effect = lambda path: f"https://storage.googleapis.com/test-photos-bucket/{path}"
    storage.create_signed_upload_url.side_effect = lambda path, content_type, expiration=7200: {
        "signed_url": f"https://storage.googleapis.com/test-photos-bucket/{path}?X-Goog-Signature=sig",
        "path": path,
        "token": "sig",
    }
    storage.delete_file.return_value = True
    return storage


@pytest.fixture
def metadata_service(tmp_path: Path, mock_storage: MagicMock) -> Generator[MetadataService, None, None]:
    """Metadata service on a temporary DuckDB file with background sync disabled."""
    service = MetadataService(data_dir=str(tmp_path / "db"), storage_service=mock_storage)
    service.disable_sync()
    yield service
    service.cleanup()
