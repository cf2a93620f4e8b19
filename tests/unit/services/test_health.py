"""
Unit tests for health checks.
"""

from unittest.mock import MagicMock, patch

from photogallery.error_handling import StorageError
from photogallery.health import (
    check_environment_health,
    check_liveness,
    check_readiness,
    check_storage_health,
    perform_health_check,
)


class TestHealthChecks:
    @patch("photogallery.health.get_storage_service")
    def test_storage_healthy(self, mock_get_storage):
        mock_get_storage.return_value = MagicMock(photos_bucket_name="test-photos-bucket")
        mock_get_storage.return_value.check_bucket_exists.return_value = True

        result = check_storage_health()

        assert result["status"] == "healthy"
        assert result["bucket"] == "test-photos-bucket"

    @patch("photogallery.health.get_storage_service")
    def test_storage_not_configured(self, mock_get_storage):
        mock_get_storage.side_effect = StorageError("GCS_PHOTOS_BUCKET environment variable is required")

        assert check_storage_health()["status"] == "unhealthy"

    @patch("photogallery.health.get_storage_service")
    def test_bucket_not_accessible(self, mock_get_storage):
        mock_get_storage.return_value.check_bucket_exists.return_value = False

        assert check_storage_health()["status"] == "unhealthy"

    def test_environment_missing_vars(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_CLOUD_PROJECT")

        result = check_environment_health()

        assert result["status"] == "unhealthy"
        assert result["missing_vars"] == ["GOOGLE_CLOUD_PROJECT"]

    def test_production_requires_buckets(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.delenv("SITE_URL")

        assert check_environment_health()["missing_vars"] == ["SITE_URL"]

    @patch("photogallery.health.get_storage_service")
    def test_perform_health_check(self, mock_get_storage):
        """One unhealthy check makes the application unhealthy."""
        mock_get_storage.return_value.check_bucket_exists.return_value = False

        result = perform_health_check()

        assert result["status"] == "unhealthy"
        assert result["unhealthy_services"] == ["storage"]
        assert result["checks"]["database"]["status"] == "healthy"
        assert result["application"]["name"] == "photogallery"

    @patch("photogallery.health.get_storage_service")
    def test_readiness_skips_storage_outside_production(self, mock_get_storage):
        result = check_readiness()

        assert result["status"] == "ready"
        assert "storage" not in result["checks"]
        mock_get_storage.assert_not_called()

    def test_liveness(self):
        assert check_liveness()["status"] == "alive"
