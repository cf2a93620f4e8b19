"""Storage service for Google Cloud Storage operations."""

import os
import re
import secrets
import time
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlparse

import google.auth
import google.auth.exceptions
import google.auth.transport.requests
import requests
from google.api_core.exceptions import PreconditionFailed
from google.cloud import storage  # type: ignore[attr-defined]
from google.cloud.exceptions import GoogleCloudError, NotFound

from ..error_handling import StorageError
from ..logging_config import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]

EXTENSIONS_BY_CONTENT_TYPE = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


class _ProgressReader:
    """File-like wrapper that reports how many bytes requests has read so far."""

    def __init__(self, data: bytes, callback: ProgressCallback | None, chunk_size: int):
        self._data = data
        self._position = 0
        self._callback = callback
        self._chunk_size = chunk_size

    def __len__(self) -> int:
        return len(self._data)

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = self._chunk_size
        chunk = self._data[self._position : self._position + size]
        self._position += len(chunk)
        if self._callback and chunk:
            self._callback(self._position, len(self._data))
        return chunk


def sanitize_filename(filename: str) -> str:
    """Keep only letters, digits, dots and dashes; everything else becomes '_'."""
    return _UNSAFE_FILENAME_CHARS.sub("_", Path(filename).name)


class StorageService:
    """Service for Google Cloud Storage operations."""

    def __init__(self, bucket_name: str | None = None, project_id: str | None = None) -> None:
        """
        Initialize the storage service.

        Args:
            bucket_name: GCS photos bucket name (defaults to GCS_PHOTOS_BUCKET environment variable)
            project_id: GCP project ID (defaults to GOOGLE_CLOUD_PROJECT environment variable)

        Environment Variables:
            GCS_PHOTOS_BUCKET: Bucket for storing photos
            GCS_DATABASE_BUCKET: Bucket for storing the metadata database file
            GOOGLE_CLOUD_PROJECT: GCP project ID
        """
        self.photos_bucket_name = bucket_name or os.getenv("GCS_PHOTOS_BUCKET")
        self.project_id = project_id or os.getenv("GOOGLE_CLOUD_PROJECT")
        self.database_bucket_name = os.getenv("GCS_DATABASE_BUCKET")
        self.default_signed_url_expiration = int(os.getenv("GCS_SIGNED_URL_EXPIRATION", "3600"))
        self.upload_timeout = float(os.getenv("GCS_UPLOAD_TIMEOUT", "120"))

        if not self.photos_bucket_name:
            raise StorageError("GCS_PHOTOS_BUCKET environment variable is required", code="storage_not_configured")
        if not self.project_id:
            raise StorageError("GOOGLE_CLOUD_PROJECT environment variable is required", code="storage_not_configured")
        if not self.database_bucket_name:
            raise StorageError("GCS_DATABASE_BUCKET environment variable is required", code="storage_not_configured")

        try:
            self.client = storage.Client(project=self.project_id)
            self.photos_bucket = self.client.bucket(self.photos_bucket_name)
            self.database_bucket = self.client.bucket(self.database_bucket_name)
            logger.info(
                "storage_service_initialized",
                photos_bucket=self.photos_bucket_name,
                database_bucket=self.database_bucket_name,
                project_id=self.project_id,
            )
        except Exception as e:
            raise StorageError(f"Failed to initialize GCS client: {e}", original_exception=e) from e

    def build_photo_path(self, user_id: str, category: str, filename: str) -> str:
        """
        Generate a unique object path for a compressed upload.

        Format: ``{user_id}/{category}/{timestamp_ms}-{random6}.{ext}``
        """
        extension = Path(filename).suffix.lstrip(".").lower() or "jpg"
        token = secrets.token_hex(3)
        return f"{user_id}/{category}/{int(time.time() * 1000)}-{token}.{extension}"

    def build_direct_upload_path(self, user_id: str, category: str, filename: str) -> str:
        """
        Generate the object path handed out with a signed upload URL.

        Format: ``{user_id}/{category}/{timestamp_ms}_{sanitized_filename}``
        """
        return f"{user_id}/{category}/{int(time.time() * 1000)}_{sanitize_filename(filename)}"

    def upload_photo(
        self,
        storage_path: str,
        file_data: bytes,
        content_type: str = "image/jpeg",
        upsert: bool = False,
        progress_callback: ProgressCallback | None = None,
    ) -> dict[str, Any]:
        """
        Upload photo bytes with the storage SDK.

        Args:
            storage_path: Object path inside the photos bucket
            file_data: Image bytes
            content_type: MIME type stored with the object
            upsert: Overwrite an existing object instead of failing
            progress_callback: Called with (uploaded_bytes, total_bytes)

        Returns:
            dict: storage_path, file_size, content_type, uploaded_at

        Raises:
            StorageError: If the upload fails or the object exists and upsert is False
        """
        total = len(file_data)
        try:
            blob = self.photos_bucket.blob(storage_path)
            blob.metadata = {"uploaded_at": datetime.now().isoformat(), "upload_type": "photo"}

            if progress_callback:
                progress_callback(0, total)

            upload_kwargs: dict[str, Any] = {"content_type": content_type}
            if not upsert:
                upload_kwargs["if_generation_match"] = 0
            blob.upload_from_string(file_data, **upload_kwargs)

            if progress_callback:
                progress_callback(total, total)

            logger.info("photo_uploaded", storage_path=storage_path, file_size=total, method="sdk")
            return {
                "storage_path": storage_path,
                "file_size": total,
                "content_type": content_type,
                "uploaded_at": datetime.now().isoformat(),
            }

        except PreconditionFailed as e:
            raise StorageError(
                f"Object already exists: {storage_path}",
                code="object_exists",
                details={"storage_path": storage_path},
                original_exception=e,
            ) from e
        except GoogleCloudError as e:
            raise StorageError(f"Failed to upload photo '{storage_path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error uploading '{storage_path}': {e}", original_exception=e) from e

    def upload_via_signed_url(
        self,
        upload_url: str,
        file_data: bytes,
        content_type: str = "image/jpeg",
        progress_callback: ProgressCallback | None = None,
        chunk_size: int = 64 * 1024,
    ) -> None:
        """
        Upload bytes with a plain HTTP PUT to a signed upload URL.

        Progress is reported as the request body is streamed.

        Raises:
            StorageError: If the request fails or returns a non-2xx status
        """
        body = _ProgressReader(file_data, progress_callback, chunk_size)
        try:
            response = requests.put(
                upload_url,
                data=body,
                headers={"Content-Type": content_type},
                timeout=self.upload_timeout,
            )
        except requests.RequestException as e:
            raise StorageError(
                f"Direct upload request failed: {e}", code="direct_upload_failed", original_exception=e
            ) from e

        if not response.ok:
            raise StorageError(
                f"Direct upload rejected with HTTP {response.status_code}",
                code="direct_upload_failed",
                details={"status_code": response.status_code},
            )

        logger.info("photo_uploaded", file_size=len(file_data), method="signed_url")

    def _signing_kwargs(self) -> dict[str, Any]:
        """
        Credentials arguments for V4 signing.

        On Cloud Run the default credentials carry no private key, so signing
        goes through the IAM API with the service account email and token.
        """
        credentials, _ = google.auth.default()
        try:
            credentials.refresh(google.auth.transport.requests.Request())
        except google.auth.exceptions.RefreshError as e:
            # Local user credentials cannot always be refreshed for this scope
            logger.debug("credentials_refresh_skipped", error=str(e))

        service_account_email = getattr(credentials, "service_account_email", None)
        if not service_account_email:
            return {}
        return {"service_account_email": service_account_email, "access_token": credentials.token}

    def create_signed_upload_url(
        self, storage_path: str, content_type: str, expiration: int = 7200
    ) -> dict[str, str]:
        """
        Generate a signed URL for a direct PUT upload.

        Args:
            storage_path: Object path inside the photos bucket
            content_type: Content type the client must send
            expiration: URL lifetime in seconds

        Returns:
            dict: signed_url, path and token (the URL signature)

        Raises:
            StorageError: If URL generation fails
        """
        try:
            blob = self.photos_bucket.blob(storage_path)
            signed_url: str = blob.generate_signed_url(
                expiration=timedelta(seconds=expiration),
                method="PUT",
                version="v4",
                content_type=content_type,
                **self._signing_kwargs(),
            )
        except GoogleCloudError as e:
            raise StorageError(f"Failed to create upload URL for '{storage_path}': {e}", original_exception=e) from e
        except Exception as e:
            raise StorageError(f"Unexpected error creating upload URL: {e}", original_exception=e) from e

        token = parse_qs(urlparse(signed_url).query).get("X-Goog-Signature", [""])[0]
        logger.debug("upload_url_created", storage_path=storage_path, expires_in=expiration)
        return {"signed_url": signed_url, "path": storage_path, "token": token}

    def get_public_url(self, storage_path: str) -> str:
        """Public URL of an object in the (publicly readable) photos bucket."""
        return str(self.photos_bucket.blob(storage_path).public_url)

    def delete_file(self, storage_path: str) -> bool:
        """
        Delete a file from the photos bucket.

        Returns:
            bool: True if deleted, False if the object did not exist

        Raises:
            StorageError: If deletion fails
        """
        try:
            self.photos_bucket.blob(storage_path).delete()
            logger.info("file_deleted", storage_path=storage_path)
            return True
        except NotFound:
            logger.warning("file_not_found_for_deletion", storage_path=storage_path)
            return False
        except GoogleCloudError as e:
            raise StorageError(f"Failed to delete file '{storage_path}': {e}", original_exception=e) from e

    def delete_files(self, storage_paths: list[str]) -> int:
        """
        Delete several files.

        Returns:
            int: Number of objects that existed and were deleted
        """
        return sum(1 for path in storage_paths if self.delete_file(path))

    def list_files(self, prefix: str = "") -> list[str]:
        """
        List object paths in the photos bucket.

        Args:
            prefix: Optional prefix filter (e.g. ``"{user_id}/"``)

        Raises:
            StorageError: If listing fails
        """
        try:
            blobs = self.client.list_blobs(self.photos_bucket, prefix=prefix or None)
            file_paths = [blob.name for blob in blobs]
            logger.debug("files_listed", prefix=prefix, count=len(file_paths))
            return file_paths
        except GoogleCloudError as e:
            raise StorageError(f"Failed to list files with prefix '{prefix}': {e}", original_exception=e) from e

    def check_bucket_exists(self) -> bool:
        """
        Check if the photos bucket exists and is accessible.
        """
        try:
            self.photos_bucket.reload()
            return True
        except NotFound:
            logger.error("bucket_not_found", bucket=self.photos_bucket_name)
            return False
        except GoogleCloudError as e:
            logger.error("bucket_check_failed", bucket=self.photos_bucket_name, error=str(e))
            return False

    def upload_database_file(self, file_data: bytes, filename: str) -> dict[str, str]:
        """
        Upload the metadata database file to the database bucket.

        Returns:
            dict: Upload result with GCS path and size

        Raises:
            StorageError: If upload fails
        """
        gcs_path = f"databases/{filename}"
        try:
            blob = self.database_bucket.blob(gcs_path)
            blob.metadata = {"file_type": "database", "upload_timestamp": datetime.now().isoformat()}
            blob.upload_from_string(file_data, content_type="application/octet-stream")

            logger.info("database_file_uploaded", gcs_path=gcs_path, file_size=len(file_data))
            return {"gcs_path": gcs_path, "file_size": str(len(file_data))}

        except GoogleCloudError as e:
            raise StorageError(f"Failed to upload database file '{filename}': {e}", original_exception=e) from e

    def download_database_file(self, filename: str) -> bytes:
        """
        Download the metadata database file from the database bucket.

        Raises:
            StorageError: If download fails (code ``file_not_found`` when missing)
        """
        gcs_path = f"databases/{filename}"
        try:
            file_data: bytes = self.database_bucket.blob(gcs_path).download_as_bytes()
            logger.info("database_file_downloaded", gcs_path=gcs_path, file_size=len(file_data))
            return file_data
        except NotFound as e:
            raise StorageError(
                f"Database file not found: {gcs_path}", code="file_not_found", original_exception=e
            ) from e
        except GoogleCloudError as e:
            raise StorageError(f"Failed to download database file '{filename}': {e}", original_exception=e) from e


_storage_service: StorageService | None = None


def get_storage_service(bucket_name: str | None = None, project_id: str | None = None) -> StorageService:
    """
    Get the global storage service instance.

    Returns:
        StorageService: Global storage service instance
    """
    global _storage_service

    if _storage_service is None:
        _storage_service = StorageService(bucket_name=bucket_name, project_id=project_id)

    return _storage_service


def reset_storage_service() -> None:
    """Forget the global instance (tests, configuration changes)."""
    global _storage_service
    _storage_service = None
