"""
Metadata service for gallery profiles, photos and guestbook messages.

All data lives in one DuckDB file. The file is kept in a local working
directory, downloaded from the database bucket on first use and uploaded back
in the background after every write.

Timestamps are stored as naive UTC values; every datetime returned by this
module is timezone aware (UTC).
"""

import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import duckdb

from ..config import get_data_dir
from ..error_handling import DatabaseError, StorageError, ValidationError
from ..logging_config import get_logger, log_error, log_performance, log_user_action
from ..models.database import DatabaseManager, create_database, get_database_manager
from ..models.message import GuestMessage
from ..models.photo import PhotoCategory, PhotoRecord
from ..models.user import UserProfile
from .storage import StorageService, get_storage_service

logger = get_logger(__name__)

DATABASE_FILENAME = "gallery.db"

PHOTO_COLUMNS = (
    "id, user_id, category, title, description, image_url, storage_path, "
    "tags, location, mood, extra, created_at, updated_at"
)
USER_COLUMNS = "id, username, email, display_name, avatar_url, bio, location, created_at, updated_at"
MESSAGE_COLUMNS = "id, gallery_owner_id, name, message, color, created_at"

# Columns update_photo may change; id, user_id, category and created_at are fixed
UPDATABLE_PHOTO_COLUMNS = ("title", "description", "image_url", "storage_path", "tags", "location", "mood", "extra")
UPDATABLE_USER_COLUMNS = ("display_name", "avatar_url", "bio", "location")


def _to_db_timestamp(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


def _photo_from_row(row: dict[str, Any]) -> PhotoRecord:
    data = dict(row)
    data["tags"] = json.loads(data.get("tags") or "[]")
    data["extra"] = json.loads(data.get("extra") or "{}")
    return PhotoRecord.from_dict(data)


def _user_from_row(row: dict[str, Any]) -> UserProfile:
    data = dict(row)
    for key in ("created_at", "updated_at"):
        if isinstance(data.get(key), datetime) and data[key].tzinfo is None:
            data[key] = data[key].replace(tzinfo=UTC)
    return UserProfile.from_dict(data)


class MetadataService:
    """
    Service for the gallery database with GCS synchronization.

    Database access is serialized with a re-entrant lock so API worker
    threads and the background sync never see a half written file.
    """

    def __init__(self, data_dir: str | None = None, storage_service: StorageService | None = None):
        """
        Initialize the metadata service.

        Args:
            data_dir: Directory for the local database file (defaults to DATA_DIR)
            storage_service: Storage service used for synchronization

        Raises:
            DatabaseError: If the storage service cannot be initialized
        """
        self.data_dir = Path(data_dir or get_data_dir())
        self.local_db_path = self.data_dir / DATABASE_FILENAME
        self.gcs_db_path = f"databases/{DATABASE_FILENAME}"

        try:
            self.storage_service = storage_service or get_storage_service()
        except StorageError as e:
            raise DatabaseError(f"Failed to initialize storage service: {e}", original_exception=e) from e

        self._db_manager: DatabaseManager | None = None
        self._db_lock = threading.RLock()

        self._sync_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gallery-db-sync")
        self._sync_lock = threading.Lock()
        self._last_sync_time: datetime | None = None
        self._sync_pending = False
        self._sync_dirty = False
        self._sync_enabled = True

        logger.info(
            "metadata_service_initialized",
            local_db_path=str(self.local_db_path),
            gcs_db_path=self.gcs_db_path,
        )

    @property
    def db_manager(self) -> DatabaseManager:
        """Get database manager, initializing if needed."""
        if self._db_manager is None:
            self._db_manager = get_database_manager(str(self.local_db_path), create_if_missing=True)
        return self._db_manager

    # Local database lifecycle

    def ensure_local_database(self) -> bool:
        """
        Ensure the local database exists, downloading it from GCS if needed.

        Returns:
            bool: True if the database was downloaded from GCS, False otherwise

        Raises:
            DatabaseError: If database setup fails
        """
        with self._db_lock:
            if self.local_db_path.exists():
                return False

            try:
                if self._download_from_gcs():
                    logger.info("database_downloaded_from_gcs", gcs_path=self.gcs_db_path)
                    return True

                self._create_new_database()
                return False

            except DatabaseError:
                raise
            except Exception as e:
                raise DatabaseError(f"Failed to ensure local database: {e}", original_exception=e) from e

    def _download_from_gcs(self) -> bool:
        try:
            db_data = self.storage_service.download_database_file(DATABASE_FILENAME)
        except StorageError as e:
            if e.code == "file_not_found":
                logger.debug("gcs_database_not_found", gcs_path=self.gcs_db_path)
                return False
            raise

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.local_db_path.write_bytes(db_data)

        try:
            self._verify_database_integrity()
        except DatabaseError:
            self._discard_local_file()
            raise
        return True

    def _create_new_database(self) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            create_database(str(self.local_db_path)).close()
            logger.info("new_database_created", local_path=str(self.local_db_path))
        except Exception as e:
            self._discard_local_file()
            log_error(e, {"operation": "create_new_database", "local_path": str(self.local_db_path)})
            raise DatabaseError(f"Failed to create new database: {e}", original_exception=e) from e

    def _verify_database_integrity(self) -> None:
        with self.db_manager as db:
            if not db.verify_schema():
                raise DatabaseError("Database schema verification failed", code="schema_invalid")

    def _discard_local_file(self) -> None:
        if self._db_manager:
            self._db_manager.close()
            self._db_manager = None
        if self.local_db_path.exists():
            self.local_db_path.unlink()

    def upload_to_gcs(self) -> bool:
        """
        Upload the local database to GCS.

        Raises:
            DatabaseError: If upload fails
        """
        with self._db_lock:
            if not self.local_db_path.exists():
                raise DatabaseError("Local database does not exist", code="database_missing")
            if self._db_manager:
                self._db_manager.close()
            db_data = self.local_db_path.read_bytes()

        try:
            result = self.storage_service.upload_database_file(db_data, DATABASE_FILENAME)
        except StorageError as e:
            raise DatabaseError(f"Failed to upload database to GCS: {e}", original_exception=e) from e

        logger.info("database_uploaded_to_gcs", gcs_path=result["gcs_path"], file_size=len(db_data))
        return True

    # Background synchronization

    def enable_sync(self) -> None:
        with self._sync_lock:
            self._sync_enabled = True

    def disable_sync(self) -> None:
        with self._sync_lock:
            self._sync_enabled = False

    def is_sync_enabled(self) -> bool:
        with self._sync_lock:
            return self._sync_enabled

    def get_sync_status(self) -> dict[str, Any]:
        with self._sync_lock:
            return {
                "enabled": self._sync_enabled,
                "pending": self._sync_pending,
                "last_sync_time": self._last_sync_time.isoformat() if self._last_sync_time else None,
            }

    def _upload_once(self) -> None:
        start_time = datetime.now()
        try:
            self.upload_to_gcs()
            with self._sync_lock:
                self._last_sync_time = datetime.now(UTC)
            log_performance("async_sync_to_gcs", (datetime.now() - start_time).total_seconds(), success=True)
        except DatabaseError as e:
            log_error(e, {"operation": "async_sync_to_gcs"})

    def _sync_to_gcs(self) -> None:
        """Upload until no write arrived during the last upload."""
        try:
            while True:
                with self._sync_lock:
                    self._sync_dirty = False
                self._upload_once()
                with self._sync_lock:
                    if not (self._sync_dirty and self._sync_enabled):
                        self._sync_pending = False
                        return
                logger.debug("async_sync_rerun_for_new_writes")
        except Exception:
            with self._sync_lock:
                self._sync_pending = False
            raise

    def trigger_async_sync(self) -> None:
        """Queue an upload of the database file; returns immediately."""
        with self._sync_lock:
            if not self._sync_enabled:
                logger.debug("async_sync_trigger_disabled")
                return
            if self._sync_pending:
                # The running sync uploads again once it finishes
                self._sync_dirty = True
                logger.debug("async_sync_already_pending")
                return
            self._sync_pending = True

        self._sync_executor.submit(self._sync_to_gcs)

    def wait_for_sync_completion(self, timeout: float = 30.0) -> bool:
        """
        Wait for a pending sync to finish.

        Returns:
            bool: True if no sync is pending any more, False on timeout
        """
        start_time = time.time()
        while time.time() - start_time < timeout:
            with self._sync_lock:
                if not self._sync_pending:
                    return True
            time.sleep(0.1)

        logger.warning("sync_completion_timeout", timeout_seconds=timeout)
        return False

    def _fetch(self, query: str, params: tuple | None = None) -> list[dict[str, Any]]:
        with self._db_lock:
            self.ensure_local_database()
            with self.db_manager as db:
                return db.fetch_dicts(query, params)

    def _execute(self, query: str, params: tuple | None = None) -> None:
        with self._db_lock:
            self.ensure_local_database()
            with self.db_manager as db:
                db.execute_query(query, params)

    # Users

    def create_user(self, profile: UserProfile) -> UserProfile:
        """
        Insert a gallery profile.

        Raises:
            ValidationError: If the username or email is already registered
            DatabaseError: If the insert fails
        """
        try:
            self._execute(
                f"INSERT INTO users ({USER_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",  # nosec B608
                (
                    profile.id,
                    profile.username,
                    profile.email,
                    profile.display_name,
                    profile.avatar_url,
                    profile.bio,
                    profile.location,
                    _to_db_timestamp(profile.created_at),
                    _to_db_timestamp(profile.updated_at),
                ),
            )
        except duckdb.ConstraintException as e:
            raise ValidationError(
                f"Profile already exists: {e}",
                code="duplicate_user",
                user_message="That username or email is already registered.",
                details={"username": profile.username},
                original_exception=e,
            ) from e
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to create user: {e}", original_exception=e) from e

        log_user_action(profile.id, "profile_created", username=profile.username)
        self.trigger_async_sync()
        return profile

    def _get_user_where(self, column: str, value: str) -> UserProfile | None:
        try:
            rows = self._fetch(f"SELECT {USER_COLUMNS} FROM users WHERE {column} = ?", (value,))  # nosec B608
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to get user by {column}: {e}", original_exception=e) from e
        return _user_from_row(rows[0]) if rows else None

    def get_user_by_id(self, user_id: str) -> UserProfile | None:
        return self._get_user_where("id", user_id)

    def get_user_by_username(self, username: str) -> UserProfile | None:
        return self._get_user_where("username", username.strip().lower())

    def get_user_by_email(self, email: str) -> UserProfile | None:
        return self._get_user_where("email", email)

    def update_user_profile(self, user_id: str, **fields: Any) -> UserProfile | None:
        """
        Update display fields of a profile.

        Only display_name, avatar_url, bio and location can change.

        Returns:
            UserProfile | None: Updated profile, or None when it does not exist
        """
        updates = {key: value for key, value in fields.items() if key in UPDATABLE_USER_COLUMNS}
        if not updates:
            return self.get_user_by_id(user_id)

        assignments = ", ".join(f"{column} = ?" for column in updates)
        params = (*updates.values(), _to_db_timestamp(datetime.now(UTC)), user_id)
        try:
            with self._db_lock:
                if self.get_user_by_id(user_id) is None:
                    return None
                self._execute(f"UPDATE users SET {assignments}, updated_at = ? WHERE id = ?", params)  # nosec B608
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to update user: {e}", original_exception=e) from e

        self.trigger_async_sync()
        return self.get_user_by_id(user_id)

    # Photos

    def insert_photo(self, record: PhotoRecord) -> PhotoRecord:
        """
        Insert a photo row.

        Raises:
            ValidationError: If the record is incomplete
            DatabaseError: If the insert fails
        """
        if not record.validate():
            raise ValidationError("Invalid photo record", code="invalid_photo", details={"photo_id": record.id})

        try:
            self._execute(
                f"INSERT INTO photos ({PHOTO_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",  # nosec B608
                (
                    record.id,
                    record.user_id,
                    record.category.value,
                    record.title,
                    record.description,
                    record.image_url,
                    record.storage_path,
                    json.dumps(record.tags),
                    record.location,
                    record.mood,
                    json.dumps(record.extra, ensure_ascii=False),
                    _to_db_timestamp(record.created_at),
                    _to_db_timestamp(record.updated_at),
                ),
            )
        except duckdb.Error as e:
            log_error(e, {"operation": "insert_photo", "user_id": record.user_id, "photo_id": record.id})
            raise DatabaseError(f"Failed to save photo: {e}", original_exception=e) from e

        log_user_action(record.user_id, "photo_saved", photo_id=record.id, category=record.category.value)
        self.trigger_async_sync()
        return record

    def get_photo(self, photo_id: str, user_id: str | None = None) -> PhotoRecord | None:
        """
        Get a photo by ID, optionally restricted to one owner.
        """
        query = f"SELECT {PHOTO_COLUMNS} FROM photos WHERE id = ?"  # nosec B608
        params: tuple = (photo_id,)
        if user_id is not None:
            query += " AND user_id = ?"
            params = (photo_id, user_id)

        try:
            rows = self._fetch(query, params)
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to get photo: {e}", original_exception=e) from e
        return _photo_from_row(rows[0]) if rows else None

    def list_photos(
        self, user_id: str, category: "PhotoCategory | str | None" = None, limit: int | None = None
    ) -> list[PhotoRecord]:
        """
        List a user's photos, newest first.

        Raises:
            ValueError: If the category is not valid
            DatabaseError: If the query fails
        """
        start_time = datetime.now()
        query = f"SELECT {PHOTO_COLUMNS} FROM photos WHERE user_id = ?"  # nosec B608
        params: list[Any] = [user_id]
        if category is not None:
            query += " AND category = ?"
            params.append(PhotoCategory.parse(category).value)
        query += " ORDER BY created_at DESC, id"
        if limit is not None:
            query += " LIMIT ?"
            params.append(int(limit))

        try:
            rows = self._fetch(query, tuple(params))
        except duckdb.Error as e:
            log_error(e, {"operation": "list_photos", "user_id": user_id})
            raise DatabaseError(f"Failed to list photos: {e}", original_exception=e) from e

        photos = [_photo_from_row(row) for row in rows]
        log_performance(
            "list_photos",
            (datetime.now() - start_time).total_seconds(),
            user_id=user_id,
            category=str(category) if category else None,
            photos_count=len(photos),
        )
        return photos

    def update_photo(self, photo_id: str, user_id: str, updates: dict[str, Any]) -> PhotoRecord | None:
        """
        Update a user's photo in place.

        Args:
            photo_id: Photo to update
            user_id: Owner; rows of other users are never touched
            updates: Column values; keys outside the updatable columns are ignored

        Returns:
            PhotoRecord | None: The updated row, or None if no such row is owned by the user
        """
        values = {key: value for key, value in updates.items() if key in UPDATABLE_PHOTO_COLUMNS}
        if "tags" in values:
            values["tags"] = json.dumps(list(values["tags"] or []))
        if "extra" in values:
            values["extra"] = json.dumps(dict(values["extra"] or {}), ensure_ascii=False)

        with self._db_lock:
            if self.get_photo(photo_id, user_id) is None:
                return None
            if values:
                assignments = ", ".join(f"{column} = ?" for column in values)
                params = (*values.values(), _to_db_timestamp(datetime.now(UTC)), photo_id, user_id)
                try:
                    self._execute(
                        f"UPDATE photos SET {assignments}, updated_at = ? WHERE id = ? AND user_id = ?",  # nosec B608
                        params,
                    )
                except duckdb.Error as e:
                    raise DatabaseError(f"Failed to update photo: {e}", original_exception=e) from e
            updated = self.get_photo(photo_id, user_id)

        log_user_action(user_id, "photo_updated", photo_id=photo_id, fields=sorted(values))
        self.trigger_async_sync()
        return updated

    def delete_photo(self, photo_id: str, user_id: str) -> PhotoRecord | None:
        """
        Delete a user's photo row.

        Returns:
            PhotoRecord | None: The deleted row, or None if no such row is owned by the user
        """
        with self._db_lock:
            existing = self.get_photo(photo_id, user_id)
            if existing is None:
                logger.warning("photo_not_found_for_deletion", photo_id=photo_id, user_id=user_id)
                return None
            try:
                self._execute("DELETE FROM photos WHERE id = ? AND user_id = ?", (photo_id, user_id))
            except duckdb.Error as e:
                raise DatabaseError(f"Failed to delete photo: {e}", original_exception=e) from e

        log_user_action(user_id, "photo_deleted", photo_id=photo_id)
        self.trigger_async_sync()
        return existing

    def count_photos_by_category(self, user_id: str) -> dict[str, int]:
        """Photo count for each of the four categories (zero included)."""
        try:
            rows = self._fetch(
                "SELECT category, COUNT(*) AS total FROM photos WHERE user_id = ? GROUP BY category", (user_id,)
            )
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to count photos: {e}", original_exception=e) from e

        counts = dict.fromkeys(PhotoCategory.values(), 0)
        for row in rows:
            counts[row["category"]] = int(row["total"])
        return counts

    # Guestbook

    def add_message(self, message: GuestMessage) -> GuestMessage:
        try:
            self._execute(
                f"INSERT INTO messages ({MESSAGE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",  # nosec B608
                (
                    message.id,
                    message.gallery_owner_id,
                    message.name,
                    message.message,
                    message.color,
                    _to_db_timestamp(message.created_at),
                ),
            )
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to save message: {e}", original_exception=e) from e

        self.trigger_async_sync()
        return message

    def list_messages(self, gallery_owner_id: str, limit: int | None = None) -> list[GuestMessage]:
        """Messages left on a gallery, newest first."""
        query = (
            f"SELECT {MESSAGE_COLUMNS} FROM messages WHERE gallery_owner_id = ? ORDER BY created_at DESC"  # nosec B608
        )
        params: tuple = (gallery_owner_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (gallery_owner_id, int(limit))

        try:
            rows = self._fetch(query, params)
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to list messages: {e}", original_exception=e) from e
        return [GuestMessage.from_dict(row) for row in rows]

    def get_database_info(self) -> dict[str, Any]:
        """Local file and sync information for health checks."""
        info: dict[str, Any] = {
            "local_db_path": str(self.local_db_path),
            "gcs_db_path": self.gcs_db_path,
            "local_exists": self.local_db_path.exists(),
            "sync": self.get_sync_status(),
        }
        if info["local_exists"]:
            info["local_size"] = self.local_db_path.stat().st_size
        return info

    def cleanup(self, remove_local_file: bool = False) -> None:
        """Stop background sync and release the database connection."""
        self._sync_executor.shutdown(wait=True)
        with self._db_lock:
            if self._db_manager:
                self._db_manager.close()
                self._db_manager = None
            if remove_local_file and self.local_db_path.exists():
                self.local_db_path.unlink()


_metadata_service: MetadataService | None = None
_metadata_service_lock = threading.Lock()


def get_metadata_service() -> MetadataService:
    """
    Get the global metadata service instance.

    Returns:
        MetadataService: Global metadata service instance
    """
    global _metadata_service
    if _metadata_service is None:
        with _metadata_service_lock:
            if _metadata_service is None:
                _metadata_service = MetadataService()
    return _metadata_service


def cleanup_metadata_service() -> None:
    """Shut down and forget the global instance."""
    global _metadata_service
    with _metadata_service_lock:
        if _metadata_service is not None:
            _metadata_service.cleanup()
            _metadata_service = None
