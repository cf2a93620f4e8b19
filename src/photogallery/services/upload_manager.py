"""
Photo upload manager.

Uploads go through compression, then a direct HTTP PUT to a signed URL with
the storage SDK as fallback. Every upload is tracked in an in-memory queue
whose entries report progress:

    pending 0 -> uploading 10 -> (compression) 10..40 -> processing 40
    -> 50 -> (transfer) 50..80 -> completed 100

Completed entries leave the queue after a short retention delay.
"""

import secrets
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..config import get_upload_settings
from ..error_handling import AuthenticationError, GalleryError, StorageError, UploadError, ValidationError
from ..logging_config import get_logger, log_performance, log_user_action
from ..models.photo import PhotoCategory
from .image_processor import ImageProcessor, get_image_processor
from .storage import EXTENSIONS_BY_CONTENT_TYPE

if TYPE_CHECKING:
    from .auth import UserInfo
    from .storage import StorageService

logger = get_logger(__name__)

SIGNED_UPLOAD_EXPIRATION = 7200


class UploadStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class UploadResult:
    url: str
    storage_path: str

    def to_dict(self) -> dict[str, str]:
        return {"url": self.url, "storage_path": self.storage_path}


@dataclass
class UploadProgress:
    """Queue entry for one file."""

    id: str
    filename: str
    progress: float = 0.0
    status: UploadStatus = UploadStatus.PENDING
    error: str | None = None
    preview: str | None = None
    result: UploadResult | None = None


@dataclass
class UploadFile:
    filename: str
    data: bytes
    mime_type: str | None = None


@dataclass
class UploadOptions:
    """
    Per-call upload settings.

    ``max_width`` and ``quality`` fall back to the UPLOAD_MAX_WIDTH and
    UPLOAD_QUALITY settings.
    """

    category: PhotoCategory | str
    max_width: int | None = None
    quality: int | None = None
    on_progress: Callable[[UploadProgress], None] | None = None
    on_complete: Callable[[UploadResult], None] | None = None
    on_error: Callable[[str], None] | None = None
    extra: dict[str, Any] = field(default_factory=dict)


class PhotoUploadManager:
    """Compresses and uploads photos, keeping a queue of in-flight uploads."""

    def __init__(
        self,
        storage_service: "StorageService | None" = None,
        image_processor: ImageProcessor | None = None,
        max_concurrent_uploads: int | None = None,
        queue_retention_seconds: float | None = None,
        use_signed_url: bool = True,
    ) -> None:
        settings = get_upload_settings()
        self._storage_service = storage_service
        self.image_processor = image_processor or get_image_processor()
        self.max_concurrent_uploads = max(1, max_concurrent_uploads or settings["max_concurrent"])
        self.queue_retention_seconds = (
            settings["queue_retention_seconds"] if queue_retention_seconds is None else queue_retention_seconds
        )
        self.default_max_width = settings["max_width"]
        self.default_quality = settings["quality"]
        self.use_signed_url = use_signed_url

        self._queue: dict[str, UploadProgress] = {}
        self._lock = threading.Lock()
        self._timers: dict[str, threading.Timer] = {}

    @property
    def storage(self) -> "StorageService":
        if self._storage_service is None:
            from .storage import get_storage_service

            self._storage_service = get_storage_service()
        return self._storage_service

    def _emit(self, entry: UploadProgress, options: UploadOptions, **changes: Any) -> None:
        with self._lock:
            for key, value in changes.items():
                setattr(entry, key, value)
            snapshot = replace(entry)
        if options.on_progress:
            options.on_progress(snapshot)

    def _emit_unless_cancelled(self, entry: UploadProgress, options: UploadOptions, **changes: Any) -> None:
        """Apply the changes and report them, unless the entry was cancelled in the meantime."""
        with self._lock:
            cancelled = entry.status is UploadStatus.ERROR
            if not cancelled:
                for key, value in changes.items():
                    setattr(entry, key, value)
                snapshot = replace(entry)
        if cancelled:
            raise UploadError(
                f"Upload cancelled: {entry.filename}",
                code="upload_cancelled",
                user_message=entry.error or "Upload cancelled by user",
            )
        if options.on_progress:
            options.on_progress(snapshot)

    def upload_single_file(
        self,
        user: "UserInfo | None",
        data: bytes,
        filename: str,
        options: UploadOptions,
        mime_type: str | None = None,
    ) -> UploadResult:
        """
        Validate, compress and upload one image.

        Args:
            user: Signed-in user; uploads are stored under the user's ID
            data: Raw file bytes
            filename: Original file name
            options: Category, compression settings and callbacks
            mime_type: Type reported by the client; detected when missing

        Returns:
            UploadResult: Public URL and storage path

        Raises:
            ValidationError: If the file is rejected (no queue entry is created)
            AuthenticationError: If no user is signed in
            UploadError: If compression or every upload path fails
        """
        start_time = time.time()
        try:
            category = PhotoCategory.parse(options.category)
        except ValueError as e:
            raise ValidationError(str(e), code="invalid_category") from e
        mime_type = self.image_processor.validate_file(data, filename, mime_type)
        preview = self.image_processor.generate_preview(data, mime_type)

        upload_id = f"upload_{int(start_time * 1000)}_{secrets.token_hex(5)}"
        entry = UploadProgress(id=upload_id, filename=filename, preview=preview)
        with self._lock:
            self._queue[upload_id] = entry
        self._emit(entry, options)

        try:
            if user is None:
                raise AuthenticationError(
                    "Upload attempted without a signed-in user",
                    code="upload_requires_login",
                    user_message="Please sign in before uploading photos.",
                )

            self._emit(entry, options, status=UploadStatus.UPLOADING, progress=10.0)

            compressed = self.image_processor.compress_image(
                data,
                max_width=options.max_width or self.default_max_width,
                quality=options.quality or self.default_quality,
                on_progress=lambda value: self._emit(entry, options, progress=10 + value * 0.3),
            )
            content_type = mime_type if compressed is data else "image/jpeg"

            self._emit_unless_cancelled(entry, options, status=UploadStatus.PROCESSING, progress=40.0)

            extension = EXTENSIONS_BY_CONTENT_TYPE.get(content_type, "jpg")
            storage_path = self.storage.build_photo_path(
                user.user_id, category.value, Path(filename).with_suffix(f".{extension}").name
            )
            self._emit(entry, options, progress=50.0)

            method = self._transfer(
                storage_path,
                compressed,
                content_type,
                lambda sent, total: self._emit(entry, options, progress=50 + (sent / max(total, 1)) * 30),
            )
            self._emit_unless_cancelled(entry, options, progress=80.0)

            result = UploadResult(url=self.storage.get_public_url(storage_path), storage_path=storage_path)
            self._emit(entry, options, status=UploadStatus.COMPLETED, progress=100.0, result=result)

            log_performance(
                "upload_single_file",
                time.time() - start_time,
                filename=filename,
                original_size=len(data),
                uploaded_size=len(compressed),
                method=method,
            )
            log_user_action(user.user_id, "photo_uploaded", storage_path=storage_path, category=category.value)

            if options.on_complete:
                options.on_complete(result)
            self._schedule_removal(upload_id)
            return result

        except Exception as e:
            message = e.user_message if isinstance(e, GalleryError) else str(e) or "Upload failed"
            self._emit(entry, options, status=UploadStatus.ERROR, error=message)
            if options.on_error:
                options.on_error(message)
            if isinstance(e, GalleryError):
                raise
            raise UploadError(
                f"Failed to upload '{filename}': {e}", details={"filename": filename}, original_exception=e
            ) from e

    def _transfer(
        self,
        storage_path: str,
        data: bytes,
        content_type: str,
        progress_callback: Callable[[int, int], None],
    ) -> str:
        """
        Upload bytes: direct PUT to a signed URL first, storage SDK as fallback.

        Returns:
            str: ``signed_url`` or ``sdk``, whichever path succeeded
        """
        if self.use_signed_url:
            try:
                signed = self.storage.create_signed_upload_url(
                    storage_path, content_type, expiration=SIGNED_UPLOAD_EXPIRATION
                )
                self.storage.upload_via_signed_url(
                    signed["signed_url"], data, content_type, progress_callback=progress_callback
                )
                return "signed_url"
            except StorageError as e:
                logger.warning("direct_upload_failed_using_sdk", storage_path=storage_path, error=str(e))

        self.storage.upload_photo(storage_path, data, content_type, upsert=False, progress_callback=progress_callback)
        return "sdk"

    def upload_multiple_files(
        self, user: "UserInfo | None", files: list[UploadFile], options: UploadOptions
    ) -> list[UploadResult]:
        """
        Upload files in batches of ``max_concurrent_uploads``.

        Progress reported to ``options.on_progress`` is aggregated over all
        files. Files of one batch upload concurrently; the next batch starts
        when the current one has finished.

        Returns:
            list[UploadResult]: Results in the order of ``files``

        Raises:
            UploadError: If any file failed; ``details["failed"]`` lists
                ``"{filename}: {error}"`` and ``details["uploaded"]`` the successful results
        """
        total = len(files)
        results: list[UploadResult | None] = [None] * total
        errors: list[str] = []

        for batch_start in range(0, total, self.max_concurrent_uploads):
            batch = files[batch_start : batch_start + self.max_concurrent_uploads]

            with ThreadPoolExecutor(max_workers=len(batch), thread_name_prefix="photo-upload") as executor:
                futures = [
                    executor.submit(
                        self.upload_single_file,
                        user,
                        upload_file.data,
                        upload_file.filename,
                        self._batch_options(options, batch_start + offset, total),
                        upload_file.mime_type,
                    )
                    for offset, upload_file in enumerate(batch)
                ]

                for offset, (upload_file, future) in enumerate(zip(batch, futures, strict=True)):
                    try:
                        results[batch_start + offset] = future.result()
                    except GalleryError as e:
                        errors.append(f"{upload_file.filename}: {e.user_message}")

        uploaded = [result for result in results if result is not None]
        if errors:
            raise UploadError(
                "Some files failed to upload:\n" + "\n".join(errors),
                code="batch_upload_failed",
                user_message="Some files failed to upload:\n" + "\n".join(errors),
                details={"failed": errors, "uploaded": [result.to_dict() for result in uploaded]},
            )
        return uploaded

    def _batch_options(self, options: UploadOptions, index: int, total: int) -> UploadOptions:
        if options.on_progress is None:
            return options

        on_progress = options.on_progress

        def report(progress: UploadProgress) -> None:
            on_progress(replace(progress, progress=(index / total) * 100 + progress.progress / total))

        return replace(options, on_progress=report)

    def get_upload_queue(self) -> list[UploadProgress]:
        with self._lock:
            return [replace(entry) for entry in self._queue.values()]

    def cancel_upload(self, upload_id: str) -> bool:
        """
        Mark an in-flight upload as cancelled.

        Only entries in ``uploading`` state are affected.

        Returns:
            bool: True if the entry was cancelled
        """
        with self._lock:
            entry = self._queue.get(upload_id)
            if entry is None or entry.status is not UploadStatus.UPLOADING:
                return False
            entry.status = UploadStatus.ERROR
            entry.error = "Upload cancelled by user"
        logger.info("upload_cancelled", upload_id=upload_id, filename=entry.filename)
        return True

    def clear_completed(self) -> int:
        """Drop completed and failed entries; returns how many were removed."""
        with self._lock:
            finished = [
                upload_id
                for upload_id, entry in self._queue.items()
                if entry.status in (UploadStatus.COMPLETED, UploadStatus.ERROR)
            ]
            for upload_id in finished:
                del self._queue[upload_id]
        return len(finished)

    def _schedule_removal(self, upload_id: str) -> None:
        if self.queue_retention_seconds <= 0:
            self._remove_entry(upload_id)
            return

        timer = threading.Timer(self.queue_retention_seconds, self._remove_entry, args=(upload_id,))
        timer.daemon = True
        with self._lock:
            self._timers[upload_id] = timer
        timer.start()

    def _remove_entry(self, upload_id: str) -> None:
        with self._lock:
            self._queue.pop(upload_id, None)
            self._timers.pop(upload_id, None)

    def shutdown(self) -> None:
        """Cancel pending queue cleanups."""
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()


_upload_manager: PhotoUploadManager | None = None


def get_upload_manager() -> PhotoUploadManager:
    """Get the global upload manager instance."""
    global _upload_manager
    if _upload_manager is None:
        _upload_manager = PhotoUploadManager()
    return _upload_manager
