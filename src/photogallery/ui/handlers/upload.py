"""Upload handlers: validation of selected files and the upload run."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import streamlit as st

from ...error_handling import GalleryError
from ...logging_config import get_logger
from ...models.photo import Photo, PhotoCategory
from ...services.auth import UserInfo
from ...services.cache import revalidate_photo_tags
from ...services.image_processor import get_image_processor
from ...services.upload_manager import UploadOptions, UploadProgress, get_upload_manager
from .gallery import photo_manager_for

logger = get_logger(__name__)

UPLOAD_SESSION_KEYS = ("upload_validated", "valid_files", "validation_errors", "last_upload_result")


@dataclass
class UploadRunResult:
    """Outcome of uploading a selection of files."""

    photos: list[Photo] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.photos)

    @property
    def failure_count(self) -> int:
        return len(self.errors)


def validate_uploaded_files(uploaded_files: list) -> tuple[list[dict[str, Any]], list[dict[str, str]]]:
    """
    Validate files picked in the uploader.

    Returns:
        tuple: (valid_files, validation_errors)
    """
    if not uploaded_files:
        return [], []

    image_processor = get_image_processor()
    valid_files = []
    validation_errors = []

    for uploaded_file in uploaded_files:
        file_data = uploaded_file.getvalue()
        try:
            mime_type = image_processor.validate_file(file_data, uploaded_file.name, uploaded_file.type or None)
        except GalleryError as e:
            validation_errors.append({"filename": uploaded_file.name, "error": e.user_message, "details": str(e)})
            logger.warning("file_validation_failed", filename=uploaded_file.name, error=str(e))
            continue

        valid_files.append(
            {"filename": uploaded_file.name, "size": len(file_data), "data": file_data, "mime_type": mime_type}
        )
        logger.info("file_validation_success", filename=uploaded_file.name, size=len(file_data))

    return valid_files, validation_errors


def upload_files(
    user: UserInfo,
    valid_files: list[dict[str, Any]],
    category: "PhotoCategory | str",
    on_progress: Callable[[float, str], None] | None = None,
) -> UploadRunResult:
    """
    Upload files one after another and save each as a photo of ``category``.

    ``on_progress`` receives the overall percentage and a status line.
    """
    category = PhotoCategory.parse(category)
    upload_manager = get_upload_manager()
    manager = photo_manager_for(user.user_id)
    result = UploadRunResult()
    total = len(valid_files)

    for index, file_info in enumerate(valid_files):
        filename = file_info["filename"]

        def report(progress: UploadProgress, index: int = index, filename: str = filename) -> None:
            if on_progress:
                overall = (index / total) * 100 + progress.progress / total
                on_progress(overall, f"{filename}: {progress.status.value} ({progress.progress:.0f}%)")

        try:
            uploaded = upload_manager.upload_single_file(
                user,
                file_info["data"],
                filename,
                UploadOptions(category=category, on_progress=report),
                file_info.get("mime_type"),
            )
            photo = manager.add_photo(category, uploaded.url, storage_path=uploaded.storage_path)
        except GalleryError as e:
            result.errors.append(f"{filename}: {e.user_message}")
            continue

        result.photos.append(photo)

    if result.photos:
        revalidate_photo_tags(user.user_id, category.value)

    logger.info(
        "upload_run_completed",
        user_id=user.user_id,
        category=category.value,
        uploaded=result.success_count,
        failed=result.failure_count,
    )
    return result


def clear_upload_session_state() -> None:
    for key in UPLOAD_SESSION_KEYS:
        st.session_state.pop(key, None)
