"""Upload a local directory of images into one category of a user's gallery."""

import os
from pathlib import Path

from dotenv import load_dotenv
from invoke import Context, task

from ..error_handling import GalleryError, NotFoundError, UploadError
from ..logging_config import configure_structured_logging, get_logger
from ..models.photo import Photo, PhotoCategory
from ..services.auth import UserInfo
from ..services.cache import revalidate_photo_tags
from ..services.metadata import get_metadata_service
from ..services.photo_manager import PhotoManager
from ..services.storage import CONTENT_TYPES
from ..services.upload_manager import UploadFile, UploadOptions, UploadResult, get_upload_manager

logger = get_logger(__name__)


def load_environment(env_file: str) -> None:
    if os.path.exists(env_file):
        load_dotenv(dotenv_path=env_file)
        logger.info("environment_loaded", env_file=env_file)
    else:
        logger.warning("environment_file_not_found", env_file=env_file)


def find_image_files(directory: str, recursive: bool = False) -> list[Path]:
    """Image files in ``directory`` with a supported extension, sorted by path."""
    root = Path(directory)
    candidates = root.rglob("*") if recursive else root.iterdir()
    return sorted(path for path in candidates if path.is_file() and path.suffix.lower() in CONTENT_TYPES)


def resolve_user(username: str) -> UserInfo:
    """
    Raises:
        NotFoundError: If no gallery is registered under ``username``
    """
    profile = get_metadata_service().get_user_by_username(username.strip().lower())
    if profile is None:
        raise NotFoundError(f"No gallery registered for '{username}'", code="gallery_not_found")
    return UserInfo(
        user_id=profile.id,
        email=profile.email,
        name=profile.display_name,
        username=profile.username,
        display_name=profile.display_name,
    )


def upload_directory(
    user: UserInfo, files: list[Path], category: "PhotoCategory | str"
) -> tuple[list[Photo], list[str]]:
    """
    Upload files through the upload manager and save each as a photo.

    Returns:
        tuple: (saved photos, "{filename}: {error}" lines of failed files)
    """
    category = PhotoCategory.parse(category)
    upload_files = [UploadFile(filename=path.name, data=path.read_bytes()) for path in files]

    failed: list[str] = []
    try:
        results = get_upload_manager().upload_multiple_files(user, upload_files, UploadOptions(category=category))
    except UploadError as e:
        if e.code != "batch_upload_failed":
            raise
        failed = list(e.details.get("failed", []))
        results = [UploadResult(**result) for result in e.details.get("uploaded", [])]

    manager = PhotoManager()
    manager.set_current_user(user.user_id)
    photos = []
    for result in results:
        try:
            photos.append(manager.add_photo(category, result.url, storage_path=result.storage_path))
        except GalleryError as e:
            failed.append(f"{result.storage_path}: {e.user_message}")

    if photos:
        revalidate_photo_tags(user.user_id, category.value)
    return photos, failed


@task
def batch_upload(
    c: Context,
    directory: str,
    username: str,
    category: str = "daily",
    env_file: str = ".env",
    recursive: bool = False,
    dry_run: bool = False,
):
    """
    Upload images from a local directory in batch.

    Args:
        c (Context): Invoke context.
        directory (str): Path to the directory containing images.
        username (str): Gallery username the photos belong to.
        category (str): travel, selfie, festival or daily. Default is 'daily'.
        env_file (str): Path to the environment file. Default is '.env'.
        recursive (bool): Search for images in subdirectories. Default is False.
        dry_run (bool): If True, lists files to be processed without uploading. Default is False.
    """
    load_environment(env_file)
    configure_structured_logging()

    if not os.path.isdir(directory):
        logger.error("directory_not_found", directory=directory)
        return
    try:
        category = PhotoCategory.parse(category).value
    except ValueError as e:
        logger.error("invalid_category", error=str(e))
        return

    image_files = find_image_files(directory, recursive)
    if not image_files:
        logger.warning("no_image_files_found", directory=directory)
        return

    if dry_run:
        print("\n--- Dry Run Mode: Files to be processed ---")
        for path in image_files:
            print(f"- {path}")
        print("--- End of Dry Run ---")
        return

    user = resolve_user(username)
    logger.info(
        "batch_upload_started", directory=directory, username=username, category=category, files=len(image_files)
    )

    photos, failed = upload_directory(user, image_files, category)
    for line in failed:
        logger.error("batch_upload_file_failed", detail=line)

    logger.info("batch_upload_finished", successful=len(photos), failed=len(failed), total=len(image_files))
    print(f"\nBatch upload complete. Successful: {len(photos)}, Failed: {len(failed)}")
