"""Gallery handlers: cached photo loading and owner edits."""

from typing import Any

import streamlit as st

from ...error_handling import GalleryError
from ...logging_config import get_logger
from ...models.photo import Photo, PhotoCategory
from ...models.user import UserProfile
from ...services.cache import photo_listing_version, revalidate_photo_tags
from ...services.metadata import get_metadata_service
from ...services.photo_manager import PhotoManager

logger = get_logger(__name__)


def photo_manager_for(user_id: str) -> PhotoManager:
    """A photo manager bound to one user for the current script run."""
    manager = PhotoManager()
    manager.set_current_user(user_id)
    return manager


@st.cache_data(ttl=300, show_spinner=False)
def load_gallery_photos(user_id: str, category: str | None = None, version: tuple[int, int] = (0, 0)) -> list[Photo]:
    """
    Load a user's photos as typed gallery photos.

    Args:
        user_id: Gallery owner
        category: Limit to one category
        version: Cache tag versions of the listing; a revalidated tag changes the key

    Returns:
        list: Photos, newest first (empty on failure)
    """
    try:
        manager = PhotoManager()
        if category:
            photos = manager.get_photos_by_category(category, user_id=user_id)
        else:
            photos = manager.get_all_photos(user_id=user_id)
        logger.info("gallery_photos_loaded", user_id=user_id, category=category, count=len(photos))
        return photos
    except GalleryError as e:
        logger.error("load_gallery_photos_error", user_id=user_id, category=category, error=str(e))
        return []


def get_gallery_photos(user_id: str, category: "PhotoCategory | str | None" = None) -> list[Photo]:
    category_value = PhotoCategory.parse(category).value if category else None
    return load_gallery_photos(user_id, category_value, photo_listing_version(user_id, category_value))


@st.cache_data(ttl=300, show_spinner=False)
def load_category_counts(user_id: str, version: tuple[int, int] = (0, 0)) -> dict[str, int]:
    try:
        return get_metadata_service().count_photos_by_category(user_id)
    except GalleryError as e:
        logger.error("load_category_counts_error", user_id=user_id, error=str(e))
        return dict.fromkeys(PhotoCategory.values(), 0)


def get_category_counts(user_id: str) -> dict[str, int]:
    return load_category_counts(user_id, photo_listing_version(user_id))


def resolve_gallery_owner(username: str | None) -> UserProfile | None:
    """Profile of the gallery named in ``?gallery=``, or None."""
    if not username:
        return None
    try:
        return get_metadata_service().get_user_by_username(username.strip().lower())
    except GalleryError as e:
        logger.error("resolve_gallery_owner_error", username=username, error=str(e))
        return None


def save_photo_changes(user_id: str, photo: Photo, **updates: Any) -> Photo | None:
    """
    Apply an owner's edits and invalidate the cached listings.

    Returns:
        Photo | None: The updated photo, or None if it no longer exists
    """
    updated = photo_manager_for(user_id).update_photo(photo.id, **updates)
    revalidate_photo_tags(user_id, photo.category.value)
    return updated


def delete_gallery_photo(user_id: str, photo: Photo) -> bool:
    deleted = photo_manager_for(user_id).delete_photo(photo.id)
    revalidate_photo_tags(user_id, photo.category.value)
    return deleted
