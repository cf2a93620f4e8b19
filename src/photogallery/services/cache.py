"""
Cache tags for photo listings.

Listings are cached per tag (``photos:user:{id}`` and
``photos:user:{id}:{category}``). Revalidating a tag bumps its version;
cached loaders include the version in their key, so the next read misses.
"""

import threading

from ..logging_config import get_logger

logger = get_logger(__name__)

_tag_versions: dict[str, int] = {}
_lock = threading.Lock()


def photo_cache_tag(user_id: str, category: str | None = None) -> str:
    tag = f"photos:user:{user_id}"
    return f"{tag}:{category}" if category else tag


def get_tag_version(tag: str) -> int:
    with _lock:
        return _tag_versions.get(tag, 0)


def revalidate_tag(tag: str) -> int:
    """Invalidate everything cached under ``tag``; returns the new version."""
    with _lock:
        version = _tag_versions.get(tag, 0) + 1
        _tag_versions[tag] = version
    logger.debug("cache_tag_revalidated", tag=tag, version=version)
    return version


def revalidate_photo_tags(user_id: str, category: str | None = None) -> list[str]:
    """
    Invalidate a user's listing and, when given, the listing of one category.

    Returns:
        list[str]: The revalidated tags
    """
    tags = [photo_cache_tag(user_id)]
    if category:
        tags.append(photo_cache_tag(user_id, category))
    for tag in tags:
        revalidate_tag(tag)
    return tags


def photo_listing_version(user_id: str, category: str | None = None) -> tuple[int, int]:
    """Versions a cached listing depends on: the user tag and the category tag."""
    return get_tag_version(photo_cache_tag(user_id)), get_tag_version(photo_cache_tag(user_id, category))


def reset_tags() -> None:
    with _lock:
        _tag_versions.clear()
