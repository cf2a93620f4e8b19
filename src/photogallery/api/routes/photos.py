"""Photo listing, creation, deletion and cache revalidation."""

from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ...error_handling import NotFoundError, ValidationError
from ...logging_config import get_logger
from ...models.photo import PhotoCategory
from ...services.auth import UserInfo
from ...services.cache import photo_cache_tag, revalidate_photo_tags
from ...services.metadata import MetadataService
from ...services.photo_manager import PhotoManager
from ..dependencies import get_metadata, get_photo_manager_for, require_user

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["photos"])

LISTING_CACHE_CONTROL = "public, s-maxage=60, stale-while-revalidate=300"


class CreatePhotoRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    category: str
    image_url: str
    storage_path: str | None = None
    tags: list[str] = Field(default_factory=list)
    fields: dict[str, Any] = Field(default_factory=dict)


class RevalidateRequest(BaseModel):
    category: str | None = None


def _parse_category(category: str) -> PhotoCategory:
    try:
        return PhotoCategory.parse(category)
    except ValueError as e:
        raise ValidationError(str(e), code="invalid_category", user_message="Invalid category") from e


@router.get("/photos")
def list_photos(
    user_id: str | None = Query(default=None, alias="userId"),
    category: str | None = Query(default=None),
    metadata: MetadataService = Depends(get_metadata),
):
    if not user_id:
        raise ValidationError(
            "userId query parameter missing", code="user_id_required", user_message="User ID required"
        )

    parsed = _parse_category(category) if category else None
    photos = metadata.list_photos(user_id, parsed)

    return JSONResponse(
        {"photos": [photo.to_dict() for photo in photos]},
        headers={
            "Cache-Control": LISTING_CACHE_CONTROL,
            "Cache-Tag": photo_cache_tag(user_id, parsed.value if parsed else None),
        },
    )


@router.post("/photos")
def create_photo(
    payload: CreatePhotoRequest,
    user: UserInfo = Depends(require_user),
    manager: PhotoManager = Depends(get_photo_manager_for),
):
    category = _parse_category(payload.category)
    record = manager.create_record(
        category,
        payload.image_url,
        storage_path=payload.storage_path,
        title=payload.title,
        description=payload.description,
        tags=payload.tags,
        field_values=payload.fields,
    )
    revalidate_photo_tags(user.user_id, category.value)
    return JSONResponse({"photo": record.to_dict()})


@router.delete("/photos")
def delete_photo(
    photo_id: str | None = Query(default=None, alias="photoId"),
    user: UserInfo = Depends(require_user),
    manager: PhotoManager = Depends(get_photo_manager_for),
):
    if not photo_id:
        raise ValidationError(
            "photoId query parameter missing", code="photo_id_required", user_message="Photo ID required"
        )

    deleted = manager.remove_record(photo_id)
    if deleted is None:
        raise NotFoundError(
            f"Photo {photo_id} not found for user {user.user_id}",
            code="photo_not_found",
            user_message="Photo not found",
        )

    revalidate_photo_tags(user.user_id, deleted.category.value)
    return JSONResponse({"success": True})


@router.post("/photos/revalidate")
def revalidate_photos(payload: RevalidateRequest | None = None, user: UserInfo = Depends(require_user)):
    category = payload.category if payload else None
    tags = revalidate_photo_tags(user.user_id, category)
    logger.debug("photo_tags_revalidated", user_id=user.user_id, tags=tags)
    return JSONResponse({"success": True})
