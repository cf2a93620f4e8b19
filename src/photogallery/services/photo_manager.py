"""
Photo manager: typed gallery photos on top of the generic photos table.

Each category has its own display fields (see ``models.photo``). ``location``
and ``mood`` are stored in the generic columns of the same name; every other
category field lives in the JSON ``extra`` column.
"""

import math
import random
import time
from dataclasses import fields
from typing import TYPE_CHECKING, Any

from ..error_handling import AuthenticationError, StorageError, ValidationError
from ..logging_config import get_logger, log_user_action
from ..models.photo import PHOTO_TYPES, BasePhoto, Photo, PhotoCategory, PhotoRecord, TravelCardType

if TYPE_CHECKING:
    from .metadata import MetadataService
    from .storage import StorageService

logger = get_logger(__name__)

BASE_FIELDS = {f.name for f in fields(BasePhoto)}
COLUMN_FIELDS = ("location", "mood")
# Typed field name -> generic column for fields that are not category specific
GENERIC_UPDATE_FIELDS = {"title": "title", "description": "description", "src": "image_url", "tags": "tags"}

DEFAULT_DESCRIPTION = "New photo upload"
NUMERIC_FIELDS = frozenset({"rotation", "scale", "x", "y"})
LIST_FIELDS = frozenset({"memories"})
# Fields that may be cleared with None
OPTIONAL_FIELDS = {PhotoCategory.SELFIE: frozenset({"location"})}


def category_fields(category: PhotoCategory) -> list[str]:
    """Display fields specific to one category."""
    return [f.name for f in fields(PHOTO_TYPES[category]) if f.name not in BASE_FIELDS]


def build_category_defaults(category: "PhotoCategory | str", rng: random.Random | None = None) -> dict[str, Any]:
    """
    Display fields for a freshly uploaded photo.

    Travel cards are scattered at a random position with a slight tilt.
    """
    category = PhotoCategory.parse(category)
    rng = rng or random.Random()  # nosec B311

    if category is PhotoCategory.TRAVEL:
        return {
            "location": "New Location",
            "rotation": rng.random() * 20 - 10,
            "scale": 0.9 + rng.random() * 0.2,
            "x": rng.random() * 80,
            "y": rng.random() * 80,
            "type": TravelCardType.POLAROID.value,
        }
    if category is PhotoCategory.SELFIE:
        return {"season": "Spring", "caption": "New selfie moment", "mood": "joyful"}
    if category is PhotoCategory.FESTIVAL:
        return {"festival": "Special Day", "color": "pink", "icon": "🎉", "memories": ["Beautiful moments"]}
    return {"time": "Daily", "mood": "peaceful"}


def record_to_photo(record: PhotoRecord) -> Photo:
    """Overlay the typed shape of the record's category onto a generic row."""
    photo_type = PHOTO_TYPES[record.category]
    known = set(category_fields(record.category))

    values: dict[str, Any] = {key: value for key, value in record.extra.items() if key in known}
    for column in COLUMN_FIELDS:
        column_value = getattr(record, column)
        if column in known and column_value is not None:
            values[column] = column_value

    return photo_type(  # type: ignore[return-value]
        id=record.id,
        src=record.image_url,
        title=record.title,
        description=record.description or "",
        date=record.created_at.date().isoformat(),
        category=record.category,
        **values,
    )


def _coerce_field(category: PhotoCategory, name: str, value: Any) -> Any:
    """Check one category field against the type its layout renders."""
    if value is None and name in OPTIONAL_FIELDS.get(category, ()):
        return None

    if name in NUMERIC_FIELDS:
        if not isinstance(value, bool):
            try:
                number = float(value)
            except (TypeError, ValueError):
                number = None
            if number is not None and math.isfinite(number):
                return number
        expected = "a number"
    elif name in LIST_FIELDS:
        if isinstance(value, list | tuple) and all(isinstance(item, str) for item in value):
            return list(value)
        expected = "a list of strings"
    else:
        if isinstance(value, str):
            return value
        expected = "a string"

    raise ValidationError(
        f"Field '{name}' of category '{category.value}' must be {expected}",
        code="invalid_photo_field",
        user_message=f"Invalid value for {name}",
        details={"category": category.value, "field": name},
    )


def _split_category_values(category: PhotoCategory, values: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split category fields into (generic column values, extra values)."""
    allowed = set(category_fields(category))
    unknown = sorted(set(values) - allowed)
    if unknown:
        raise ValidationError(
            f"Unknown fields for category '{category.value}': {', '.join(unknown)}",
            code="unknown_photo_fields",
            details={"category": category.value, "fields": unknown},
        )

    values = {key: _coerce_field(category, key, value) for key, value in values.items()}

    if category is PhotoCategory.TRAVEL and "type" in values:
        try:
            values = {**values, "type": TravelCardType(values["type"]).value}
        except ValueError as e:
            raise ValidationError(
                f"Invalid travel card type: {values['type']}",
                code="invalid_card_type",
                details={"allowed": [card.value for card in TravelCardType]},
            ) from e

    columns = {key: values[key] for key in COLUMN_FIELDS if key in values}
    extra = {key: value for key, value in values.items() if key not in COLUMN_FIELDS}
    return columns, extra


class PhotoManager:
    """CRUD for the current user's photos, returned as typed gallery photos."""

    def __init__(
        self,
        metadata_service: "MetadataService | None" = None,
        storage_service: "StorageService | None" = None,
        rng: random.Random | None = None,
    ) -> None:
        self._metadata_service = metadata_service
        self._storage_service = storage_service
        self._rng = rng or random.Random()  # nosec B311
        self._current_user_id: str | None = None

    @property
    def metadata(self) -> "MetadataService":
        if self._metadata_service is None:
            from .metadata import get_metadata_service

            self._metadata_service = get_metadata_service()
        return self._metadata_service

    @property
    def storage(self) -> "StorageService":
        if self._storage_service is None:
            from .storage import get_storage_service

            self._storage_service = get_storage_service()
        return self._storage_service

    def set_current_user(self, user_id: str | None) -> None:
        self._current_user_id = user_id

    def get_current_user_id(self) -> str | None:
        return self._current_user_id

    def clear(self) -> None:
        """Forget the current user."""
        self._current_user_id = None

    def _require_user(self) -> str:
        if not self._current_user_id:
            raise AuthenticationError("No user logged in", code="no_user_logged_in")
        return self._current_user_id

    def get_all_photos(self, user_id: str | None = None) -> list[Photo]:
        """
        All photos of a user (default: the current user), newest first.

        Returns an empty list when there is no user.
        """
        owner = user_id or self._current_user_id
        if not owner:
            return []
        return [record_to_photo(record) for record in self.metadata.list_photos(owner)]

    def get_photos_by_category(self, category: "PhotoCategory | str", user_id: str | None = None) -> list[Photo]:
        """
        Photos of one category, newest first.

        Raises:
            ValidationError: If the category is not valid
        """
        parsed = _parse_category(category)
        owner = user_id or self._current_user_id
        if not owner:
            return []
        return [record_to_photo(record) for record in self.metadata.list_photos(owner, parsed)]

    def add_photo(
        self,
        category: "PhotoCategory | str",
        src: str,
        storage_path: str | None = None,
        title: str | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
        **category_values: Any,
    ) -> Photo:
        """
        Save a new photo for the current user.

        Category fields that are not given get the defaults of a new upload.

        Raises:
            AuthenticationError: If no user is logged in
            ValidationError: If the category or a category field is not valid
        """
        record = self.create_record(
            category, src, storage_path, title, description, tags, field_values=category_values
        )
        return record_to_photo(record)

    def create_record(
        self,
        category: "PhotoCategory | str",
        src: str,
        storage_path: str | None = None,
        title: str | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
        field_values: dict[str, Any] | None = None,
    ) -> PhotoRecord:
        """Same as add_photo, taking the category fields as a dict and returning the stored generic row."""
        user_id = self._require_user()
        parsed = _parse_category(category)

        values = {**build_category_defaults(parsed, self._rng), **(field_values or {})}
        columns, extra = _split_category_values(parsed, values)

        record = PhotoRecord.create_new(
            user_id=user_id,
            category=parsed,
            title=(title or "").strip() or f"{parsed.value} Photo {int(time.time() * 1000)}",
            image_url=src,
            description=DEFAULT_DESCRIPTION if description is None else description,
            storage_path=storage_path,
            tags=tags,
            location=columns.get("location"),
            mood=columns.get("mood"),
            extra=extra,
        )
        self.metadata.insert_photo(record)
        log_user_action(user_id, "photo_added", photo_id=record.id, category=parsed.value)
        return record

    def update_photo(self, photo_id: str, **updates: Any) -> Photo | None:
        """
        Update one of the current user's photos.

        Title, description, src and tags update the generic columns; category
        fields are merged into the stored display fields. The category itself
        cannot change.

        Returns:
            Photo | None: The updated photo, or None if the current user has no such photo

        Raises:
            AuthenticationError: If no user is logged in
            ValidationError: If an update names an unknown field or changes the category
        """
        user_id = self._require_user()
        record = self.metadata.get_photo(photo_id, user_id)
        if record is None:
            return None

        updates = {key: value for key, value in updates.items() if key not in ("id", "date")}
        if "category" in updates:
            if _parse_category(updates.pop("category")) is not record.category:
                raise ValidationError(
                    "The category of a photo cannot be changed",
                    code="category_immutable",
                    details={"photo_id": photo_id, "category": record.category.value},
                )

        column_updates = {
            GENERIC_UPDATE_FIELDS[key]: updates.pop(key) for key in list(updates) if key in GENERIC_UPDATE_FIELDS
        }
        columns, extra = _split_category_values(record.category, updates)
        column_updates.update(columns)
        if extra:
            column_updates["extra"] = {**record.extra, **extra}

        updated = self.metadata.update_photo(photo_id, user_id, column_updates)
        return record_to_photo(updated) if updated else None

    def delete_photo(self, photo_id: str) -> bool:
        """
        Delete one of the current user's photos and its stored image.

        Storage removal is best-effort: a failure is logged and the row stays deleted.

        Returns:
            bool: True if the photo existed
        """
        return self.remove_record(photo_id) is not None

    def remove_record(self, photo_id: str) -> PhotoRecord | None:
        """Delete a photo like delete_photo and return the removed row (None if it did not exist)."""
        user_id = self._require_user()
        deleted = self.metadata.delete_photo(photo_id, user_id)
        if deleted is None:
            return None

        if deleted.storage_path:
            try:
                self.storage.delete_file(deleted.storage_path)
            except StorageError as e:
                logger.warning(
                    "photo_file_delete_failed", photo_id=photo_id, storage_path=deleted.storage_path, error=str(e)
                )

        log_user_action(user_id, "photo_removed", photo_id=photo_id)
        return deleted


def _parse_category(category: "PhotoCategory | str") -> PhotoCategory:
    try:
        return PhotoCategory.parse(category)
    except ValueError as e:
        raise ValidationError(str(e), code="invalid_category", details={"category": str(category)}) from e


_photo_manager: PhotoManager | None = None


def get_photo_manager() -> PhotoManager:
    """Get the global photo manager instance."""
    global _photo_manager
    if _photo_manager is None:
        _photo_manager = PhotoManager()
    return _photo_manager
