"""
Photo models for the photogallery application.

All photos live in one generic ``photos`` table (PhotoRecord). The gallery
layouts work with four typed shapes, one per category, each carrying the
display metadata its layout needs.
"""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class PhotoCategory(str, Enum):
    """The four fixed photo classifications."""

    TRAVEL = "travel"
    SELFIE = "selfie"
    FESTIVAL = "festival"
    DAILY = "daily"

    @classmethod
    def values(cls) -> list[str]:
        return [category.value for category in cls]

    @classmethod
    def parse(cls, value: "str | PhotoCategory") -> "PhotoCategory":
        """
        Parse a category name.

        Raises:
            ValueError: If the value is not one of the four categories
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid category '{value}'. Expected one of: {', '.join(cls.values())}") from None


class TravelCardType(str, Enum):
    POLAROID = "polaroid"
    POSTCARD = "postcard"
    FILM = "film"


@dataclass
class PhotoRecord:
    """
    A row of the generic photos table.

    Category specific display fields are kept in ``extra`` so that one table
    can hold every category.
    """

    id: str
    user_id: str
    category: PhotoCategory
    title: str
    image_url: str
    description: str | None = None
    storage_path: str | None = None
    tags: list[str] = field(default_factory=list)
    location: str | None = None
    mood: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def create_new(
        cls,
        user_id: str,
        category: "PhotoCategory | str",
        title: str,
        image_url: str,
        description: str | None = None,
        storage_path: str | None = None,
        tags: list[str] | None = None,
        location: str | None = None,
        mood: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> "PhotoRecord":
        """
        Create a new record with a generated ID and current timestamps.

        Raises:
            ValueError: If the category is not valid
        """
        now = datetime.now(UTC)
        return cls(
            id=str(uuid.uuid4()),
            user_id=user_id,
            category=PhotoCategory.parse(category),
            title=title,
            image_url=image_url,
            description=description,
            storage_path=storage_path,
            tags=list(tags or []),
            location=location,
            mood=mood,
            extra=dict(extra or {}),
            created_at=now,
            updated_at=now,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON friendly dictionary (API responses, database rows)."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "category": self.category.value,
            "title": self.title,
            "description": self.description,
            "image_url": self.image_url,
            "storage_path": self.storage_path,
            "tags": list(self.tags),
            "location": self.location,
            "mood": self.mood,
            "extra": dict(self.extra),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PhotoRecord":
        """
        Create a record from a dictionary (e.g., a database row).

        Timestamps may be datetimes or ISO strings; naive datetimes are treated as UTC.
        """
        return cls(
            id=str(data["id"]),
            user_id=data["user_id"],
            category=PhotoCategory.parse(data["category"]),
            title=data["title"],
            image_url=data["image_url"],
            description=data.get("description"),
            storage_path=data.get("storage_path"),
            tags=list(data.get("tags") or []),
            location=data.get("location"),
            mood=data.get("mood"),
            extra=dict(data.get("extra") or {}),
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )

    def validate(self) -> bool:
        if not self.id or not self.user_id or not self.title or not self.image_url:
            return False
        return isinstance(self.category, PhotoCategory)


def _parse_timestamp(value: Any) -> datetime:
    if value is None:
        return datetime.now(UTC)
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


@dataclass
class BasePhoto:
    """Fields every gallery layout renders."""

    id: str
    src: str
    title: str
    description: str
    date: str
    category: PhotoCategory

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["category"] = self.category.value
        return data


@dataclass
class TravelPhoto(BasePhoto):
    """Scrapbook item: placed at (x, y) percent with a tilt and scale."""

    location: str = "New Location"
    rotation: float = 0.0
    scale: float = 1.0
    x: float = 0.0
    y: float = 0.0
    type: str = TravelCardType.POLAROID.value


@dataclass
class SelfiePhoto(BasePhoto):
    season: str = "Spring"
    caption: str = "New selfie moment"
    mood: str = "joyful"
    location: str | None = None


@dataclass
class FestivalPhoto(BasePhoto):
    festival: str = "Special Day"
    color: str = "pink"
    icon: str = "🎉"
    memories: list[str] = field(default_factory=lambda: ["Beautiful moments"])


@dataclass
class DailyPhoto(BasePhoto):
    time: str = "Daily"
    mood: str = "peaceful"


Photo = TravelPhoto | SelfiePhoto | FestivalPhoto | DailyPhoto

PHOTO_TYPES: dict[PhotoCategory, type[BasePhoto]] = {
    PhotoCategory.TRAVEL: TravelPhoto,
    PhotoCategory.SELFIE: SelfiePhoto,
    PhotoCategory.FESTIVAL: FestivalPhoto,
    PhotoCategory.DAILY: DailyPhoto,
}
