"""Tests for photo, profile and message models."""

from datetime import UTC, datetime

import pytest

from photogallery.models.message import GuestMessage
from photogallery.models.photo import (
    PHOTO_TYPES,
    FestivalPhoto,
    PhotoCategory,
    PhotoRecord,
    TravelPhoto,
)
from photogallery.models.user import UserProfile


class TestPhotoCategory:
    def test_parse_is_case_insensitive(self):
        assert PhotoCategory.parse(" Travel ") is PhotoCategory.TRAVEL
        assert PhotoCategory.parse(PhotoCategory.DAILY) is PhotoCategory.DAILY

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError, match="Invalid category 'food'"):
            PhotoCategory.parse("food")

    def test_values(self):
        assert PhotoCategory.values() == ["travel", "selfie", "festival", "daily"]


class TestPhotoRecord:
    def test_create_new(self):
        record = PhotoRecord.create_new(
            user_id="user-1",
            category="selfie",
            title="Beach",
            image_url="https://example.com/a.jpg",
            tags=["sea"],
            extra={"season": "Summer"},
        )

        assert record.id
        assert record.category is PhotoCategory.SELFIE
        assert record.tags == ["sea"]
        assert record.extra == {"season": "Summer"}
        assert record.created_at.tzinfo is UTC
        assert record.created_at == record.updated_at
        assert record.validate()

    def test_create_new_invalid_category(self):
        with pytest.raises(ValueError):
            PhotoRecord.create_new(user_id="u", category="food", title="t", image_url="x")

    def test_from_dict_treats_naive_timestamps_as_utc(self):
        record = PhotoRecord.from_dict(
            {
                "id": "p1",
                "user_id": "u1",
                "category": "daily",
                "title": "Morning",
                "image_url": "https://example.com/m.jpg",
                "created_at": datetime(2024, 5, 1, 8, 30),
                "updated_at": "2024-05-01T09:00:00Z",
            }
        )

        assert record.created_at == datetime(2024, 5, 1, 8, 30, tzinfo=UTC)
        assert record.updated_at == datetime(2024, 5, 1, 9, 0, tzinfo=UTC)
        assert record.tags == []
        assert record.extra == {}

    def test_to_dict_uses_category_value(self):
        record = PhotoRecord.create_new(user_id="u", category="festival", title="t", image_url="x")

        data = record.to_dict()

        assert data["category"] == "festival"
        assert data["created_at"] == record.created_at.isoformat()

    def test_validate_requires_title_and_url(self):
        record = PhotoRecord.create_new(user_id="u", category="daily", title="", image_url="x")
        assert not record.validate()


class TestTypedPhotos:
    def test_photo_types_cover_every_category(self):
        assert set(PHOTO_TYPES) == set(PhotoCategory)

    def test_to_dict(self):
        photo = TravelPhoto(
            id="p1",
            src="https://example.com/p.jpg",
            title="Kyoto",
            description="",
            date="2024-04-01",
            category=PhotoCategory.TRAVEL,
            rotation=-3.5,
        )

        data = photo.to_dict()

        assert data["category"] == "travel"
        assert data["rotation"] == -3.5
        assert data["type"] == "polaroid"

    def test_festival_memories_are_not_shared(self):
        common = {"src": "s", "title": "t", "description": "", "date": "2024-01-01", "category": PhotoCategory.FESTIVAL}
        first = FestivalPhoto(id="a", **common)
        second = FestivalPhoto(id="b", **common)

        first.memories.append("Fireworks")

        assert second.memories == ["Beautiful moments"]


class TestUserProfileAndMessage:
    def test_profile_name_falls_back_to_username(self):
        assert UserProfile(id="u", username="sakura", email="s@example.com").name == "sakura"
        assert UserProfile(id="u", username="sakura", email="s@example.com", display_name="Sakura").name == "Sakura"

    def test_message_from_dict(self):
        message = GuestMessage.from_dict(
            {
                "id": "m1",
                "gallery_owner_id": "u1",
                "name": "Ken",
                "message": "Lovely!",
                "color": "from-pink-200 to-rose-200",
                "created_at": datetime(2024, 6, 1, 12, 0),
            }
        )

        assert message.created_at.tzinfo is UTC
        assert message.date == "2024-06-01"
        assert message.to_dict()["date"] == "2024-06-01"
