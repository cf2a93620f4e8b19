"""
Unit tests for the photo manager.
"""

import random
from datetime import UTC, datetime

import pytest

from photogallery.error_handling import AuthenticationError, StorageError, ValidationError
from photogallery.models.photo import (
    DailyPhoto,
    FestivalPhoto,
    PhotoCategory,
    PhotoRecord,
    SelfiePhoto,
    TravelPhoto,
)
from photogallery.services.photo_manager import (
    PhotoManager,
    build_category_defaults,
    category_fields,
    record_to_photo,
)

SRC = "https://storage.googleapis.com/test-photos-bucket/user-1/daily/a.jpg"


class TestCategoryHelpers:
    def test_category_fields(self):
        assert category_fields(PhotoCategory.TRAVEL) == ["location", "rotation", "scale", "x", "y", "type"]
        assert category_fields(PhotoCategory.DAILY) == ["time", "mood"]

    def test_travel_defaults_are_scattered(self):
        """Travel cards get a random position, tilt and scale within bounds."""
        rng = random.Random(7)
        for _ in range(50):
            defaults = build_category_defaults("travel", rng)
            assert -10 <= defaults["rotation"] <= 10
            assert 0.9 <= defaults["scale"] <= 1.1
            assert 0 <= defaults["x"] <= 80
            assert 0 <= defaults["y"] <= 80
            assert defaults["type"] == "polaroid"

    def test_fixed_defaults(self):
        assert build_category_defaults("selfie") == {
            "season": "Spring",
            "caption": "New selfie moment",
            "mood": "joyful",
        }
        assert build_category_defaults("daily") == {"time": "Daily", "mood": "peaceful"}
        assert build_category_defaults("festival")["memories"] == ["Beautiful moments"]

    def test_record_to_photo(self):
        """Generic columns and extra values are overlaid onto the typed shape."""
        record = PhotoRecord(
            id="p1",
            user_id="u",
            category=PhotoCategory.SELFIE,
            title="Me",
            image_url=SRC,
            location="Osaka",
            mood="happy",
            extra={"season": "Autumn", "stale": "ignored"},
            created_at=datetime(2024, 10, 3, 23, 0, tzinfo=UTC),
        )

        photo = record_to_photo(record)

        assert isinstance(photo, SelfiePhoto)
        assert photo.src == SRC
        assert photo.description == ""
        assert photo.date == "2024-10-03"
        assert photo.season == "Autumn"
        assert photo.location == "Osaka"
        assert photo.mood == "happy"
        assert photo.caption == "New selfie moment"


class TestPhotoManager:
    """CRUD against a temporary database."""

    @pytest.fixture(autouse=True)
    def setup_manager(self, metadata_service, mock_storage):
        self.metadata = metadata_service
        self.storage = mock_storage
        self.manager = PhotoManager(
            metadata_service=metadata_service, storage_service=mock_storage, rng=random.Random(1)
        )
        self.manager.set_current_user("user-1")

    def test_requires_user(self):
        self.manager.clear()

        with pytest.raises(AuthenticationError) as exc_info:
            self.manager.add_photo("daily", SRC)
        assert exc_info.value.code == "no_user_logged_in"
        assert self.manager.get_all_photos() == []

    def test_add_photo_with_defaults(self):
        """Missing fields get the defaults of a new upload."""
        photo = self.manager.add_photo("daily", SRC, storage_path="user-1/daily/a.jpg")

        assert isinstance(photo, DailyPhoto)
        assert photo.title.startswith("daily Photo ")
        assert photo.description == "New photo upload"
        assert photo.mood == "peaceful"
        stored = self.metadata.get_photo(photo.id, "user-1")
        assert stored.storage_path == "user-1/daily/a.jpg"
        assert stored.mood == "peaceful"
        assert stored.extra == {"time": "Daily"}

    def test_add_travel_photo(self):
        photo = self.manager.add_photo("travel", SRC, title="Kyoto", location="Kyoto", type="postcard")

        assert isinstance(photo, TravelPhoto)
        assert photo.title == "Kyoto"
        assert photo.location == "Kyoto"
        assert photo.type == "postcard"

    def test_add_photo_invalid_card_type(self):
        with pytest.raises(ValidationError) as exc_info:
            self.manager.add_photo("travel", SRC, type="slide")
        assert exc_info.value.code == "invalid_card_type"

    def test_add_photo_unknown_field(self):
        with pytest.raises(ValidationError) as exc_info:
            self.manager.add_photo("daily", SRC, festival="Tanabata")
        assert exc_info.value.code == "unknown_photo_fields"
        assert exc_info.value.details["fields"] == ["festival"]

    def test_add_photo_numeric_fields_are_floats(self):
        photo = self.manager.add_photo("travel", SRC, rotation=5, scale="1.05", x=10, y=20.5)

        assert photo.rotation == 5.0
        assert isinstance(photo.rotation, float)
        assert photo.scale == 1.05
        assert self.metadata.get_photo(photo.id).extra["x"] == 10.0

    @pytest.mark.parametrize(
        "category,values",
        [
            ("travel", {"rotation": "tilted"}),
            ("travel", {"x": True}),
            ("travel", {"scale": float("nan")}),
            ("festival", {"memories": "Lanterns"}),
            ("festival", {"memories": ["Lanterns", 3]}),
            ("daily", {"mood": 7}),
            ("selfie", {"season": None}),
        ],
    )
    def test_add_photo_rejects_wrongly_typed_fields(self, category, values):
        """Values the gallery layouts cannot render are rejected before anything is stored."""
        with pytest.raises(ValidationError) as exc_info:
            self.manager.add_photo(category, SRC, **values)

        assert exc_info.value.code == "invalid_photo_field"
        assert exc_info.value.details["field"] == next(iter(values))
        assert self.manager.get_all_photos() == []

    def test_selfie_location_may_be_cleared(self):
        photo = self.manager.add_photo("selfie", SRC, location="Osaka")

        updated = self.manager.update_photo(photo.id, location=None)

        assert updated.location is None

    def test_update_photo_rejects_wrongly_typed_field(self):
        photo = self.manager.add_photo("travel", SRC)

        with pytest.raises(ValidationError) as exc_info:
            self.manager.update_photo(photo.id, rotation="tilted")

        assert exc_info.value.code == "invalid_photo_field"
        assert isinstance(self.manager.get_all_photos()[0].rotation, float)

    def test_add_photo_invalid_category(self):
        with pytest.raises(ValidationError) as exc_info:
            self.manager.add_photo("food", SRC)
        assert exc_info.value.code == "invalid_category"

    def test_get_photos_by_category(self):
        self.manager.add_photo("daily", SRC)
        self.manager.add_photo("festival", SRC, memories=["Lanterns"])

        festival = self.manager.get_photos_by_category("festival")

        assert len(festival) == 1
        assert isinstance(festival[0], FestivalPhoto)
        assert festival[0].memories == ["Lanterns"]
        assert len(self.manager.get_all_photos()) == 2
        assert self.manager.get_photos_by_category("festival", user_id="user-2") == []

    def test_update_photo(self):
        photo = self.manager.add_photo("festival", SRC)

        updated = self.manager.update_photo(photo.id, title="Obon", color="gold", date="ignored")

        assert updated.title == "Obon"
        assert updated.color == "gold"
        assert updated.icon == "🎉"

    def test_update_photo_category_is_immutable(self):
        photo = self.manager.add_photo("daily", SRC)

        assert self.manager.update_photo(photo.id, category="daily", mood="calm").mood == "calm"
        with pytest.raises(ValidationError) as exc_info:
            self.manager.update_photo(photo.id, category="travel")
        assert exc_info.value.code == "category_immutable"

    def test_update_photo_of_other_user(self):
        photo = self.manager.add_photo("daily", SRC)
        self.manager.set_current_user("user-2")

        assert self.manager.update_photo(photo.id, title="x") is None

    def test_delete_photo_removes_stored_file(self):
        photo = self.manager.add_photo("daily", SRC, storage_path="user-1/daily/a.jpg")

        assert self.manager.delete_photo(photo.id) is True
        self.storage.delete_file.assert_called_once_with("user-1/daily/a.jpg")
        assert self.manager.delete_photo(photo.id) is False

    def test_delete_photo_storage_failure_is_tolerated(self):
        """The row stays deleted when the image cannot be removed."""
        photo = self.manager.add_photo("daily", SRC, storage_path="user-1/daily/a.jpg")
        self.storage.delete_file.side_effect = StorageError("boom")

        removed = self.manager.remove_record(photo.id)

        assert removed.id == photo.id
        assert self.metadata.get_photo(photo.id) is None
