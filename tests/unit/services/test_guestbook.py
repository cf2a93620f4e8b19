"""
Unit tests for the guestbook service.
"""

import random

import pytest

from photogallery.error_handling import NotFoundError, ValidationError
from photogallery.models.user import UserProfile
from photogallery.services.guestbook import MESSAGE_COLORS, GuestbookService


class TestGuestbookService:
    @pytest.fixture(autouse=True)
    def setup_guestbook(self, metadata_service):
        metadata_service.create_user(UserProfile(id="owner-1", username="hana", email="hana@example.com"))
        self.guestbook = GuestbookService(metadata_service=metadata_service, rng=random.Random(3))

    def test_post_and_list(self):
        """Messages are trimmed, colored and listed newest first."""
        first = self.guestbook.post_message("hana", "  Ken ", " Lovely photos! ")
        second = self.guestbook.post_message("HANA", "Yui", "So pretty")

        assert first.name == "Ken"
        assert first.message == "Lovely photos!"
        assert first.gallery_owner_id == "owner-1"
        assert first.color in MESSAGE_COLORS
        assert [m.id for m in self.guestbook.list_messages("hana")] == [second.id, first.id]
        assert len(self.guestbook.list_messages("hana", limit=1)) == 1

    @pytest.mark.parametrize(
        ("name", "message", "code"),
        [
            ("", "hi", "message_incomplete"),
            ("Ken", "   ", "message_incomplete"),
            ("K" * 101, "hi", "name_too_long"),
            ("Ken", "m" * 1001, "message_too_long"),
        ],
    )
    def test_invalid_messages(self, name, message, code):
        with pytest.raises(ValidationError) as exc_info:
            self.guestbook.post_message("hana", name, message)
        assert exc_info.value.code == code

    def test_unknown_gallery(self):
        with pytest.raises(NotFoundError) as exc_info:
            self.guestbook.post_message("nobody", "Ken", "hi")
        assert exc_info.value.code == "gallery_not_found"

        with pytest.raises(NotFoundError):
            self.guestbook.list_messages("nobody")
