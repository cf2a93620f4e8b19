"""Guestbook: messages visitors leave on a gallery."""

import random
from typing import TYPE_CHECKING

from ..error_handling import NotFoundError, ValidationError
from ..logging_config import get_logger
from ..models.message import GuestMessage

if TYPE_CHECKING:
    from .metadata import MetadataService

logger = get_logger(__name__)

MESSAGE_COLORS = (
    "from-pink-200 to-rose-200",
    "from-purple-200 to-pink-200",
    "from-blue-200 to-purple-200",
    "from-green-200 to-blue-200",
    "from-yellow-200 to-orange-200",
)

MAX_NAME_LENGTH = 100
MAX_MESSAGE_LENGTH = 1000


class GuestbookService:
    def __init__(self, metadata_service: "MetadataService | None" = None, rng: random.Random | None = None) -> None:
        self._metadata_service = metadata_service
        self._rng = rng or random.Random()  # nosec B311

    @property
    def metadata(self) -> "MetadataService":
        if self._metadata_service is None:
            from .metadata import get_metadata_service

            self._metadata_service = get_metadata_service()
        return self._metadata_service

    def _resolve_owner_id(self, username: str) -> str:
        profile = self.metadata.get_user_by_username(username)
        if profile is None:
            raise NotFoundError(
                f"Gallery not found: {username}",
                code="gallery_not_found",
                user_message="Gallery not found",
                details={"username": username},
            )
        return profile.id

    def post_message(self, username: str, name: str, message: str) -> GuestMessage:
        """
        Leave a message on a gallery.

        Raises:
            ValidationError: If the name or message is blank or too long
            NotFoundError: If the gallery does not exist
        """
        name = (name or "").strip()
        message = (message or "").strip()

        if not name or not message:
            raise ValidationError(
                "Name and message are required",
                code="message_incomplete",
                user_message="Please enter your name and a message.",
            )
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"Name longer than {MAX_NAME_LENGTH} characters",
                code="name_too_long",
                user_message=f"Names can be at most {MAX_NAME_LENGTH} characters.",
            )
        if len(message) > MAX_MESSAGE_LENGTH:
            raise ValidationError(
                f"Message longer than {MAX_MESSAGE_LENGTH} characters",
                code="message_too_long",
                user_message=f"Messages can be at most {MAX_MESSAGE_LENGTH} characters.",
            )

        owner_id = self._resolve_owner_id(username)
        entry = GuestMessage.create_new(
            gallery_owner_id=owner_id, name=name, message=message, color=self._rng.choice(MESSAGE_COLORS)
        )
        self.metadata.add_message(entry)
        logger.info("guest_message_posted", gallery=username, message_id=entry.id)
        return entry

    def list_messages(self, username: str, limit: int | None = None) -> list[GuestMessage]:
        """
        Messages on a gallery, newest first.

        Raises:
            NotFoundError: If the gallery does not exist
        """
        return self.metadata.list_messages(self._resolve_owner_id(username), limit=limit)


_guestbook_service: GuestbookService | None = None


def get_guestbook_service() -> GuestbookService:
    global _guestbook_service
    if _guestbook_service is None:
        _guestbook_service = GuestbookService()
    return _guestbook_service
