"""Guestbook message model."""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass
class GuestMessage:
    """A message a visitor left on someone's gallery."""

    id: str
    gallery_owner_id: str
    name: str
    message: str
    color: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def create_new(cls, gallery_owner_id: str, name: str, message: str, color: str) -> "GuestMessage":
        return cls(
            id=str(uuid.uuid4()),
            gallery_owner_id=gallery_owner_id,
            name=name,
            message=message,
            color=color,
            created_at=datetime.now(UTC),
        )

    @property
    def date(self) -> str:
        """Calendar date the message was posted (YYYY-MM-DD)."""
        return self.created_at.date().isoformat()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "gallery_owner_id": self.gallery_owner_id,
            "name": self.name,
            "message": self.message,
            "color": self.color,
            "date": self.date,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GuestMessage":
        created_at = data.get("created_at") or datetime.now(UTC)
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)

        return cls(
            id=str(data["id"]),
            gallery_owner_id=data["gallery_owner_id"],
            name=data["name"],
            message=data["message"],
            color=data["color"],
            created_at=created_at,
        )
