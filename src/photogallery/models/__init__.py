"""
Models module for the photogallery application.

This module contains data models and schemas:
- PhotoRecord: generic row of the photos table
- TravelPhoto, SelfiePhoto, FestivalPhoto, DailyPhoto: typed gallery shapes
- UserProfile and GuestMessage
- DatabaseManager: Database connection and schema management
"""

from .database import DatabaseManager, create_database, get_database_manager
from .message import GuestMessage
from .photo import (
    PHOTO_TYPES,
    BasePhoto,
    DailyPhoto,
    FestivalPhoto,
    Photo,
    PhotoCategory,
    PhotoRecord,
    SelfiePhoto,
    TravelCardType,
    TravelPhoto,
)
from .schema import get_schema_statements, validate_schema_compatibility
from .user import UserProfile

__all__ = [
    "PHOTO_TYPES",
    "BasePhoto",
    "DailyPhoto",
    "DatabaseManager",
    "FestivalPhoto",
    "GuestMessage",
    "Photo",
    "PhotoCategory",
    "PhotoRecord",
    "SelfiePhoto",
    "TravelCardType",
    "TravelPhoto",
    "UserProfile",
    "create_database",
    "get_database_manager",
    "get_schema_statements",
    "validate_schema_compatibility",
]
