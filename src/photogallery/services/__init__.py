"""
Services module for the photogallery application.

This module contains the service classes that hold the business logic:
- GalleryAuthService: Cloud IAP identity and gallery sign-up
- StorageService: Google Cloud Storage operations
- ImageProcessor: Validation, compression and previews
- MetadataService: DuckDB database of profiles, photos and messages
- PhotoManager / PhotoUploadManager: typed photo CRUD and the upload pipeline
"""

from .auth import GalleryAuthService, UserInfo, get_auth_service
from .image_processor import ImageProcessor, get_image_processor
from .photo_manager import PhotoManager, get_photo_manager
from .storage import StorageService, get_storage_service
from .upload_manager import PhotoUploadManager, UploadOptions, UploadProgress, UploadResult, get_upload_manager

__all__ = [
    "GalleryAuthService",
    "ImageProcessor",
    "PhotoManager",
    "PhotoUploadManager",
    "StorageService",
    "UploadOptions",
    "UploadProgress",
    "UploadResult",
    "UserInfo",
    "get_auth_service",
    "get_image_processor",
    "get_photo_manager",
    "get_storage_service",
    "get_upload_manager",
]
