"""FastAPI dependencies: services and the calling user."""

from fastapi import Depends, Request

from ..error_handling import AuthenticationError
from ..services.auth import GalleryAuthService, UserInfo, get_auth_service
from ..services.guestbook import GuestbookService, get_guestbook_service
from ..services.metadata import MetadataService, get_metadata_service
from ..services.photo_manager import PhotoManager
from ..services.storage import StorageService, get_storage_service


def get_gallery_auth() -> GalleryAuthService:
    return get_auth_service()


def get_metadata() -> MetadataService:
    return get_metadata_service()


def get_storage() -> StorageService:
    return get_storage_service()


def get_guestbook() -> GuestbookService:
    return get_guestbook_service()


def current_user(request: Request, auth: GalleryAuthService = Depends(get_gallery_auth)) -> UserInfo | None:
    """Identity of the caller, or None for anonymous requests."""
    return auth.identify(dict(request.headers))


def require_user(user: UserInfo | None = Depends(current_user)) -> UserInfo:
    if user is None:
        raise AuthenticationError("Request without identity", code="unauthorized", user_message="Unauthorized")
    return user


def get_photo_manager_for(
    user: UserInfo = Depends(require_user),
    metadata: MetadataService = Depends(get_metadata),
    storage: StorageService = Depends(get_storage),
) -> PhotoManager:
    """A photo manager bound to the calling user for the duration of the request."""
    manager = PhotoManager(metadata_service=metadata, storage_service=storage)
    manager.set_current_user(user.user_id)
    return manager


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "anonymous"
