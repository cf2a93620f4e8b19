"""Owner/guest permissions for galleries."""

from dataclasses import dataclass
from typing import Literal

from ..error_handling import AuthorizationError

Permission = Literal["edit", "view"]


@dataclass(frozen=True)
class GalleryPermissions:
    """What the current viewer may do on the gallery being shown."""

    can_edit: bool
    can_view: bool
    is_owner: bool
    is_guest: bool
    gallery_owner: str | None = None


def resolve_permissions(
    viewer_username: str | None, gallery_owner: str | None = None, signed_in: bool | None = None
) -> GalleryPermissions:
    """
    Compare the viewer with the gallery owner.

    Args:
        viewer_username: Username of the signed-in viewer (None for anonymous visitors)
        gallery_owner: Username of the gallery being shown; None means the viewer's own gallery
        signed_in: Whether someone is signed in; defaults to ``viewer_username is not None``.
            A signed-in user without a profile has no username yet.

    Returns:
        GalleryPermissions: Owners may edit, everyone may view
    """
    if signed_in is None:
        signed_in = viewer_username is not None

    if signed_in and gallery_owner is not None:
        is_owner = viewer_username == gallery_owner
    else:
        is_owner = signed_in and gallery_owner is None

    is_guest = not signed_in or (gallery_owner is not None and viewer_username != gallery_owner)

    return GalleryPermissions(
        can_edit=is_owner,
        can_view=True,
        is_owner=is_owner,
        is_guest=is_guest,
        gallery_owner=gallery_owner,
    )


def require_permission(permissions: GalleryPermissions, permission: Permission = "view") -> None:
    """
    Raises:
        AuthorizationError: If the viewer lacks the requested permission
    """
    if permission == "edit" and not permissions.can_edit:
        raise AuthorizationError(
            "Edit permission required",
            code="edit_forbidden",
            user_message="You don't have permission to edit this gallery.",
            details={"gallery_owner": permissions.gallery_owner},
        )
    if permission == "view" and not permissions.can_view:
        raise AuthorizationError(
            "View permission required",
            code="view_forbidden",
            user_message="You don't have permission to view this gallery.",
            details={"gallery_owner": permissions.gallery_owner},
        )
