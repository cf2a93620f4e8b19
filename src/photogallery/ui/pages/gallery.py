"""Gallery page: the owner's editable gallery or a read-only public one."""

import streamlit as st

from ...error_handling import GalleryError
from ...logging_config import get_logger
from ...models.photo import Photo, PhotoCategory
from ...services.permissions import GalleryPermissions, require_permission, resolve_permissions
from ..auth_handlers import get_session_user, require_profile
from ..components.common import render_empty_state, render_guest_banner, render_header
from ..components.gallery import CATEGORY_LABELS, render_category_gallery, render_photo_editor
from ..handlers.gallery import delete_gallery_photo, get_gallery_photos, resolve_gallery_owner, save_photo_changes
from .messages import render_guestbook

logger = get_logger(__name__)


def _owner_actions(user_id: str, permissions: GalleryPermissions):
    def on_save(photo: Photo, **updates: object) -> None:
        try:
            require_permission(permissions, "edit")
            save_photo_changes(user_id, photo, **updates)
        except GalleryError as e:
            st.error(e.user_message)
            return
        st.rerun()

    def on_delete(photo: Photo) -> None:
        try:
            require_permission(permissions, "edit")
            delete_gallery_photo(user_id, photo)
        except GalleryError as e:
            st.error(e.user_message)
            return
        st.rerun()

    def on_select(photo: Photo) -> None:
        render_photo_editor(photo, on_save, on_delete)

    return on_select


def _render_category_tabs(owner_id: str, on_select=None) -> int:
    tabs = st.tabs([CATEGORY_LABELS[category] for category in PhotoCategory])
    total = 0
    for tab, category in zip(tabs, PhotoCategory, strict=True):
        with tab:
            photos = get_gallery_photos(owner_id, category)
            total += len(photos)
            render_category_gallery(category, photos, on_select)
    return total


def render_public_gallery_page(username: str) -> None:
    """Read-only gallery of ``username`` with the guestbook."""
    owner = resolve_gallery_owner(username)
    if owner is None:
        render_empty_state(
            title="Gallery not found", description=f"There is no gallery named '{username}'.", icon="🔍"
        )
        return

    viewer = get_session_user()
    permissions = resolve_permissions(
        viewer.username if viewer else None, owner.username, signed_in=viewer is not None
    )
    logger.info("public_gallery_viewed", gallery=owner.username, is_owner=permissions.is_owner)

    render_header(f"📸 {owner.name}'s Gallery", owner.bio)
    if permissions.is_guest:
        render_guest_banner(owner.name)

    on_select = _owner_actions(owner.id, permissions) if permissions.can_edit else None
    _render_category_tabs(owner.id, on_select)

    st.divider()
    render_guestbook(owner.username, allow_post=not permissions.is_owner)


def render_gallery_page() -> None:
    """The signed-in user's own gallery."""
    user = require_profile()
    if user is None:
        return

    permissions = resolve_permissions(user.username, signed_in=True)
    st.markdown(f"### 🖼️ {user.label}'s gallery")

    total = _render_category_tabs(user.user_id, _owner_actions(user.user_id, permissions))
    if total == 0:
        render_empty_state(
            title="No photos yet",
            description="Your gallery is empty. Upload some photos to get started!",
            icon="📷",
            action_text="Upload photos",
            action_page="upload",
        )
