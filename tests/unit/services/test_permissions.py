"""
Unit tests for gallery permissions.
"""

import pytest

from photogallery.error_handling import AuthorizationError
from photogallery.services.permissions import resolve_permissions, require_permission


class TestResolvePermissions:
    def test_owner_viewing_own_gallery(self):
        permissions = resolve_permissions("hana", "hana")

        assert permissions.can_edit
        assert permissions.is_owner
        assert not permissions.is_guest

    def test_signed_in_user_without_explicit_owner(self):
        """No gallery owner means the viewer's own gallery."""
        permissions = resolve_permissions("hana")

        assert permissions.is_owner
        assert permissions.can_edit

    def test_other_users_gallery(self):
        permissions = resolve_permissions("yuki", "hana")

        assert not permissions.can_edit
        assert permissions.can_view
        assert permissions.is_guest

    def test_anonymous_visitor(self):
        permissions = resolve_permissions(None, "hana")

        assert not permissions.can_edit
        assert permissions.can_view
        assert permissions.is_guest
        assert permissions.gallery_owner == "hana"

    def test_signed_in_without_profile(self):
        """A signed-in user with no username is a guest on someone else's gallery."""
        permissions = resolve_permissions(None, "hana", signed_in=True)

        assert not permissions.is_owner
        assert permissions.is_guest


class TestRequirePermission:
    def test_edit_allowed_for_owner(self):
        require_permission(resolve_permissions("hana", "hana"), "edit")

    def test_edit_denied_for_guest(self):
        with pytest.raises(AuthorizationError) as exc_info:
            require_permission(resolve_permissions(None, "hana"), "edit")
        assert exc_info.value.code == "edit_forbidden"
        assert exc_info.value.http_status == 403

    def test_view_allowed_for_everyone(self):
        require_permission(resolve_permissions(None, "hana"))
