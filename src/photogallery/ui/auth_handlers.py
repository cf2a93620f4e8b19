"""Authentication handlers for the photogallery application."""

import streamlit as st

from ..error_handling import GalleryError
from ..logging_config import get_logger
from ..services.auth import UserInfo, get_auth_service
from .components.common import render_error_message

logger = get_logger(__name__)


def _request_headers() -> dict[str, str]:
    if hasattr(st, "context") and hasattr(st.context, "headers"):
        return dict(st.context.headers)
    return {}


def _store_user(user_info: UserInfo | None, auth_error: str | None = None) -> None:
    st.session_state.authenticated = user_info is not None
    st.session_state.user_info = user_info
    st.session_state.auth_error = auth_error


def authenticate_user() -> bool:
    """
    Authenticate the session from the Cloud IAP headers (or the development user).

    Returns:
        bool: True if a user is signed in
    """
    if st.session_state.get("signed_out"):
        _store_user(None)
        return False

    try:
        user_info = get_auth_service().authenticate_request(_request_headers())
    except GalleryError as e:
        _store_user(None, e.user_message)
        logger.error("authentication_error", error=str(e))
        return False

    if user_info is None:
        _store_user(None, "Cloud IAP authentication required")
        logger.warning("authentication_failed", reason="no_valid_iap_header")
        return False

    _store_user(user_info)
    return True


def get_session_user() -> UserInfo | None:
    """The user signed in to this browser session."""
    return st.session_state.get("user_info")


def handle_logout() -> None:
    get_auth_service().sign_out()

    _store_user(None)
    st.session_state.signed_out = True
    st.session_state.current_page = "home"

    logger.info("user_logout")
    st.rerun()


def handle_sign_in() -> None:
    st.session_state.signed_out = False
    st.rerun()


def require_authentication() -> bool:
    """
    Gate for pages that need a signed-in user.

    Returns:
        bool: True if authenticated, False otherwise (an error is rendered)
    """
    if not st.session_state.get("authenticated"):
        render_error_message(
            error_type="Sign in required",
            message="Please sign in to use this page.",
            details=st.session_state.get("auth_error"),
        )
        if st.button("🏠 Back to home", use_container_width=True):
            st.session_state.current_page = "home"
            st.rerun()
        return False

    return True


def require_profile() -> UserInfo | None:
    """
    Gate for pages that need a registered gallery profile.

    Returns:
        UserInfo | None: The signed-in user with a profile, or None (a prompt is rendered)
    """
    if not require_authentication():
        return None

    user = get_session_user()
    if user is None or not user.has_profile:
        st.info("Create your gallery profile to start curating photos.")
        if st.button("✨ Create my gallery", type="primary", use_container_width=True):
            st.session_state.current_page = "register"
            st.rerun()
        return None

    return user
