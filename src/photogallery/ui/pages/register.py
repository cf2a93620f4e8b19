"""Gallery profile sign-up page."""

import streamlit as st

from ...error_handling import GalleryError
from ...logging_config import get_logger
from ...services.auth import get_auth_service
from ..auth_handlers import get_session_user, require_authentication

logger = get_logger(__name__)


def render_register_page() -> None:
    if not require_authentication():
        return

    user = get_session_user()
    if user is None:
        return

    if user.has_profile:
        st.success(f"Your gallery is **@{user.username}**.")
        if st.button("🖼️ Go to my gallery", type="primary"):
            st.session_state.current_page = "gallery"
            st.rerun()
        return

    st.markdown("### ✨ Create your gallery")
    st.caption("Your username appears in your gallery's share link and cannot be changed later.")

    with st.form("register_form"):
        username = st.text_input("Username", placeholder="e.g. sakura_travels", max_chars=30)
        display_name = st.text_input("Display name", value=user.name or "")
        submitted = st.form_submit_button("Create gallery", type="primary")

    if not submitted:
        return

    try:
        profile = get_auth_service().sign_up(user, username, display_name)
    except GalleryError as e:
        st.error(e.user_message)
        return

    st.session_state.user_info = user
    logger.info("gallery_registered", user_id=user.user_id, username=profile.username)
    st.session_state.current_page = "gallery"
    st.rerun()
