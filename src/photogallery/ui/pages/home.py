"""Home page for the photogallery application."""

import streamlit as st

from ..auth_handlers import get_session_user
from ..components.common import render_empty_state, render_info_card


def render_home_page() -> None:
    user = get_session_user()

    if user is None:
        render_empty_state(
            title="Welcome to Photo Gallery",
            description="Sign in to curate your own gallery of travel, selfie, festival and daily photos.",
            icon="📸",
        )
        render_info_card(
            "Visiting a gallery?",
            "Open a shared link (it looks like `?gallery=username`) to browse someone's photos "
            "and leave them a message.",
            "💌",
        )
        return

    st.markdown(f"### Hello, {user.label}!")

    if not user.has_profile:
        render_empty_state(
            title="Create your gallery",
            description="Pick a username for your public gallery to get started.",
            icon="✨",
            action_text="Create my gallery",
            action_page="register",
        )
        return

    col1, col2, col3 = st.columns(3)

    with col1:
        if st.button("📤 Upload photos", use_container_width=True, type="primary"):
            st.session_state.current_page = "upload"
            st.rerun()

    with col2:
        if st.button("🖼️ View my gallery", use_container_width=True):
            st.session_state.current_page = "gallery"
            st.rerun()

    with col3:
        if st.button("📊 Dashboard", use_container_width=True):
            st.session_state.current_page = "dashboard"
            st.rerun()
