"""Reusable UI components for the photogallery application."""

import html

import streamlit as st

from ...config import is_development
from ...logging_config import get_logger

logger = get_logger(__name__)

OWNER_PAGES = {
    "🏠 Home": "home",
    "🖼️ My Gallery": "gallery",
    "📤 Upload": "upload",
    "💌 Messages": "messages",
    "📊 Dashboard": "dashboard",
}


def render_empty_state(
    title: str,
    description: str,
    icon: str = "📭",
    action_text: str | None = None,
    action_page: str | None = None,
) -> None:
    """
    Render an empty state message with an optional navigation button.

    Args:
        title: Main title for the empty state
        description: Description text
        icon: Emoji icon to display
        action_text: Text for action button (optional)
        action_page: Page to navigate to when action button is clicked (optional)
    """
    _, col, _ = st.columns([1, 2, 1])

    with col:
        st.markdown(
            f"<div style='text-align: center; font-size: 4rem;'>{html.escape(icon)}</div>", unsafe_allow_html=True
        )
        st.markdown(f"<h3 style='text-align: center;'>{html.escape(title)}</h3>", unsafe_allow_html=True)
        st.markdown(
            f"<p style='text-align: center; color: #888;'>{html.escape(description)}</p>", unsafe_allow_html=True
        )

        if action_text and action_page:
            if st.button(action_text, use_container_width=True, type="primary", key=f"empty_{action_page}"):
                st.session_state.current_page = action_page
                st.rerun()


def render_error_message(error_type: str, message: str, details: str | None = None) -> None:
    st.error(f"**{error_type}:** {message}")

    if details:
        with st.expander("🔍 Details"):
            st.code(details)


def render_info_card(title: str, content: str, icon: str = "ℹ️") -> None:
    with st.container(border=True):
        st.markdown(f"#### {icon} {title}")
        st.markdown(content)


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Returns:
        str: Formatted file size (e.g., "1.5 MB")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"


def render_header(title: str = "📸 Photo Gallery", subtitle: str | None = None) -> None:
    st.markdown(f"# {title}")
    if subtitle:
        st.caption(subtitle)
    st.divider()


def render_guest_banner(owner_label: str) -> None:
    """Banner shown to visitors of someone else's gallery."""
    st.info(f"👀 You are visiting **{owner_label}**'s gallery as a guest. Photos are read-only.")


def render_sidebar() -> None:
    """Navigation, signed-in user and sign in/out controls."""
    from ..auth_handlers import get_session_user, handle_logout, handle_sign_in

    with st.sidebar:
        st.markdown("### 📸 Photo Gallery")
        st.divider()

        current_page = st.session_state.current_page
        user = get_session_user()

        if user is not None:
            st.subheader("Navigation")
            for page_name, page_key in OWNER_PAGES.items():
                if st.button(
                    page_name,
                    key=f"nav_{page_key}",
                    use_container_width=True,
                    type="primary" if page_key == current_page else "secondary",
                ):
                    logger.info("page_navigation", from_page=current_page, to_page=page_key)
                    st.session_state.current_page = page_key
                    st.query_params.clear()
                    st.rerun()

            st.divider()
            st.markdown(f"👤 **{user.label}**")
            st.caption(user.email)
            if user.username:
                st.caption(f"@{user.username}")

            if st.button("🚪 Sign out", use_container_width=True):
                handle_logout()
        else:
            st.subheader("🔐 Sign in")
            st.info("Sign in to create and curate your own gallery.")
            if st.session_state.get("signed_out") and st.button("Sign in", use_container_width=True):
                handle_sign_in()
            if st.session_state.get("auth_error") and is_development():
                st.error(st.session_state.auth_error)


def render_footer() -> None:
    from ... import __version__

    st.divider()
    st.markdown(
        "<div style='text-align: center; color: #666; font-size: 0.8em;'>"
        f"<strong>photogallery v{__version__}</strong></div>",
        unsafe_allow_html=True,
    )
