"""Guestbook: leave and read messages on a gallery."""

import html

import streamlit as st

from ...error_handling import GalleryError
from ...services.guestbook import MAX_MESSAGE_LENGTH, MAX_NAME_LENGTH, get_guestbook_service
from ..auth_handlers import require_profile
from ..components.common import render_empty_state

# Tailwind gradient classes stored with each message, as CSS gradients
GRADIENTS = {
    "from-pink-200 to-rose-200": "linear-gradient(135deg, #fbcfe8, #fecdd3)",
    "from-purple-200 to-pink-200": "linear-gradient(135deg, #e9d5ff, #fbcfe8)",
    "from-blue-200 to-purple-200": "linear-gradient(135deg, #bfdbfe, #e9d5ff)",
    "from-green-200 to-blue-200": "linear-gradient(135deg, #bbf7d0, #bfdbfe)",
    "from-yellow-200 to-orange-200": "linear-gradient(135deg, #fef08a, #fed7aa)",
}


def render_message_form(username: str) -> None:
    with st.form(f"guestbook_{username}", clear_on_submit=True):
        name = st.text_input("Your name", max_chars=MAX_NAME_LENGTH)
        message = st.text_area("Message", max_chars=MAX_MESSAGE_LENGTH)
        submitted = st.form_submit_button("💌 Leave a message", type="primary")

    if submitted:
        try:
            get_guestbook_service().post_message(username, name, message)
        except GalleryError as e:
            st.error(e.user_message)
            return
        st.success("Thank you for your message!")


def render_message_list(username: str) -> None:
    try:
        messages = get_guestbook_service().list_messages(username)
    except GalleryError as e:
        st.error(e.user_message)
        return

    if not messages:
        st.caption("No messages yet.")
        return

    cols = st.columns(2)
    for index, entry in enumerate(messages):
        background = GRADIENTS.get(entry.color, "#f8f9fa")
        with cols[index % 2]:
            st.markdown(
                f"<div style='background: {background}; border-radius: 12px; padding: 1rem; margin-bottom: 1rem;'>"
                f"<p style='margin: 0 0 0.5rem 0;'>{html.escape(entry.message)}</p>"
                f"<small>- {html.escape(entry.name)}, {entry.date}</small></div>",
                unsafe_allow_html=True,
            )


def render_guestbook(username: str, allow_post: bool = True) -> None:
    st.markdown("### 💌 Guestbook")
    if allow_post:
        render_message_form(username)
    render_message_list(username)


def render_messages_page() -> None:
    """The signed-in owner's guestbook."""
    user = require_profile()
    if user is None or user.username is None:
        return

    st.markdown("### 💌 Messages from your visitors")
    try:
        has_messages = bool(get_guestbook_service().list_messages(user.username, limit=1))
    except GalleryError as e:
        st.error(e.user_message)
        return

    if not has_messages:
        render_empty_state(
            title="No messages yet",
            description="Share your gallery so visitors can leave you a note.",
            icon="💌",
            action_text="Get my share link",
            action_page="dashboard",
        )
        return

    render_message_list(user.username)
