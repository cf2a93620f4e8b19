"""
Main Streamlit application for photogallery.

Visitors opening ``?gallery=<username>`` see that user's public gallery;
everyone else gets the signed-in owner's pages.
"""

import streamlit as st

from photogallery.config import get_config
from photogallery.error_handling import GalleryError
from photogallery.logging_config import configure_structured_logging, get_logger
from photogallery.ui.auth_handlers import authenticate_user
from photogallery.ui.components.common import render_error_message, render_footer, render_header, render_sidebar
from photogallery.ui.pages.dashboard import render_dashboard_page
from photogallery.ui.pages.gallery import render_gallery_page, render_public_gallery_page
from photogallery.ui.pages.home import render_home_page
from photogallery.ui.pages.messages import render_messages_page
from photogallery.ui.pages.register import render_register_page
from photogallery.ui.pages.upload import render_upload_page

configure_structured_logging()
logger = get_logger(__name__)

PAGES = {
    "home": render_home_page,
    "gallery": render_gallery_page,
    "upload": render_upload_page,
    "messages": render_messages_page,
    "dashboard": render_dashboard_page,
    "register": render_register_page,
}


def initialize_session_state() -> None:
    defaults = {
        "authenticated": False,
        "user_info": None,
        "auth_error": None,
        "current_page": "home",
        "signed_out": False,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def render_main_content() -> None:
    gallery = st.query_params.get("gallery")
    if gallery:
        render_public_gallery_page(gallery)
        return

    current_page = st.session_state.current_page
    page = PAGES.get(current_page)
    if page is None:
        st.warning(f"Page '{current_page}' not found.")
        if st.button("🏠 Back to home", use_container_width=True, type="primary"):
            st.session_state.current_page = "home"
            st.rerun()
        return

    page()


def main() -> None:
    st.set_page_config(
        page_title="Photo Gallery",
        page_icon="📸",
        layout="wide",
        initial_sidebar_state="expanded",
        menu_items={"Get Help": None, "Report a bug": None, "About": "Personal photo gallery"},
    )

    initialize_session_state()

    try:
        authenticate_user()
        logger.info(
            "session_initialized",
            authenticated=st.session_state.authenticated,
            current_page=st.session_state.current_page,
        )

        if not st.query_params.get("gallery"):
            render_header()
        render_sidebar()

        with st.container():
            render_main_content()

        render_footer()

        if get_config().get("DEBUG", False, bool):
            with st.expander("Debug Info"):
                st.write("Session State:", st.session_state)

    except GalleryError as e:
        logger.error("page_error", code=e.code, error=str(e))
        render_error_message("Error", e.user_message, str(e))


if __name__ == "__main__":
    main()
