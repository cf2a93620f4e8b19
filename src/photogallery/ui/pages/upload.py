"""Upload page for the photogallery application."""

import streamlit as st

from ...config import get_max_file_size
from ...logging_config import get_logger
from ...models.photo import PhotoCategory
from ..auth_handlers import require_profile
from ..components.common import format_file_size, render_info_card
from ..components.gallery import CATEGORY_LABELS
from ..handlers.upload import clear_upload_session_state, upload_files, validate_uploaded_files

logger = get_logger(__name__)


def _render_validation_results(valid_files: list[dict], validation_errors: list[dict]) -> None:
    if valid_files:
        st.success(f"{len(valid_files)} file(s) ready to upload")
        for file_info in valid_files:
            st.caption(f"✅ {file_info['filename']} ({format_file_size(file_info['size'])})")
    for error in validation_errors:
        st.error(f"❌ {error['filename']}: {error['error']}")


def _render_last_result() -> None:
    result = st.session_state.get("last_upload_result")
    if result is None:
        return

    if result.success_count:
        st.success(f"🎉 Uploaded {result.success_count} photo(s)")
    if result.errors:
        st.error("Some files failed to upload:\n\n" + "\n\n".join(result.errors))

    if st.button("🖼️ View my gallery", type="primary"):
        clear_upload_session_state()
        st.session_state.current_page = "gallery"
        st.rerun()


def render_upload_page() -> None:
    user = require_profile()
    if user is None:
        return

    st.markdown("### 📤 Upload photos")
    render_info_card(
        "Supported formats",
        f"JPEG, PNG, GIF and WebP up to {format_file_size(get_max_file_size())} each. "
        "Large photos are resized before upload.",
        "📋",
    )

    category = st.selectbox(
        "Category",
        list(PhotoCategory),
        format_func=lambda value: CATEGORY_LABELS[value],
        key="upload_category",
    )
    uploaded_files = st.file_uploader(
        "Drag and drop photos here, or click to browse",
        type=["jpg", "jpeg", "png", "gif", "webp"],
        accept_multiple_files=True,
        key="photo_uploader",
    )

    if not uploaded_files:
        _render_last_result()
        return

    valid_files, validation_errors = validate_uploaded_files(uploaded_files)
    _render_validation_results(valid_files, validation_errors)

    if not valid_files:
        return

    if st.button(f"Upload {len(valid_files)} photo(s)", type="primary", use_container_width=True):
        progress_bar = st.progress(0.0, text="Starting upload...")

        def on_progress(percent: float, text: str) -> None:
            progress_bar.progress(min(percent, 100.0) / 100, text=text)

        with st.spinner("Uploading..."):
            result = upload_files(user, valid_files, category, on_progress)

        progress_bar.progress(1.0, text="Done")
        st.session_state.last_upload_result = result
        logger.info("upload_page_completed", uploaded=result.success_count, failed=result.failure_count)

    _render_last_result()
