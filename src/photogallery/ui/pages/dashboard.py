"""Owner dashboard: photo counts and share links."""

import streamlit as st

from ...models.photo import PhotoCategory
from ...services.share import build_share_links
from ..auth_handlers import require_profile
from ..components.gallery import CATEGORY_LABELS
from ..handlers.gallery import get_category_counts


def render_dashboard_page() -> None:
    user = require_profile()
    if user is None or user.username is None:
        return

    st.markdown(f"### 📊 {user.label}'s dashboard")

    counts = get_category_counts(user.user_id)
    cols = st.columns(len(PhotoCategory) + 1)
    with cols[0]:
        st.metric("All photos", sum(counts.values()))
    for col, category in zip(cols[1:], PhotoCategory, strict=True):
        with col:
            st.metric(CATEGORY_LABELS[category], counts.get(category.value, 0))

    st.divider()
    st.markdown("#### 🔗 Share your gallery")

    links = build_share_links(user.username, user.display_name)
    st.code(links.gallery_url, language=None)
    st.caption(links.text)

    col1, col2, col3 = st.columns(3)
    with col1:
        st.link_button("Facebook", links.facebook, use_container_width=True)
    with col2:
        st.link_button("Twitter", links.twitter, use_container_width=True)
    with col3:
        st.link_button("E-mail", links.email, use_container_width=True)
