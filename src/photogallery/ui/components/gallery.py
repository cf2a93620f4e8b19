"""Category layouts of a gallery."""

import html
from collections.abc import Callable
from itertools import groupby

import streamlit as st

from ...logging_config import get_logger
from ...models.photo import DailyPhoto, FestivalPhoto, Photo, PhotoCategory, SelfiePhoto, TravelCardType, TravelPhoto

logger = get_logger(__name__)

CATEGORY_LABELS = {
    PhotoCategory.TRAVEL: "✈️ Travel",
    PhotoCategory.SELFIE: "🤳 Selfies",
    PhotoCategory.FESTIVAL: "🎉 Festivals",
    PhotoCategory.DAILY: "☀️ Daily",
}

SEASON_ORDER = ("Spring", "Summer", "Autumn", "Winter")

# Photo action hook: (photo) -> None
PhotoAction = Callable[[Photo], None]


def _photo_card_html(src: str, caption: str, rotation: float = 0.0, scale: float = 1.0, frame: str = "polaroid") -> str:
    padding = "10px 10px 36px" if frame == TravelCardType.POLAROID.value else "6px"
    filter_css = "filter: sepia(0.35) contrast(1.1);" if frame == TravelCardType.FILM.value else ""
    return (
        f"<div style='transform: rotate({rotation:.1f}deg) scale({scale:.2f}); background: white; "
        f"padding: {padding}; box-shadow: 0 4px 12px rgba(0,0,0,0.2); margin: 12px;'>"
        f"<img src='{html.escape(src, quote=True)}' style='width: 100%; {filter_css}'/>"
        f"<div style='text-align: center; font-family: cursive; color: #555;'>{html.escape(caption)}</div>"
        "</div>"
    )


def render_travel_scrapbook(photos: list[TravelPhoto], on_select: PhotoAction | None = None) -> None:
    """Scrapbook: cards ordered by their (y, x) position, each tilted and scaled."""
    ordered = sorted(photos, key=lambda photo: (round(photo.y / 20), photo.x))
    cols_per_row = 3

    for row_start in range(0, len(ordered), cols_per_row):
        cols = st.columns(cols_per_row)
        for col, photo in zip(cols, ordered[row_start : row_start + cols_per_row], strict=False):
            with col:
                st.markdown(
                    _photo_card_html(photo.src, photo.location, photo.rotation, photo.scale, photo.type),
                    unsafe_allow_html=True,
                )
                st.caption(f"📍 {photo.title}")
                if on_select:
                    on_select(photo)


def render_selfie_timeline(photos: list[SelfiePhoto], on_select: PhotoAction | None = None) -> None:
    """Timeline grouped by season, each season as a photo-booth strip."""

    def season_key(photo: SelfiePhoto) -> int:
        return SEASON_ORDER.index(photo.season) if photo.season in SEASON_ORDER else len(SEASON_ORDER)

    for season, group in groupby(sorted(photos, key=season_key), key=lambda photo: photo.season):
        strip = list(group)
        st.markdown(f"#### {season}")
        cols = st.columns(min(len(strip), 4))
        for index, photo in enumerate(strip):
            with cols[index % len(cols)]:
                st.image(photo.src, use_container_width=True)
                st.markdown(f"*{photo.caption}*")
                details = [photo.date, photo.mood]
                if photo.location:
                    details.append(f"📍 {photo.location}")
                st.caption(" · ".join(details))
                if on_select:
                    on_select(photo)


def render_festival_cards(photos: list[FestivalPhoto], on_select: PhotoAction | None = None) -> None:
    cols_per_row = 2

    for row_start in range(0, len(photos), cols_per_row):
        cols = st.columns(cols_per_row)
        for col, photo in zip(cols, photos[row_start : row_start + cols_per_row], strict=False):
            with col, st.container(border=True):
                st.markdown(
                    f"<h4 style='color: {html.escape(photo.color, quote=True)};'>"
                    f"{html.escape(photo.icon)} {html.escape(photo.festival)}</h4>",
                    unsafe_allow_html=True,
                )
                st.image(photo.src, use_container_width=True)
                st.markdown(f"**{photo.title}**")
                if photo.description:
                    st.write(photo.description)
                for memory in photo.memories:
                    st.markdown(f"- {memory}")
                st.caption(photo.date)
                if on_select:
                    on_select(photo)


def render_daily_frame(photos: list[DailyPhoto], on_select: PhotoAction | None = None) -> None:
    """One photo at a time in a frame, stepped with previous/next."""
    if not photos:
        return

    index = st.session_state.get("daily_frame_index", 0) % len(photos)
    photo = photos[index]

    _, center, _ = st.columns([1, 3, 1])
    with center, st.container(border=True):
        st.image(photo.src, use_container_width=True)
        st.markdown(f"**{photo.title}** · {photo.time} · {photo.mood}")
        st.caption(f"{photo.date} · {index + 1} / {len(photos)}")
        if on_select:
            on_select(photo)

    prev_col, _, next_col = st.columns([1, 3, 1])
    with prev_col:
        if st.button("◀ Previous", key="daily_prev", use_container_width=True):
            st.session_state.daily_frame_index = (index - 1) % len(photos)
            st.rerun()
    with next_col:
        if st.button("Next ▶", key="daily_next", use_container_width=True):
            st.session_state.daily_frame_index = (index + 1) % len(photos)
            st.rerun()


CATEGORY_RENDERERS: dict[PhotoCategory, Callable[..., None]] = {
    PhotoCategory.TRAVEL: render_travel_scrapbook,
    PhotoCategory.SELFIE: render_selfie_timeline,
    PhotoCategory.FESTIVAL: render_festival_cards,
    PhotoCategory.DAILY: render_daily_frame,
}


def render_category_gallery(
    category: PhotoCategory, photos: list[Photo], on_select: PhotoAction | None = None
) -> None:
    """Render the photos of one category with that category's layout."""
    if not photos:
        st.caption(f"No {category.value} photos yet.")
        return
    CATEGORY_RENDERERS[category](photos, on_select)


def render_photo_editor(photo: Photo, on_save: Callable[..., None], on_delete: PhotoAction) -> None:
    """Owner controls for one photo: edit its display fields or delete it."""
    with st.popover("✏️ Edit", use_container_width=True):
        with st.form(key=f"edit_{photo.id}"):
            title = st.text_input("Title", value=photo.title)
            description = st.text_area("Description", value=photo.description)
            updates: dict[str, object] = {}

            if isinstance(photo, TravelPhoto):
                updates["location"] = st.text_input("Location", value=photo.location)
                card_types = [card.value for card in TravelCardType]
                updates["type"] = st.selectbox(
                    "Card", card_types, index=card_types.index(photo.type) if photo.type in card_types else 0
                )
            elif isinstance(photo, SelfiePhoto):
                season_index = SEASON_ORDER.index(photo.season) if photo.season in SEASON_ORDER else 0
                updates["season"] = st.selectbox("Season", SEASON_ORDER, index=season_index)
                updates["caption"] = st.text_input("Caption", value=photo.caption)
                updates["mood"] = st.text_input("Mood", value=photo.mood)
            elif isinstance(photo, FestivalPhoto):
                updates["festival"] = st.text_input("Festival", value=photo.festival)
                updates["icon"] = st.text_input("Icon", value=photo.icon)
                memories = st.text_area("Memories (one per line)", value="\n".join(photo.memories))
                updates["memories"] = [line.strip() for line in memories.splitlines() if line.strip()]
            elif isinstance(photo, DailyPhoto):
                updates["time"] = st.text_input("Time", value=photo.time)
                updates["mood"] = st.text_input("Mood", value=photo.mood)

            if st.form_submit_button("Save", type="primary"):
                on_save(photo, title=title, description=description, **updates)

        if st.button("🗑️ Delete photo", key=f"delete_{photo.id}", use_container_width=True):
            on_delete(photo)
