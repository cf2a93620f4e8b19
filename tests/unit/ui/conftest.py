"""Configuration for UI unit tests."""

from unittest.mock import MagicMock, patch

import pytest
import streamlit as st


class SessionState(dict):
    """Dictionary with the attribute access of st.session_state."""

    def __getattr__(self, key):
        try:
            return self[key]
        except KeyError as e:
            raise AttributeError(key) from e

    def __setattr__(self, key, value):
        self[key] = value


@pytest.fixture(autouse=True)
def clear_streamlit_caches():
    """Cached loaders must not leak results between tests."""
    st.cache_data.clear()
    yield
    st.cache_data.clear()


@pytest.fixture
def session_state():
    state = SessionState()
    with patch("streamlit.session_state", new=state):
        yield state


@pytest.fixture
def gallery_services(metadata_service, mock_storage):
    """Route the lazily created global services to the test doubles."""
    with (
        patch("photogallery.services.metadata.get_metadata_service", return_value=metadata_service),
        patch("photogallery.ui.handlers.gallery.get_metadata_service", return_value=metadata_service),
        patch("photogallery.services.storage.get_storage_service", return_value=mock_storage),
    ):
        yield MagicMock(metadata=metadata_service, storage=mock_storage)
