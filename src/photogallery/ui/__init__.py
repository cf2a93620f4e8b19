"""Streamlit user interface of the photo gallery."""
