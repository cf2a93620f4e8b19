"""
photogallery - Personal photo gallery web application

A web application for curating a personal, shareable photo gallery with features including:
- Category-based galleries (travel, selfie, festival, daily)
- Client image compression and photo upload to Google Cloud Storage
- Metadata management with DuckDB
- Cloud IAP authentication with gallery profiles
- Read-only public galleries with a guestbook for visitors
"""

__version__ = "0.1.0"
__author__ = "photogallery"
__description__ = "Personal photo gallery web application with Streamlit"
