"""
Health check page for the Streamlit application.

Cloud Run probes use the API's /health endpoints; this page shows the same
checks in the browser.
"""

from photogallery.health import render_health_page

render_health_page()
