"""
Health checks for the photogallery application.

Used by the API (``/health``, ``/health/ready``, ``/health/live``) and by the
Streamlit health page.
"""

import os
import platform
import time
from typing import Any

import duckdb
import streamlit as st

from . import __version__
from .config import get_environment, is_production
from .error_handling import StorageError
from .logging_config import get_logger
from .services.storage import get_storage_service

logger = get_logger(__name__)

APP_START_TIME = time.time()


def check_database_health() -> dict[str, Any]:
    """Check that DuckDB can open a connection and run a query."""
    try:
        conn = duckdb.connect(":memory:")
        conn.execute("SELECT 1")
        conn.close()
        return {"status": "healthy", "message": "Database connection successful", "timestamp": time.time()}
    except duckdb.Error as e:
        logger.error("database_health_check_failed", error=str(e))
        return {"status": "unhealthy", "message": f"Database connection failed: {e}", "timestamp": time.time()}


def check_storage_health() -> dict[str, Any]:
    """Check that the photos bucket is reachable."""
    try:
        service = get_storage_service()
    except StorageError as e:
        logger.error("storage_health_check_failed", error=str(e))
        return {"status": "unhealthy", "message": f"Storage not configured: {e}", "timestamp": time.time()}

    if not service.check_bucket_exists():
        return {
            "status": "unhealthy",
            "message": f"Bucket not accessible: {service.photos_bucket_name}",
            "timestamp": time.time(),
        }

    return {
        "status": "healthy",
        "message": f"Storage connection successful to bucket: {service.photos_bucket_name}",
        "timestamp": time.time(),
        "bucket": service.photos_bucket_name,
    }


def check_environment_health() -> dict[str, Any]:
    """Check that required configuration is present."""
    required_env_vars = ["GOOGLE_CLOUD_PROJECT", "ENVIRONMENT"]
    if is_production():
        required_env_vars.extend(["GCS_PHOTOS_BUCKET", "GCS_DATABASE_BUCKET", "SITE_URL"])

    missing_vars = [var for var in required_env_vars if not os.getenv(var)]
    if missing_vars:
        return {
            "status": "unhealthy",
            "message": f"Missing environment variables: {', '.join(missing_vars)}",
            "timestamp": time.time(),
            "missing_vars": missing_vars,
        }

    return {"status": "healthy", "message": "Environment configuration is valid", "timestamp": time.time()}


def get_application_info() -> dict[str, Any]:
    return {
        "name": "photogallery",
        "version": __version__,
        "environment": get_environment(),
        "project_id": os.getenv("GOOGLE_CLOUD_PROJECT", "unknown"),
        "timestamp": time.time(),
        "uptime": time.time() - APP_START_TIME,
        "python_version": platform.python_version(),
    }


def perform_health_check() -> dict[str, Any]:
    """Run every check and report overall status."""
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "storage": check_storage_health(),
        "environment": check_environment_health(),
    }
    unhealthy_services = [name for name, result in checks.items() if result["status"] != "healthy"]

    health_response: dict[str, Any] = {
        "status": "unhealthy" if unhealthy_services else "healthy",
        "timestamp": time.time(),
        "duration_ms": round((time.time() - start_time) * 1000, 2),
        "application": get_application_info(),
        "checks": checks,
    }
    if unhealthy_services:
        health_response["unhealthy_services"] = unhealthy_services

    logger.info(
        "health_check_completed",
        status=health_response["status"],
        duration_ms=health_response["duration_ms"],
        unhealthy_services=unhealthy_services,
    )
    return health_response


def check_readiness() -> dict[str, Any]:
    """Readiness check for Cloud Run. Storage is skipped outside production."""
    checks = {
        "database": check_database_health(),
        "environment": check_environment_health(),
    }
    if is_production():
        checks["storage"] = check_storage_health()

    is_ready = all(check["status"] == "healthy" for check in checks.values())
    return {"status": "ready" if is_ready else "not_ready", "timestamp": time.time(), "checks": checks}


def check_liveness() -> dict[str, Any]:
    return {"status": "alive", "timestamp": time.time(), "uptime": time.time() - APP_START_TIME}


def render_health_page() -> None:
    """Render the health check results in Streamlit."""
    st.title("🏥 Health Check")

    with st.spinner("Performing health check..."):
        health_data = perform_health_check()

    if health_data["status"] == "healthy":
        st.success(f"Application is healthy (checked in {health_data['duration_ms']}ms)")
    else:
        st.error(f"Application is unhealthy (checked in {health_data['duration_ms']}ms)")
        st.warning(f"Unhealthy services: {', '.join(health_data['unhealthy_services'])}")

    app_info = health_data["application"]
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Name", app_info["name"])
    with col2:
        st.metric("Version", app_info["version"])
    with col3:
        st.metric("Environment", app_info["environment"])
    with col4:
        st.metric("Uptime", f"{app_info['uptime']:.1f}s")

    for service, check_result in health_data["checks"].items():
        with st.expander(f"{service.title()} Service", expanded=check_result["status"] != "healthy"):
            if check_result["status"] == "healthy":
                st.success(check_result["message"])
            else:
                st.error(check_result["message"])
            st.json(check_result)
