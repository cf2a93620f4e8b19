"""Configuration management for the photogallery application.

Values come from environment variables first and Streamlit secrets as a
fallback, so the same settings work for the Streamlit UI, the HTTP API and
the command line tools.
"""

import os
from typing import Any

try:
    import streamlit as st

    STREAMLIT_AVAILABLE = True
except ImportError:
    STREAMLIT_AVAILABLE = False

from .logging_config import get_logger

logger = get_logger(__name__)


class Config:
    """Centralized configuration management using environment variables."""

    def __init__(self):
        self._cache = {}

    def get(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """Get configuration value from environment variables or Streamlit secrets.

        Args:
            key: Configuration key
            default: Default value if not found
            cast_type: Type to cast the value to (str, int, bool, float)

        Returns:
            Configuration value cast to the specified type
        """
        cache_key = f"{key}:{cast_type.__name__}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        value = os.getenv(key)

        if value is None and STREAMLIT_AVAILABLE:
            try:
                value = st.secrets.get(key)
            except Exception:  # nosec B110
                # No secrets file outside a Streamlit run
                pass

        if value is None:
            value = default

        if value is not None:
            try:
                if cast_type is bool:
                    if isinstance(value, str):
                        value = value.lower() in ("true", "1", "yes", "on")  # type: ignore[assignment]
                    else:
                        value = bool(value)  # type: ignore[assignment]
                elif cast_type is not str:
                    value = cast_type(value)
            except (ValueError, TypeError) as e:
                logger.warning("config_cast_failed", key=key, cast_type=cast_type.__name__, error=str(e))
                value = default

        self._cache[cache_key] = value
        return value

    def get_required(self, key: str, cast_type: type = str) -> Any:
        """Get required configuration value.

        Raises:
            ValueError: If the required configuration is not found
        """
        value = self.get(key, cast_type=cast_type)
        if value is None:
            raise ValueError(f"Required configuration '{key}' not found")
        return value

    def is_development(self) -> bool:
        """Check if running in development mode."""
        environment = self.get("ENVIRONMENT", "development").lower()
        return environment in ["development", "dev", "local", "test"]

    def is_production(self) -> bool:
        """Check if running in production mode."""
        environment = self.get("ENVIRONMENT", "development").lower()
        return environment in ["production", "prod"]

    def clear_cache(self):
        """Clear configuration cache."""
        self._cache.clear()


_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_env(key: str, default: Any = None, cast_type: type = str) -> Any:
    """Get environment variable with type casting."""
    return get_config().get(key, default, cast_type)


def get_required_env(key: str, cast_type: type = str) -> Any:
    """Get required environment variable.

    Raises:
        ValueError: If the required environment variable is not found
    """
    return get_config().get_required(key, cast_type)


def is_development() -> bool:
    """Check if running in development mode."""
    return get_config().is_development()


def is_production() -> bool:
    """Check if running in production mode."""
    return get_config().is_production()


def get_environment() -> str:
    return str(get_env("ENVIRONMENT", "development"))


def get_debug_mode() -> bool:
    return get_env("DEBUG", False, bool) or is_development()


def get_site_url() -> str:
    """Public base URL of the gallery, used for share links."""
    return str(get_env("SITE_URL", "http://localhost:8501")).rstrip("/")


def get_data_dir() -> str:
    """Local directory holding the working copy of the metadata database."""
    return str(get_env("DATA_DIR", "/tmp/photogallery"))  # nosec B108


def get_max_file_size() -> int:
    return int(get_env("MAX_FILE_SIZE", 50 * 1024 * 1024, int))


def get_upload_settings() -> dict[str, Any]:
    """Get upload manager settings.

    Returns:
        dict: max_width, quality, max_concurrent and queue_retention_seconds
    """
    return {
        "max_width": get_env("UPLOAD_MAX_WIDTH", 800, int),
        "quality": get_env("UPLOAD_QUALITY", 80, int),
        "max_concurrent": get_env("UPLOAD_MAX_CONCURRENT", 3, int),
        "queue_retention_seconds": get_env("UPLOAD_QUEUE_RETENTION_SECONDS", 5.0, float),
    }


def get_rate_limit_settings() -> tuple[int, int]:
    """Get API rate limit as (requests, window_seconds)."""
    return get_env("API_RATE_LIMIT", 20, int), get_env("API_RATE_WINDOW_SECONDS", 60, int)
