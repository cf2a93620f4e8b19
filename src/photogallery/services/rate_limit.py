"""Per-client rate limiting for the photo and upload API, using throttled-py."""

from datetime import timedelta

from throttled import RateLimiterType, Throttled, rate_limiter, store

from ..config import get_rate_limit_settings
from ..error_handling import RateLimitError
from ..logging_config import get_logger, log_security_event

logger = get_logger(__name__)

RATE_LIMITED_PREFIXES = ("/api/upload", "/api/photos")


def is_rate_limited_path(path: str) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in RATE_LIMITED_PREFIXES)


class ApiRateLimiter:
    """Fixed window limiter keyed by client IP."""

    def __init__(self, limit: int | None = None, window_seconds: int | None = None) -> None:
        default_limit, default_window = get_rate_limit_settings()
        self.limit = limit or default_limit
        self.window_seconds = window_seconds or default_window
        self._store = store.MemoryStore()
        self._throttle = Throttled(
            using=RateLimiterType.FIXED_WINDOW.value,
            quota=rate_limiter.per_duration(timedelta(seconds=self.window_seconds), limit=self.limit),
            store=self._store,
        )

    def allow(self, client_ip: str) -> bool:
        """
        Count one request for the client.

        Returns:
            bool: False when the client is over its quota. A failing limiter allows the request.
        """
        try:
            result = self._throttle.limit(f"api:{client_ip}", cost=1)
        except Exception as e:
            logger.warning("rate_limit_check_failed", client_ip=client_ip, error=str(e))
            return True

        if result.limited:
            log_security_event("rate_limit_exceeded", client_ip=client_ip, limit=self.limit)
            return False
        return True

    def check(self, client_ip: str) -> None:
        """
        Raises:
            RateLimitError: If the client is over its quota
        """
        if not self.allow(client_ip):
            raise RateLimitError(
                f"Too many requests from {client_ip}",
                user_message="Too Many Requests",
                details={"limit": self.limit, "window_seconds": self.window_seconds},
            )
