"""Authentication service for the photogallery application.

Identity comes from Cloud IAP, which sits in front of the app and forwards a
signed assertion header. A gallery profile (public username and display name)
is registered once per identity.
"""

import base64
import html
import json
import os
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..error_handling import AuthenticationError, ValidationError
from ..logging_config import get_logger, is_development_environment, log_error, log_security_event, log_user_action
from ..models.user import UserProfile

if TYPE_CHECKING:
    from .metadata import MetadataService

logger = get_logger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-z0-9_-]{3,30}$")


@dataclass
class UserInfo:
    """Authenticated identity, plus the gallery profile once one is registered."""

    user_id: str
    email: str
    name: str | None = None
    picture: str | None = None
    username: str | None = None
    display_name: str | None = None

    @property
    def has_profile(self) -> bool:
        return self.username is not None

    @property
    def label(self) -> str:
        """Name to greet the user with."""
        return self.display_name or self.name or self.username or self.email

    def attach_profile(self, profile: UserProfile | None) -> "UserInfo":
        if profile is not None:
            self.username = profile.username
            self.display_name = profile.display_name
        return self


class GalleryAuthService:
    """Service for Cloud IAP identities and gallery sign-up."""

    IAP_HEADER_NAME = "X-Goog-IAP-JWT-Assertion"

    def __init__(
        self, development_mode: bool | None = None, metadata_service: "MetadataService | None" = None
    ) -> None:
        self._current_user: UserInfo | None = None
        self._development_mode = is_development_environment() if development_mode is None else development_mode
        self._metadata_service = metadata_service

        if self._development_mode:
            logger.info("development_auth_mode_enabled")

    @property
    def metadata(self) -> "MetadataService":
        if self._metadata_service is None:
            from .metadata import get_metadata_service

            self._metadata_service = get_metadata_service()
        return self._metadata_service

    @property
    def development_mode(self) -> bool:
        return self._development_mode

    def _get_development_user(self) -> UserInfo:
        dev_email = os.getenv("DEV_USER_EMAIL", "dev@example.com")
        dev_name = os.getenv("DEV_USER_NAME", "Development User")
        dev_user_id = os.getenv("DEV_USER_ID", "dev-user-123")

        if "@" not in dev_email:
            logger.warning("invalid_dev_user_email", email=dev_email)
            dev_email = "dev@example.com"
        if not dev_user_id.strip():
            dev_user_id = "dev-user-123"

        return UserInfo(user_id=dev_user_id, email=dev_email, name=dev_name.strip() or None)

    def parse_iap_header(self, headers: dict[str, str]) -> UserInfo | None:
        """
        Extract the identity from the IAP assertion header.

        In development mode the configured development user is returned instead.
        """
        if self._development_mode:
            return self._get_development_user()

        jwt_token = _get_header(headers, self.IAP_HEADER_NAME)
        if not jwt_token:
            log_security_event("missing_iap_header", headers_present=sorted(headers.keys()))
            return None

        try:
            return self._decode_jwt_payload(jwt_token)
        except ValueError as e:
            log_error(e, {"operation": "parse_iap_header"})
            log_security_event("authentication_failure", error=str(e))
            return None

    def _decode_jwt_payload(self, jwt_token: str) -> UserInfo:
        """Decode the JWT payload. The signature is verified by IAP before the request arrives."""
        parts = jwt_token.split(".")
        if len(parts) != 3:
            raise ValueError("Invalid JWT token format")

        payload_b64 = parts[1] + "=" * (-len(parts[1]) % 4)
        try:
            payload = json.loads(base64.urlsafe_b64decode(payload_b64).decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            raise ValueError(f"Failed to decode JWT payload: {e}") from e
        if not isinstance(payload, dict):
            raise ValueError(f"JWT payload is not an object: {type(payload).__name__}")

        return self._extract_user_info(payload)

    def _extract_user_info(self, payload: dict[str, Any]) -> UserInfo:
        email = _sanitize(payload.get("email"))
        sub = _sanitize(payload.get("sub"))

        if not email:
            raise ValueError("Email not found in JWT payload")
        if not sub:
            raise ValueError("Subject (user ID) not found in JWT payload")

        return UserInfo(
            user_id=sub,
            email=email,
            name=_sanitize(payload.get("name")),
            picture=_sanitize(payload.get("picture")),
        )

    def identify(self, headers: dict[str, str]) -> UserInfo | None:
        """
        Resolve the caller of a request without touching the current user.

        Returns:
            UserInfo | None: Identity with its gallery profile attached, or None
        """
        user_info = self.parse_iap_header(headers)
        if user_info is None:
            return None
        return user_info.attach_profile(self.metadata.get_user_by_id(user_info.user_id))

    def authenticate_request(self, headers: dict[str, str]) -> UserInfo | None:
        """
        Sign in: identify the caller and remember them as the current user.

        Returns:
            UserInfo | None: The signed-in user, or None if the request carries no identity
        """
        user_info = self.identify(headers)
        if user_info:
            self._current_user = user_info
            logger.info("request_authenticated", user_id=user_info.user_id, username=user_info.username)
            return user_info

        self._current_user = None
        log_security_event("request_authentication_failed")
        return None

    def sign_up(self, identity: UserInfo | None, username: str, display_name: str | None = None) -> UserProfile:
        """
        Register the gallery profile of an identity.

        Args:
            identity: Identity to register; None means the current user
            username: Public handle, 3 to 30 of ``a-z 0-9 _ -`` (lower-cased)
            display_name: Name shown on the gallery (defaults to the identity's name)

        Raises:
            AuthenticationError: If there is no identity
            ValidationError: If the username is malformed or the username or email is taken
        """
        identity = identity or self.ensure_authenticated()
        username = (username or "").strip().lower()

        if not USERNAME_PATTERN.match(username):
            raise ValidationError(
                f"Invalid username: {username!r}",
                code="invalid_username",
                user_message="Usernames are 3-30 characters: lowercase letters, numbers, '-' and '_'.",
                details={"username": username},
            )
        if self.metadata.get_user_by_id(identity.user_id) is not None:
            raise ValidationError(
                "Profile already registered for this account",
                code="profile_exists",
                user_message="This account already has a gallery.",
                details={"user_id": identity.user_id},
            )
        if self.metadata.get_user_by_username(username) is not None:
            raise ValidationError(
                f"Username already taken: {username}",
                code="username_taken",
                user_message="That username is already taken.",
                details={"username": username},
            )
        if self.metadata.get_user_by_email(identity.email) is not None:
            raise ValidationError(
                f"Email already registered: {identity.email}",
                code="email_taken",
                user_message="That email is already registered.",
            )

        profile = UserProfile(
            id=identity.user_id,
            username=username,
            email=identity.email,
            display_name=(display_name or "").strip() or identity.name,
            avatar_url=identity.picture,
        )
        self.metadata.create_user(profile)
        identity.attach_profile(profile)

        if self._current_user is not None and self._current_user.user_id == identity.user_id:
            self._current_user.attach_profile(profile)

        log_user_action(identity.user_id, "sign_up", username=username)
        return profile

    def sign_out(self) -> None:
        """Clear the current authentication state."""
        user_id = self._current_user.user_id if self._current_user else None
        self._current_user = None
        log_user_action(user_id or "unknown", "sign_out")

    def get_current_user(self) -> UserInfo | None:
        return self._current_user

    def set_current_user(self, user_info: UserInfo | None) -> None:
        self._current_user = user_info

    def is_authenticated(self) -> bool:
        return self._current_user is not None

    def get_user_id(self) -> str | None:
        return self._current_user.user_id if self._current_user else None

    def ensure_authenticated(self) -> UserInfo:
        """
        Ensure a user is signed in.

        Raises:
            AuthenticationError: If no user is signed in
        """
        if self._current_user is None:
            raise AuthenticationError("User is not authenticated", code="user_not_authenticated")
        return self._current_user

    def ensure_profile(self) -> UserInfo:
        """
        Ensure the signed-in user has registered a gallery profile.

        Raises:
            AuthenticationError: If not signed in, or with code ``profile_required``
        """
        user = self.ensure_authenticated()
        if not user.has_profile:
            raise AuthenticationError(
                "Gallery profile required",
                code="profile_required",
                user_message="Create your gallery profile first.",
                details={"user_id": user.user_id},
            )
        return user


def _get_header(headers: dict[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        value = next((v for k, v in headers.items() if k.lower() == lowered), None)
    return value


_SCRIPT_PATTERNS = [
    re.compile(r"(?i)<script[^>]*>.*?</script>"),
    re.compile(r"(?i)javascript:"),
]


def _sanitize(value: Any) -> str | None:
    if not value:
        return None
    sanitized = str(value)
    for pattern in _SCRIPT_PATTERNS:
        sanitized = pattern.sub("", sanitized)
    return html.escape(sanitized.strip()) or None


_auth_service: GalleryAuthService | None = None


def get_auth_service() -> GalleryAuthService:
    """Get the global authentication service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = GalleryAuthService()
    return _auth_service
