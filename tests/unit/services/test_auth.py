"""
Unit tests for the authentication service.
"""

import base64
import json
from unittest.mock import MagicMock, patch

import pytest

from photogallery.error_handling import AuthenticationError, ValidationError
from photogallery.models.user import UserProfile
from photogallery.services.auth import GalleryAuthService, UserInfo


def make_jwt(payload) -> str:
    """Unsigned JWT with the given payload."""
    encoded = base64.urlsafe_b64encode(json.dumps(payload).encode()).decode().rstrip("=")
    return f"header.{encoded}.signature"


class TestParseIapHeader:
    """IAP assertion parsing in production mode."""

    def setup_method(self):
        self.metadata = MagicMock()
        self.metadata.get_user_by_id.return_value = None
        self.auth = GalleryAuthService(development_mode=False, metadata_service=self.metadata)

    def test_valid_header(self):
        """Test parsing a valid assertion."""
        token = make_jwt({"sub": "accounts.google.com:123", "email": "hana@example.com", "name": "Hana"})

        user = self.auth.parse_iap_header({"X-Goog-IAP-JWT-Assertion": token})

        assert user == UserInfo(user_id="accounts.google.com:123", email="hana@example.com", name="Hana")

    def test_header_name_is_case_insensitive(self):
        token = make_jwt({"sub": "123", "email": "hana@example.com"})

        user = self.auth.parse_iap_header({"x-goog-iap-jwt-assertion": token})

        assert user is not None
        assert user.user_id == "123"

    def test_missing_header(self):
        assert self.auth.parse_iap_header({}) is None

    @pytest.mark.parametrize(
        "token",
        [
            "not-a-jwt",
            "a.!!!.c",
            make_jwt({"sub": "123"}),
            make_jwt({"email": "hana@example.com"}),
            make_jwt(["a"]),
            make_jwt("hana@example.com"),
            make_jwt(None),
        ],
    )
    def test_invalid_tokens(self, token):
        """Malformed tokens and payloads without email or subject are rejected."""
        assert self.auth.parse_iap_header({"X-Goog-IAP-JWT-Assertion": token}) is None

    def test_claims_are_sanitized(self):
        token = make_jwt({"sub": "123", "email": "hana@example.com", "name": "<script>alert(1)</script>Hana <b>"})

        user = self.auth.parse_iap_header({"X-Goog-IAP-JWT-Assertion": token})

        assert user.name == "Hana &lt;b&gt;"


class TestDevelopmentMode:
    def test_development_user_from_environment(self, monkeypatch):
        """Development mode ignores headers and uses the configured user."""
        monkeypatch.setenv("DEV_USER_ID", "dev-42")
        monkeypatch.setenv("DEV_USER_EMAIL", "dev42@example.com")
        monkeypatch.setenv("DEV_USER_NAME", "Dev 42")
        auth = GalleryAuthService(development_mode=True, metadata_service=MagicMock())

        user = auth.parse_iap_header({})

        assert user == UserInfo(user_id="dev-42", email="dev42@example.com", name="Dev 42")

    def test_invalid_development_email_falls_back(self, monkeypatch):
        monkeypatch.setenv("DEV_USER_EMAIL", "not-an-email")
        auth = GalleryAuthService(development_mode=True, metadata_service=MagicMock())

        assert auth.parse_iap_header({}).email == "dev@example.com"

    def test_test_environment_enables_development_mode(self):
        assert GalleryAuthService(metadata_service=MagicMock()).development_mode is True


class TestSession:
    """Sign-in state handling."""

    def setup_method(self):
        self.metadata = MagicMock()
        self.metadata.get_user_by_id.return_value = UserProfile(
            id="123", username="hana", email="hana@example.com", display_name="Hana"
        )
        self.auth = GalleryAuthService(development_mode=False, metadata_service=self.metadata)
        self.headers = {"X-Goog-IAP-JWT-Assertion": make_jwt({"sub": "123", "email": "hana@example.com"})}

    def test_identify_attaches_profile(self):
        user = self.auth.identify(self.headers)

        assert user.username == "hana"
        assert user.has_profile
        assert user.label == "Hana"
        assert not self.auth.is_authenticated()

    def test_authenticate_request(self):
        user = self.auth.authenticate_request(self.headers)

        assert self.auth.get_current_user() is user
        assert self.auth.get_user_id() == "123"
        assert self.auth.ensure_profile() is user

    def test_failed_authentication_clears_user(self):
        self.auth.authenticate_request(self.headers)

        assert self.auth.authenticate_request({}) is None
        assert not self.auth.is_authenticated()

    @patch("photogallery.services.auth.log_security_event")
    def test_non_object_payload_clears_user(self, mock_security_event):
        """A payload that decodes to a JSON array signs the caller out instead of failing."""
        self.auth.authenticate_request(self.headers)
        headers = {"X-Goog-IAP-JWT-Assertion": make_jwt(["a"])}

        assert self.auth.authenticate_request(headers) is None
        assert not self.auth.is_authenticated()
        events = [call.args[0] for call in mock_security_event.call_args_list]
        assert "authentication_failure" in events

    def test_sign_out(self):
        self.auth.authenticate_request(self.headers)
        self.auth.sign_out()

        with pytest.raises(AuthenticationError) as exc_info:
            self.auth.ensure_authenticated()
        assert exc_info.value.code == "user_not_authenticated"

    def test_ensure_profile_without_profile(self):
        self.auth.set_current_user(UserInfo(user_id="123", email="hana@example.com"))

        with pytest.raises(AuthenticationError) as exc_info:
            self.auth.ensure_profile()
        assert exc_info.value.code == "profile_required"


class TestSignUp:
    """Gallery profile registration against a real database."""

    @pytest.fixture(autouse=True)
    def setup_auth(self, metadata_service):
        self.metadata = metadata_service
        self.auth = GalleryAuthService(development_mode=False, metadata_service=metadata_service)
        self.identity = UserInfo(user_id="123", email="hana@example.com", name="Hana Sato", picture="https://a/p.png")
        self.auth.set_current_user(self.identity)

    def test_sign_up(self):
        """The profile is stored and attached to the current user."""
        profile = self.auth.sign_up(None, "  Hana_01 ")

        assert profile.username == "hana_01"
        assert profile.display_name == "Hana Sato"
        assert profile.avatar_url == "https://a/p.png"
        assert self.metadata.get_user_by_username("hana_01").id == "123"
        assert self.auth.get_current_user().username == "hana_01"

    def test_sign_up_with_display_name(self):
        assert self.auth.sign_up(self.identity, "hana", display_name="Hana").display_name == "Hana"

    @pytest.mark.parametrize("username", ["ab", "has space", "a" * 31, "émile", ""])
    def test_invalid_username(self, username):
        with pytest.raises(ValidationError) as exc_info:
            self.auth.sign_up(self.identity, username)
        assert exc_info.value.code == "invalid_username"

    def test_profile_exists(self):
        self.auth.sign_up(self.identity, "hana")

        with pytest.raises(ValidationError) as exc_info:
            self.auth.sign_up(self.identity, "hana2")
        assert exc_info.value.code == "profile_exists"

    def test_username_taken(self):
        self.auth.sign_up(self.identity, "hana")
        other = UserInfo(user_id="456", email="other@example.com")

        with pytest.raises(ValidationError) as exc_info:
            self.auth.sign_up(other, "hana")
        assert exc_info.value.code == "username_taken"

    def test_email_taken(self):
        self.auth.sign_up(self.identity, "hana")
        other = UserInfo(user_id="456", email="hana@example.com")

        with pytest.raises(ValidationError) as exc_info:
            self.auth.sign_up(other, "yuki")
        assert exc_info.value.code == "email_taken"

    def test_sign_up_requires_identity(self):
        self.auth.sign_out()

        with pytest.raises(AuthenticationError):
            self.auth.sign_up(None, "hana")
