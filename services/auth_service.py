"""
services/auth_service.py
------------------------
Registration, login, and the refresh-token lifecycle.

Every successful register/login/refresh issues a pair: a short-lived JWT
access token and an opaque refresh token whose hash is stored. Using a
refresh token revokes it and issues a new pair (rotation).
"""

import re
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from config import REFRESH_TOKEN_EXPIRES_IN
from models.refresh_token import RefreshTokenCreate
from models.user import User, UserCreate
from repositories.refresh_token_repo import RefreshTokenRepository
from repositories.user_repo import UserRepository
from security.tokens import (
    create_access_token,
    decode_access_token,
    generate_refresh_token,
    parse_duration,
)
from utils.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)

_PASSWORD_SPECIALS = "@$!%*?&"
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_password_strength(password: str) -> None:
    """
    Raises:
        ValidationError: Unless the password has at least 8 characters,
            a lowercase letter, an uppercase letter, a digit and one of @$!%*?&.
    """
    problems = []
    if len(password or "") < 8:
        problems.append("at least 8 characters")
    if not re.search(r"[a-z]", password or ""):
        problems.append("a lowercase letter")
    if not re.search(r"[A-Z]", password or ""):
        problems.append("an uppercase letter")
    if not re.search(r"\d", password or ""):
        problems.append("a digit")
    if not any(c in _PASSWORD_SPECIALS for c in password or ""):
        problems.append(f"one of {_PASSWORD_SPECIALS}")
    if problems:
        raise ValidationError(
            "Password must contain " + ", ".join(problems),
            {"missing": problems},
        )


class AuthService:
    """Handles authentication and token issuance."""

    def __init__(
        self,
        user_repo: Optional[UserRepository] = None,
        token_repo: Optional[RefreshTokenRepository] = None,
    ):
        self.users = user_repo or UserRepository()
        self.tokens = token_repo or RefreshTokenRepository()

    # ── ACCOUNT ───────────────────────────────────────────

    def register(self, data: UserCreate) -> dict:
        """
        Create an account and sign it in.

        Returns:
            {'user': public user dict, 'access_token': str, 'refresh_token': str}

        Raises:
            ValidationError: Malformed email or weak password.
            ConflictError: The email is already registered.
        """
        email = (data.email or "").strip().lower()
        if not _EMAIL.match(email):
            raise ValidationError("Invalid email address", {"email": data.email})
        validate_password_strength(data.password)
        if self.users.find_by_email(email):
            raise ConflictError("Email already registered", {"email": email})

        user = self.users.create(replace(data, email=email))
        logger.info(f"Registered user #{user.id}")
        return self._session(user)

    def login(self, email: str, password: str) -> dict:
        """
        Raises:
            AuthenticationError: Unknown email, wrong password, or inactive account.
        """
        user = self.users.find_by_email((email or "").strip().lower())
        if user is None or not self.users.verify_password(user, password):
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AuthenticationError("Account is deactivated", {"user_id": user.id})
        logger.info(f"User #{user.id} logged in")
        return self._session(user)

    def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        """Change the password and sign the user out everywhere."""
        user = self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", {"user_id": user_id})
        if not self.users.verify_password(user, current_password):
            raise AuthenticationError("Current password is incorrect")
        validate_password_strength(new_password)
        self.users.update_password(user_id, new_password)
        self.tokens.revoke_all_user_tokens(user_id)

    # ── TOKENS ────────────────────────────────────────────

    def refresh(self, refresh_token: str, user_id: str) -> dict:
        """
        Exchange a live refresh token for a new pair; the old one is revoked.

        Raises:
            AuthenticationError: Token not found, expired, or revoked, or the
                user no longer exists or is inactive.
        """
        stored = self.tokens.find_valid_token(refresh_token, user_id)
        if stored is None:
            raise AuthenticationError("Invalid or expired refresh token")

        user = self.users.find_by_id(user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("User not found or inactive", {"user_id": user_id})

        self.tokens.revoke_token(stored.id)
        return self._session(user)

    def logout(self, refresh_token: str, user_id: str) -> bool:
        """Revoke one refresh token. Returns False if it was not live."""
        stored = self.tokens.find_valid_token(refresh_token, user_id)
        if stored is None:
            return False
        return self.tokens.revoke_token(stored.id)

    def logout_all(self, user_id: str) -> int:
        return self.tokens.revoke_all_user_tokens(user_id)

    def verify_access_token(self, token: str) -> User:
        """
        Resolve an access token to its active user.

        Raises:
            AuthenticationError: Bad or expired token, or unknown/inactive user.
        """
        payload = decode_access_token(token)
        if not payload or not payload.get("sub"):
            raise AuthenticationError("Invalid or expired access token")
        user = self.users.find_by_id(payload["sub"])
        if user is None or not user.is_active:
            raise AuthenticationError("User not found or inactive", {"user_id": payload["sub"]})
        return user

    def clean_expired_tokens(self) -> int:
        return self.tokens.clean_expired_tokens()

    # ── HELPERS ───────────────────────────────────────────

    def _issue_refresh_token(self, user_id: str) -> str:
        token = generate_refresh_token()
        expires_at = datetime.now(timezone.utc) + parse_duration(REFRESH_TOKEN_EXPIRES_IN)
        self.tokens.create(RefreshTokenCreate(user_id=user_id, token=token, expires_at=expires_at))
        return token

    def _session(self, user: User) -> dict:
        return {
            "user": user.to_public_dict(),
            "access_token": create_access_token(user.id, user.email),
            "refresh_token": self._issue_refresh_token(user.id),
        }
