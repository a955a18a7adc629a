"""
services/user_service.py
------------------------
Business rules for member profiles, locations, and account status.
"""

from typing import Optional

from models.user import User, UserUpdate
from repositories.user_repo import UserRepository
from utils.errors import ConflictError, NotFoundError, ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_USER_RADIUS_KM = 10


class UserService:
    """Handles all business logic related to user accounts."""

    def __init__(self, user_repo: Optional[UserRepository] = None):
        self.users = user_repo or UserRepository()

    # ── READ ──────────────────────────────────────────────

    def get_user(self, user_id: str) -> User:
        user = self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", {"user_id": user_id})
        return user

    def get_profile(self, user_id: str) -> dict:
        """
        Raises:
            NotFoundError: Unknown user id.
        """
        profile = self.users.get_profile(user_id)
        if profile is None:
            raise NotFoundError("User not found", {"user_id": user_id})
        return profile

    def get_user_stats(self, user_id: str) -> dict:
        self.get_user(user_id)
        return self.users.get_user_stats(user_id)

    def search_users(self, term: str, limit: int = 20) -> list[User]:
        if not (term or "").strip():
            raise ValidationError("Search term is required")
        return self.users.search_by_name(term.strip(), limit)

    def get_users_near_location(
        self, lat: float, lng: float, radius_km: float = DEFAULT_USER_RADIUS_KM
    ) -> list[dict]:
        _validate_location(lat, lng)
        return self.users.find_by_location(lat, lng, radius_km)

    def is_email_available(self, email: str) -> bool:
        return self.users.find_by_email((email or "").strip().lower()) is None

    # ── UPDATE ────────────────────────────────────────────

    def update_profile(self, user_id: str, data: UserUpdate) -> dict:
        """
        Patch profile fields and return the refreshed profile.

        Coordinates, when present, must come as a valid lat/lng pair.

        Raises:
            NotFoundError: Unknown user id.
            ValidationError: Half a coordinate pair or one out of range.
        """
        self.get_user(user_id)
        if data.location_lat is not None or data.location_lng is not None:
            _validate_location(data.location_lat, data.location_lng)
        self.users.update(user_id, data)
        return self.get_profile(user_id)

    def update_location(
        self, user_id: str, lat: float, lng: float, address: Optional[str] = None
    ) -> dict:
        """Move a user; without an address the stored one is kept."""
        _validate_location(lat, lng)
        self.get_user(user_id)
        self.users.update_location(user_id, lat, lng, address)
        return self.get_profile(user_id)

    def update_avatar(self, user_id: str, avatar_url: str) -> dict:
        if not (avatar_url or "").strip():
            raise ValidationError("Avatar URL is required")
        return self.update_profile(user_id, UserUpdate(avatar_url=avatar_url.strip()))

    def verify_email(self, user_id: str) -> None:
        user = self.get_user(user_id)
        if user.is_verified:
            raise ConflictError("Email is already verified", {"user_id": user_id})
        self.users.verify_email(user_id)

    # ── ACCOUNT STATUS ────────────────────────────────────

    def deactivate_account(self, user_id: str) -> None:
        """
        Accounts are never deleted; deactivation is the removal path.

        Raises:
            NotFoundError: Unknown user id.
            ConflictError: Already deactivated.
        """
        user = self.get_user(user_id)
        if not user.is_active:
            raise ConflictError("Account is already deactivated", {"user_id": user_id})
        self.users.deactivate(user_id)

    def activate_account(self, user_id: str) -> None:
        user = self.get_user(user_id)
        if user.is_active:
            raise ConflictError("Account is already active", {"user_id": user_id})
        self.users.activate(user_id)
        logger.info(f"Reactivated user #{user_id}")


def _validate_location(lat: Optional[float], lng: Optional[float]) -> None:
    if (lat is None) != (lng is None):
        raise ValidationError("Both latitude and longitude must be provided")
    if lat is not None and not -90 <= lat <= 90:
        raise ValidationError("Latitude must be between -90 and 90", {"lat": lat})
    if lng is not None and not -180 <= lng <= 180:
        raise ValidationError("Longitude must be between -180 and 180", {"lng": lng})
