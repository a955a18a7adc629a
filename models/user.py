"""
models/user.py
--------------
Domain model for marketplace members.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class User:
    """
    Represents a registered user.

    Attributes:
        id: Opaque UUID string.
        email: Unique login email.
        password_hash: bcrypt hash of the password (never the password).
        first_name / last_name: Display name parts.
        phone, avatar_url, bio: Optional profile fields.
        location_lat / location_lng / location_address: Optional home location.
        is_verified: Email verified flag.
        is_active: False once the account is deactivated (users are never deleted).
    """
    id: str
    email: str
    password_hash: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    location_address: Optional[str] = None
    is_verified: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_public_dict(self) -> dict:
        """Profile fields safe to hand back to clients (no password hash)."""
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "avatar_url": self.avatar_url,
            "bio": self.bio,
            "location_lat": self.location_lat,
            "location_lng": self.location_lng,
            "location_address": self.location_address,
            "is_verified": self.is_verified,
            "is_active": self.is_active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class UserCreate:
    email: str
    password: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    bio: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    location_address: Optional[str] = None


@dataclass
class UserUpdate:
    """Profile patch. Fields left as None are not touched."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    location_address: Optional[str] = None
    avatar_url: Optional[str] = None
