"""
models/refresh_token.py
-----------------------
Stored refresh-token record. Only the hash of the token is persisted.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class RefreshToken:
    id: str
    user_id: str
    token_hash: str
    expires_at: datetime
    is_revoked: bool = False
    created_at: Optional[datetime] = None


@dataclass
class RefreshTokenCreate:
    """Input for issuing a token: `token` is the plaintext and is hashed before storage."""
    user_id: str
    token: str
    expires_at: datetime
