"""
security/tokens.py
------------------
Access tokens (signed JWTs) and opaque refresh-token values.
"""

import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from config import JWT_ALGORITHM, JWT_EXPIRES_MINUTES, JWT_SECRET

_DURATION = re.compile(r"^\s*(\d+)\s*([smhd])\s*$")
_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def parse_duration(value: str) -> timedelta:
    """
    Parse a compact duration such as "7d", "15m", "12h" or "30s".

    Raises:
        ValueError: If the string is not <number><unit> with unit in s/m/h/d.
    """
    match = _DURATION.match(value or "")
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_UNITS[unit]: int(amount)})


def create_access_token(user_id: str, email: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT carrying the user's id and email."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=JWT_EXPIRES_MINUTES))
    payload = {"sub": user_id, "email": email, "exp": expire}
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """
    Verify signature and expiry of an access token.

    Returns:
        The payload, or None if the token is invalid, expired, or tampered with.
    """
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None


def generate_refresh_token() -> str:
    """A fresh opaque refresh-token value (URL-safe, 48 random bytes)."""
    return secrets.token_urlsafe(48)
