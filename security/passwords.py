"""
security/passwords.py
---------------------
One-way hashing for user passwords and refresh tokens.
Both are stored as bcrypt hashes; the plaintext never reaches the database.
"""

from passlib.context import CryptContext

from config import BCRYPT_ROUNDS

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS,
)


def hash_secret(secret: str) -> str:
    """Hash a password or token with bcrypt (random salt per call)."""
    return pwd_context.hash(secret)


def verify_secret(secret: str, hashed: str) -> bool:
    """Constant-time check of a plaintext against a stored bcrypt hash."""
    return pwd_context.verify(secret, hashed)
