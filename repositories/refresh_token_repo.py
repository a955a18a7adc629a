"""
repositories/refresh_token_repo.py
----------------------------------
Data access layer for refresh tokens.

Only a bcrypt hash of each token is stored. Since bcrypt hashes are salted
they cannot be looked up by value: validation loads the user's live tokens
and checks the candidate against each hash in turn.
"""

from typing import Optional

from db.connection import execute_query, execute_write
from models.refresh_token import RefreshToken, RefreshTokenCreate
from repositories.base_repo import BaseRepository
from security.passwords import hash_secret, verify_secret
from utils.logger import get_logger

logger = get_logger(__name__)

TOKEN_FIELDS = ("id", "user_id", "token_hash", "expires_at", "is_revoked", "created_at")


class RefreshTokenRepository:
    """Repository for the refresh_tokens table."""

    def __init__(self):
        self.base = BaseRepository(
            "refresh_tokens",
            TOKEN_FIELDS,
            self._row_to_token,
            insert_fields=("user_id", "token_hash", "expires_at"),
            update_fields=("is_revoked",),
            touch_updated_at=False,
        )

    # ── CREATE ────────────────────────────────────────────

    def create(self, data: RefreshTokenCreate) -> RefreshToken:
        return self.base.create({
            "user_id": data.user_id,
            "token_hash": hash_secret(data.token),
            "expires_at": data.expires_at,
        })

    # ── READ ──────────────────────────────────────────────

    def find_valid_token(self, token: str, user_id: str) -> Optional[RefreshToken]:
        """
        Find the user's live (non-expired, non-revoked) token matching `token`.

        Returns:
            The matching RefreshToken, or None.
        """
        sql = f"""
            SELECT {self.base.select_sql}
            FROM refresh_tokens
            WHERE user_id = %s AND is_revoked = FALSE AND expires_at > NOW()
            ORDER BY created_at DESC;
        """
        for row in execute_query(sql, [user_id]):
            if verify_secret(token, row["token_hash"]):
                return self._row_to_token(row)
        return None

    def find_by_user(self, user_id: str) -> list[RefreshToken]:
        return self.base.find_all({"user_id": user_id})

    def get_user_active_tokens_count(self, user_id: str) -> int:
        sql = """
            SELECT COUNT(*) AS count FROM refresh_tokens
            WHERE user_id = %s AND is_revoked = FALSE AND expires_at > NOW();
        """
        return int(execute_query(sql, [user_id])[0]["count"])

    # ── UPDATE ────────────────────────────────────────────

    def revoke_token(self, token_id: str) -> bool:
        return self.base.update(token_id, {"is_revoked": True}) is not None

    def revoke_all_user_tokens(self, user_id: str) -> int:
        sql = "UPDATE refresh_tokens SET is_revoked = TRUE WHERE user_id = %s AND is_revoked = FALSE;"
        revoked = execute_write(sql, [user_id])
        logger.info(f"Revoked {revoked} refresh token(s) for user #{user_id}")
        return revoked

    # ── DELETE ────────────────────────────────────────────

    def clean_expired_tokens(self) -> int:
        """Delete tokens that are expired or revoked. Returns the number removed."""
        sql = "DELETE FROM refresh_tokens WHERE expires_at <= NOW() OR is_revoked = TRUE;"
        removed = execute_write(sql)
        logger.info(f"Removed {removed} expired or revoked refresh token(s)")
        return removed

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_token(row: dict) -> RefreshToken:
        """Convert a database row to a RefreshToken domain object."""
        return RefreshToken(
            id=row["id"],
            user_id=row["user_id"],
            token_hash=row["token_hash"],
            expires_at=row["expires_at"],
            is_revoked=row["is_revoked"],
            created_at=row["created_at"],
        )
