"""
repositories/user_repo.py
--------------------------
Data access layer for user records.
Passwords are hashed here on the way in; the plaintext never reaches SQL.
"""

from dataclasses import fields
from typing import Optional

from db.connection import execute_query
from models.user import User, UserCreate, UserUpdate
from repositories.base_repo import BaseRepository, PaginatedResult, as_values, to_float
from security.passwords import hash_secret, verify_secret
from utils.geo import haversine_params, haversine_sql
from utils.logger import get_logger

logger = get_logger(__name__)

USER_FIELDS = (
    "id", "email", "password_hash", "first_name", "last_name", "phone",
    "avatar_url", "bio", "location_lat", "location_lng", "location_address",
    "is_verified", "is_active", "created_at", "updated_at",
)
USER_INSERT_FIELDS = (
    "email", "password_hash", "first_name", "last_name", "phone", "bio",
    "location_lat", "location_lng", "location_address",
)
USER_UPDATE_FIELDS = tuple(f.name for f in fields(UserUpdate)) + (
    "password_hash", "is_verified", "is_active",
)

_USER_DISTANCE = haversine_sql("location_lat", "location_lng")


class UserRepository:
    """Repository for CRUD operations on the users table."""

    def __init__(self):
        self.base = BaseRepository(
            "users",
            USER_FIELDS,
            self._row_to_user,
            insert_fields=USER_INSERT_FIELDS,
            update_fields=USER_UPDATE_FIELDS,
        )

    # ── CREATE ────────────────────────────────────────────

    def create(self, data: UserCreate) -> User:
        """
        Insert a new user with a bcrypt hash of the given password.

        Email uniqueness is the caller's check (AuthService.register) and the
        UNIQUE constraint's.
        """
        values = as_values(data)
        password = values.pop("password")
        values["password_hash"] = hash_secret(password)
        return self.base.create(values)

    # ── READ ──────────────────────────────────────────────

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self.base.find_by_id(user_id)

    def find_with_pagination(
        self, filters: Optional[dict] = None, page: int = 1, limit: int = 20
    ) -> PaginatedResult[User]:
        return self.base.find_with_pagination(filters, page, limit)

    def find_by_email(self, email: str) -> Optional[User]:
        sql = f"SELECT {self.base.select_sql} FROM users WHERE email = %s;"
        rows = execute_query(sql, [email])
        return self._row_to_user(rows[0]) if rows else None

    def exists(self, user_id: str) -> bool:
        return self.base.exists(user_id)

    def get_profile(self, user_id: str) -> Optional[dict]:
        """
        Public profile of a user with listing and review aggregates.

        Returns:
            Dict with public user fields plus 'full_name', 'items_count',
            'reviews_count' and 'average_rating' (0.0 without reviews), or None.
        """
        columns = ", ".join(f"u.{f}" for f in USER_FIELDS if f != "password_hash")
        sql = f"""
            SELECT
                {columns},
                CONCAT(u.first_name, ' ', u.last_name) AS full_name,
                COUNT(DISTINCT i.id) AS items_count,
                COUNT(DISTINCT r.id) AS reviews_count,
                COALESCE(AVG(r.rating), 0) AS average_rating
            FROM users u
            LEFT JOIN items i ON i.owner_id = u.id AND i.is_active = TRUE
            LEFT JOIN reviews r ON r.reviewed_id = u.id
            WHERE u.id = %s
            GROUP BY u.id;
        """
        rows = execute_query(sql, [user_id])
        if not rows:
            return None
        row = dict(rows[0])
        row["items_count"] = int(row["items_count"] or 0)
        row["reviews_count"] = int(row["reviews_count"] or 0)
        row["average_rating"] = round(to_float(row["average_rating"]) or 0.0, 2)
        return row

    def find_by_location(self, lat: float, lng: float, radius_km: float = 10) -> list[dict]:
        """
        Active users with a known location within `radius_km` of a point.

        Returns:
            Public user dicts with a 'distance' key, nearest first.
        """
        columns = ", ".join(f for f in USER_FIELDS if f != "password_hash")
        sql = f"""
            SELECT {columns}, {_USER_DISTANCE} AS distance
            FROM users
            WHERE is_active = TRUE
              AND location_lat IS NOT NULL AND location_lng IS NOT NULL
              AND {_USER_DISTANCE} <= %s
            ORDER BY distance ASC;
        """
        params = haversine_params(lat, lng) + haversine_params(lat, lng) + [radius_km]
        rows = execute_query(sql, params)
        return [{**r, "distance": to_float(r["distance"])} for r in rows]

    def search_by_name(self, term: str, limit: int = 20) -> list[User]:
        """Active users whose first name, last name, or full name contains `term`."""
        escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        sql = f"""
            SELECT {self.base.select_sql}
            FROM users
            WHERE is_active = TRUE
              AND (first_name ILIKE %s OR last_name ILIKE %s
                   OR CONCAT(first_name, ' ', last_name) ILIKE %s)
            ORDER BY first_name, last_name
            LIMIT %s;
        """
        rows = execute_query(sql, [pattern, pattern, pattern, limit])
        return [self._row_to_user(r) for r in rows]

    def get_user_stats(self, user_id: str) -> dict:
        """
        Activity counters for a user, zero-filled.

        Returns:
            {'items_count', 'loans_as_borrower', 'loans_as_lender',
             'reviews_received', 'average_rating'}
        """
        sql = """
            SELECT
                (SELECT COUNT(*) FROM items WHERE owner_id = %s AND is_active = TRUE) AS items_count,
                (SELECT COUNT(*) FROM loans WHERE borrower_id = %s) AS loans_as_borrower,
                (SELECT COUNT(*) FROM loans WHERE lender_id = %s) AS loans_as_lender,
                (SELECT COUNT(*) FROM reviews WHERE reviewed_id = %s) AS reviews_received,
                (SELECT COALESCE(AVG(rating), 0) FROM reviews WHERE reviewed_id = %s) AS average_rating;
        """
        rows = execute_query(sql, [user_id] * 5)
        row = rows[0] if rows else {}
        return {
            "items_count": int(row.get("items_count") or 0),
            "loans_as_borrower": int(row.get("loans_as_borrower") or 0),
            "loans_as_lender": int(row.get("loans_as_lender") or 0),
            "reviews_received": int(row.get("reviews_received") or 0),
            "average_rating": round(to_float(row.get("average_rating")) or 0.0, 2),
        }

    def verify_password(self, user: User, password: str) -> bool:
        return verify_secret(password, user.password_hash)

    # ── UPDATE ────────────────────────────────────────────

    def update(self, user_id: str, data: UserUpdate) -> Optional[User]:
        return self.base.update(user_id, as_values(data))

    def update_password(self, user_id: str, new_password: str) -> Optional[User]:
        user = self.base.update(user_id, {"password_hash": hash_secret(new_password)})
        if user:
            logger.info(f"Password updated for user #{user_id}")
        return user

    def update_location(
        self, user_id: str, lat: float, lng: float, address: Optional[str] = None
    ) -> Optional[User]:
        """
        Move a user. An omitted address keeps the stored one; pass an empty
        string to clear it.
        """
        return self.base.update(
            user_id,
            {"location_lat": lat, "location_lng": lng, "location_address": address},
        )

    def verify_email(self, user_id: str) -> Optional[User]:
        return self.base.update(user_id, {"is_verified": True})

    def activate(self, user_id: str) -> Optional[User]:
        return self.base.update(user_id, {"is_active": True})

    def deactivate(self, user_id: str) -> Optional[User]:
        """Users are never hard-deleted; this is the account removal path."""
        user = self.base.soft_delete(user_id)
        if user:
            logger.info(f"Deactivated user #{user_id}")
        return user

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_user(row: dict) -> User:
        """Convert a database row to a User domain object."""
        return User(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            phone=row["phone"],
            avatar_url=row["avatar_url"],
            bio=row["bio"],
            location_lat=to_float(row["location_lat"]),
            location_lng=to_float(row["location_lng"]),
            location_address=row["location_address"],
            is_verified=row["is_verified"],
            is_active=row["is_active"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
