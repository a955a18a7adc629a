"""
repositories/review_repo.py
---------------------------
Data access layer for reviews.
A loan participant may leave one review of each type per loan; the check
runs here, before the insert.
"""

from dataclasses import asdict, fields
from typing import Optional

from db.connection import execute_query
from models.review import Review, ReviewCreate, ReviewUpdate
from repositories.base_repo import BaseRepository, PaginatedResult, as_values, to_float
from utils.errors import DuplicateReview
from utils.logger import get_logger

logger = get_logger(__name__)

REVIEW_FIELDS = (
    "id", "loan_id", "reviewer_id", "reviewed_id", "rating", "comment", "type",
    "created_at", "updated_at",
)
REVIEW_INSERT_FIELDS = ("reviewer_id",) + tuple(f.name for f in fields(ReviewCreate))
REVIEW_UPDATE_FIELDS = tuple(f.name for f in fields(ReviewUpdate))

_DETAIL_QUERY = """
    SELECT
        {review_columns},
        rv.first_name AS reviewer_first_name, rv.last_name AS reviewer_last_name,
        rv.avatar_url AS reviewer_avatar_url,
        rd.first_name AS reviewed_first_name, rd.last_name AS reviewed_last_name,
        rd.avatar_url AS reviewed_avatar_url,
        l.item_id AS item_id, i.title AS item_title
    FROM reviews r
    JOIN users rv ON r.reviewer_id = rv.id
    JOIN users rd ON r.reviewed_id = rd.id
    JOIN loans l ON r.loan_id = l.id
    JOIN items i ON l.item_id = i.id
""".format(review_columns=", ".join(f"r.{f}" for f in REVIEW_FIELDS))


class ReviewRepository:
    """Repository for CRUD operations on the reviews table."""

    def __init__(self):
        self.base = BaseRepository(
            "reviews",
            REVIEW_FIELDS,
            self._row_to_review,
            insert_fields=REVIEW_INSERT_FIELDS,
            update_fields=REVIEW_UPDATE_FIELDS,
        )

    # ── CREATE ────────────────────────────────────────────

    def create(self, data: ReviewCreate, reviewer_id: str) -> Review:
        """
        Insert a review.

        Raises:
            DuplicateReview: If this reviewer already left a review of this
                type for this loan.
        """
        if self.exists_for_loan_and_reviewer(data.loan_id, reviewer_id, data.type):
            raise DuplicateReview(data.loan_id, reviewer_id, data.type)
        return self.base.create({**as_values(data), "reviewer_id": reviewer_id})

    # ── READ ──────────────────────────────────────────────

    def find_by_id(self, review_id: str) -> Optional[Review]:
        return self.base.find_by_id(review_id)

    def find_with_pagination(
        self, filters: Optional[dict] = None, page: int = 1, limit: int = 20
    ) -> PaginatedResult[Review]:
        return self.base.find_with_pagination(filters, page, limit)

    def find_by_reviewer(self, reviewer_id: str) -> list[Review]:
        return self.base.find_all({"reviewer_id": reviewer_id})

    def find_by_reviewed(self, reviewed_id: str) -> list[Review]:
        return self.base.find_all({"reviewed_id": reviewed_id})

    def find_by_loan(self, loan_id: str) -> list[Review]:
        return self.base.find_all({"loan_id": loan_id})

    def find_by_type(self, review_type: str) -> list[Review]:
        return self.base.find_all({"type": review_type})

    def find_with_details(self, review_id: str) -> Optional[dict]:
        rows = execute_query(_DETAIL_QUERY + " WHERE r.id = %s;", [review_id])
        return self._row_to_details(rows[0]) if rows else None

    def find_user_reviews_with_details(self, user_id: str, limit: int = 20) -> list[dict]:
        """Reviews received by a user, newest first, with both parties and the item."""
        sql = _DETAIL_QUERY + """
            WHERE r.reviewed_id = %s
            ORDER BY r.created_at DESC
            LIMIT %s;
        """
        return [self._row_to_details(r) for r in execute_query(sql, [user_id, limit])]

    def exists_for_loan_and_reviewer(self, loan_id: str, reviewer_id: str, review_type: str) -> bool:
        sql = """
            SELECT 1 FROM reviews
            WHERE loan_id = %s AND reviewer_id = %s AND type = %s
            LIMIT 1;
        """
        return len(execute_query(sql, [loan_id, reviewer_id, review_type])) > 0

    def get_user_rating_stats(self, user_id: str) -> dict:
        """
        Rating summary for the reviews a user received.

        Returns:
            {'average_rating': float, 'total_reviews': int,
             'rating_distribution': {1: n, 2: n, 3: n, 4: n, 5: n}}
            with every star present, zero when no review has it.
        """
        sql = """
            SELECT
                COALESCE(AVG(rating), 0) AS average_rating,
                COUNT(*) AS total_reviews,
                COUNT(*) FILTER (WHERE rating = 1) AS rating_1,
                COUNT(*) FILTER (WHERE rating = 2) AS rating_2,
                COUNT(*) FILTER (WHERE rating = 3) AS rating_3,
                COUNT(*) FILTER (WHERE rating = 4) AS rating_4,
                COUNT(*) FILTER (WHERE rating = 5) AS rating_5
            FROM reviews
            WHERE reviewed_id = %s;
        """
        rows = execute_query(sql, [user_id])
        row = rows[0] if rows else {}
        return {
            "average_rating": round(to_float(row.get("average_rating")) or 0.0, 2),
            "total_reviews": int(row.get("total_reviews") or 0),
            "rating_distribution": {
                star: int(row.get(f"rating_{star}") or 0) for star in range(1, 6)
            },
        }

    def get_recent_reviews(self, limit: int = 10) -> list[dict]:
        sql = _DETAIL_QUERY + " ORDER BY r.created_at DESC LIMIT %s;"
        return [self._row_to_details(r) for r in execute_query(sql, [limit])]

    # ── UPDATE ────────────────────────────────────────────

    def update(self, review_id: str, data: ReviewUpdate) -> Optional[Review]:
        return self.base.update(review_id, as_values(data))

    # ── DELETE ────────────────────────────────────────────

    def delete(self, review_id: str) -> bool:
        return self.base.delete(review_id)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_review(row: dict) -> Review:
        """Convert a database row to a Review domain object."""
        return Review(
            id=row["id"],
            loan_id=row["loan_id"],
            reviewer_id=row["reviewer_id"],
            reviewed_id=row["reviewed_id"],
            rating=row["rating"],
            type=row["type"],
            comment=row["comment"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @classmethod
    def _row_to_details(cls, row: dict) -> dict:
        details = asdict(cls._row_to_review(row))
        details["reviewer"] = {
            "id": row["reviewer_id"],
            "first_name": row["reviewer_first_name"],
            "last_name": row["reviewer_last_name"],
            "avatar_url": row["reviewer_avatar_url"],
        }
        details["reviewed"] = {
            "id": row["reviewed_id"],
            "first_name": row["reviewed_first_name"],
            "last_name": row["reviewed_last_name"],
            "avatar_url": row["reviewed_avatar_url"],
        }
        details["item"] = {"id": row["item_id"], "title": row["item_title"]}
        return details
