"""
repositories/loan_repo.py
-------------------------
Data access layer for loans.
All SQL queries related to the `loans` table live here, including the
date-overlap check that keeps an item from being double-booked.
"""

from dataclasses import asdict, fields
from datetime import date
from typing import Optional

from db.connection import execute_query
from models.loan import BLOCKING_STATUSES, Loan, LoanCreate, LoanUpdate, loan_duration_days
from repositories.base_repo import BaseRepository, PaginatedResult, as_values, to_float
from utils.errors import ConflictingLoan, ItemNotFound
from utils.logger import get_logger

logger = get_logger(__name__)

LOAN_FIELDS = (
    "id", "item_id", "borrower_id", "lender_id", "start_date", "end_date",
    "daily_rate", "total_amount", "status", "notes", "created_at", "updated_at",
)
LOAN_INSERT_FIELDS = (
    "item_id", "borrower_id", "lender_id", "start_date", "end_date",
    "daily_rate", "total_amount", "notes",
)
LOAN_UPDATE_FIELDS = tuple(f.name for f in fields(LoanUpdate))

_DETAIL_QUERY = """
    SELECT
        {loan_columns},
        i.title AS item_title,
        b.first_name AS borrower_first_name, b.last_name AS borrower_last_name,
        b.avatar_url AS borrower_avatar_url,
        le.first_name AS lender_first_name, le.last_name AS lender_last_name,
        le.avatar_url AS lender_avatar_url,
        (l.end_date - l.start_date) AS duration_days
    FROM loans l
    JOIN items i ON l.item_id = i.id
    JOIN users b ON l.borrower_id = b.id
    JOIN users le ON l.lender_id = le.id
""".format(loan_columns=", ".join(f"l.{f}" for f in LOAN_FIELDS))


class LoanRepository:
    """Repository for CRUD operations on the loans table."""

    def __init__(self):
        self.base = BaseRepository(
            "loans",
            LOAN_FIELDS,
            self._row_to_loan,
            insert_fields=LOAN_INSERT_FIELDS,
            update_fields=LOAN_UPDATE_FIELDS,
        )

    # ── CREATE ────────────────────────────────────────────

    def create(self, data: LoanCreate, borrower_id: str) -> Loan:
        """
        Insert a new pending loan request.

        The lender and daily rate are read from the item; the total is
        days x rate. Both preconditions below are checked before any write.

        Raises:
            ItemNotFound: If the item does not exist.
            ConflictingLoan: If an approved/active loan overlaps the dates.
        """
        rows = execute_query(
            "SELECT owner_id, daily_rate FROM items WHERE id = %s;", [data.item_id]
        )
        if not rows:
            raise ItemNotFound(data.item_id)

        if self.has_conflicting_loans(data.item_id, data.start_date, data.end_date):
            raise ConflictingLoan(data.item_id, data.start_date, data.end_date)

        daily_rate = to_float(rows[0]["daily_rate"]) or 0.0
        days = loan_duration_days(data.start_date, data.end_date)
        values = {
            **as_values(data),
            "borrower_id": borrower_id,
            "lender_id": rows[0]["owner_id"],
            "daily_rate": daily_rate,
            "total_amount": round(days * daily_rate, 2),
        }
        return self.base.create(values)

    # ── READ ──────────────────────────────────────────────

    def find_by_id(self, loan_id: str) -> Optional[Loan]:
        return self.base.find_by_id(loan_id)

    def find_with_pagination(
        self, filters: Optional[dict] = None, page: int = 1, limit: int = 20
    ) -> PaginatedResult[Loan]:
        return self.base.find_with_pagination(filters, page, limit)

    def find_by_borrower(self, borrower_id: str) -> list[Loan]:
        return self.base.find_all({"borrower_id": borrower_id})

    def find_by_lender(self, lender_id: str) -> list[Loan]:
        return self.base.find_all({"lender_id": lender_id})

    def find_by_item(self, item_id: str) -> list[Loan]:
        return self.base.find_all({"item_id": item_id})

    def find_by_status(self, status: str) -> list[Loan]:
        return self.base.find_all({"status": status})

    def find_with_details(self, loan_id: str) -> Optional[dict]:
        """
        Fetch a loan with its item (title + images) and both parties.

        Returns:
            Nested dict or None if the loan does not exist.
        """
        rows = execute_query(_DETAIL_QUERY + " WHERE l.id = %s;", [loan_id])
        if not rows:
            return None
        row = rows[0]
        return self._row_to_details(row, self._item_images(row["item_id"]))

    def find_user_loans(self, user_id: str) -> list[dict]:
        """Every loan where the user is borrower or lender, newest first."""
        sql = _DETAIL_QUERY + """
            WHERE l.borrower_id = %s OR l.lender_id = %s
            ORDER BY l.created_at DESC;
        """
        rows = execute_query(sql, [user_id, user_id])
        return [self._row_to_details(r, self._item_images(r["item_id"])) for r in rows]

    def has_conflicting_loans(
        self,
        item_id: str,
        start_date: date,
        end_date: date,
        exclude_loan_id: Optional[str] = None,
    ) -> bool:
        """
        Check whether an approved or active loan of the item overlaps a range.

        Overlap is any of: the range contains the existing start, the range
        contains the existing end, or the existing loan contains the range.

        Args:
            item_id: The item being booked.
            start_date / end_date: Candidate range.
            exclude_loan_id: A loan to ignore, for re-checking an existing loan.
        """
        status_placeholders = ", ".join(["%s"] * len(BLOCKING_STATUSES))
        sql = f"""
            SELECT 1 FROM loans
            WHERE item_id = %s
              AND status IN ({status_placeholders})
              AND (
                  (start_date >= %s AND start_date <= %s) OR
                  (end_date >= %s AND end_date <= %s) OR
                  (start_date <= %s AND end_date >= %s)
              )
        """
        params: list = [item_id, *BLOCKING_STATUSES,
                        start_date, end_date,
                        start_date, end_date,
                        start_date, end_date]
        if exclude_loan_id:
            sql += " AND id != %s"
            params.append(exclude_loan_id)
        sql += " LIMIT 1;"
        return len(execute_query(sql, params)) > 0

    def get_user_loan_stats(self, user_id: str) -> dict:
        """
        Loan counts for a user as borrower and as lender.

        Returns:
            {'as_borrower': {total, active, completed}, 'as_lender': {...}},
            zero-filled when the user has no loans.
        """
        sql = """
            SELECT
                COUNT(*) FILTER (WHERE borrower_id = %s) AS borrower_total,
                COUNT(*) FILTER (WHERE borrower_id = %s AND status IN ('approved', 'active')) AS borrower_active,
                COUNT(*) FILTER (WHERE borrower_id = %s AND status = 'completed') AS borrower_completed,
                COUNT(*) FILTER (WHERE lender_id = %s) AS lender_total,
                COUNT(*) FILTER (WHERE lender_id = %s AND status IN ('approved', 'active')) AS lender_active,
                COUNT(*) FILTER (WHERE lender_id = %s AND status = 'completed') AS lender_completed
            FROM loans
            WHERE borrower_id = %s OR lender_id = %s;
        """
        rows = execute_query(sql, [user_id] * 8)
        row = rows[0] if rows else {}
        return {
            "as_borrower": {
                "total": int(row.get("borrower_total") or 0),
                "active": int(row.get("borrower_active") or 0),
                "completed": int(row.get("borrower_completed") or 0),
            },
            "as_lender": {
                "total": int(row.get("lender_total") or 0),
                "active": int(row.get("lender_active") or 0),
                "completed": int(row.get("lender_completed") or 0),
            },
        }

    # ── UPDATE ────────────────────────────────────────────

    def update(self, loan_id: str, data: LoanUpdate) -> Optional[Loan]:
        return self.base.update(loan_id, as_values(data))

    # ── DELETE ────────────────────────────────────────────

    def delete(self, loan_id: str) -> bool:
        return self.base.delete(loan_id)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _item_images(item_id: str) -> list[dict]:
        sql = """
            SELECT url, is_primary
            FROM item_images
            WHERE item_id = %s
            ORDER BY is_primary DESC, sort_order ASC;
        """
        return [{"url": r["url"], "is_primary": r["is_primary"]} for r in execute_query(sql, [item_id])]

    @staticmethod
    def _row_to_loan(row: dict) -> Loan:
        """Convert a database row to a Loan domain object."""
        return Loan(
            id=row["id"],
            item_id=row["item_id"],
            borrower_id=row["borrower_id"],
            lender_id=row["lender_id"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            daily_rate=to_float(row["daily_rate"]) or 0.0,
            total_amount=to_float(row["total_amount"]) or 0.0,
            status=row["status"],
            notes=row["notes"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @classmethod
    def _row_to_details(cls, row: dict, images: list[dict]) -> dict:
        details = asdict(cls._row_to_loan(row))
        details["item"] = {"id": row["item_id"], "title": row["item_title"], "images": images}
        details["borrower"] = {
            "id": row["borrower_id"],
            "first_name": row["borrower_first_name"],
            "last_name": row["borrower_last_name"],
            "avatar_url": row["borrower_avatar_url"],
        }
        details["lender"] = {
            "id": row["lender_id"],
            "first_name": row["lender_first_name"],
            "last_name": row["lender_last_name"],
            "avatar_url": row["lender_avatar_url"],
        }
        details["duration_days"] = int(row["duration_days"] or 0)
        return details
