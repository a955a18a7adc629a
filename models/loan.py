"""
models/loan.py
--------------
Domain model for loans (rentals) and their status lifecycle.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

# ── STATUSES ──────────────────────────────────────────────
PENDING = "pending"
APPROVED = "approved"
ACTIVE = "active"
COMPLETED = "completed"
REJECTED = "rejected"
CANCELLED = "cancelled"

LOAN_STATUSES = (PENDING, APPROVED, ACTIVE, COMPLETED, REJECTED, CANCELLED)

# Statuses that hold the item for their date range.
BLOCKING_STATUSES = (APPROVED, ACTIVE)

VALID_TRANSITIONS: dict[str, tuple[str, ...]] = {
    PENDING: (APPROVED, REJECTED, CANCELLED),
    APPROVED: (ACTIVE, CANCELLED),
    ACTIVE: (COMPLETED, CANCELLED),
    COMPLETED: (),
    REJECTED: (),
    CANCELLED: (),
}


@dataclass
class Loan:
    """
    Represents a rental of an item by a borrower from its owner (the lender).

    Attributes:
        lender_id: Always the item's owner at creation time.
        daily_rate: Copied from the item when the loan is created.
        total_amount: Number of days x daily_rate.
        status: One of LOAN_STATUSES.
    """
    id: str
    item_id: str
    borrower_id: str
    lender_id: str
    start_date: date
    end_date: date
    daily_rate: float
    total_amount: float
    status: str = PENDING
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def duration_days(self) -> int:
        return loan_duration_days(self.start_date, self.end_date)

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.borrower_id, self.lender_id)


@dataclass
class LoanCreate:
    item_id: str
    start_date: date
    end_date: date
    notes: Optional[str] = None


@dataclass
class LoanUpdate:
    status: Optional[str] = None
    notes: Optional[str] = None


def loan_duration_days(start: date, end: date) -> int:
    """Whole days between start and end (end exclusive)."""
    return (end - start).days
