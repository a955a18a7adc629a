"""
services/loan_service.py
------------------------
Business rules for loan requests and their status lifecycle.

    pending  → approved | rejected | cancelled
    approved → active | cancelled
    active   → completed | cancelled

The lender approves, rejects, and activates; either party may cancel or
complete.
"""

from datetime import date, datetime
from typing import Optional, Union

from dateutil import parser as date_parser

from config import MAX_LOAN_DAYS
from models.loan import (
    ACTIVE,
    APPROVED,
    CANCELLED,
    COMPLETED,
    LOAN_STATUSES,
    REJECTED,
    VALID_TRANSITIONS,
    Loan,
    LoanCreate,
    LoanUpdate,
    loan_duration_days,
)
from repositories.item_repo import ItemRepository
from repositories.loan_repo import LoanRepository
from repositories.user_repo import UserRepository
from utils.errors import (
    AuthorizationError,
    ConflictingLoan,
    ItemNotFound,
    NotFoundError,
    ValidationError,
)
from utils.logger import get_logger

logger = get_logger(__name__)

# Transitions only the lender may perform.
LENDER_ONLY = (APPROVED, REJECTED, ACTIVE)


def to_date(value: Union[date, datetime, str]) -> date:
    """Accept a date, a datetime, or an ISO-8601 string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date_parser.isoparse(value).date()
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid date: {value!r}", {"value": str(value)}) from e


class LoanService:
    """Handles all business logic related to loans."""

    def __init__(
        self,
        loan_repo: Optional[LoanRepository] = None,
        item_repo: Optional[ItemRepository] = None,
        user_repo: Optional[UserRepository] = None,
    ):
        self.loans = loan_repo or LoanRepository()
        self.items = item_repo or ItemRepository()
        self.users = user_repo or UserRepository()

    # ── CREATE ────────────────────────────────────────────

    def create_loan(self, data: LoanCreate, borrower_id: str, today: Optional[date] = None) -> Loan:
        """
        Request a loan of an item.

        Args:
            data: Item and dates (dates may be ISO strings).
            borrower_id: The requesting user.
            today: Reference date for the "not in the past" rule.

        Raises:
            ValidationError: Bad dates or duration, item unavailable, or
                borrowing your own item.
            ItemNotFound: Missing or inactive item.
            ConflictingLoan: The dates overlap an approved or active loan.
            NotFoundError: Unknown borrower.
        """
        start = to_date(data.start_date)
        end = to_date(data.end_date)
        today = today or date.today()

        if start < today:
            raise ValidationError("Start date cannot be in the past", {"start_date": str(start)})
        if end <= start:
            raise ValidationError("End date must be after start date")
        days = loan_duration_days(start, end)
        if days > MAX_LOAN_DAYS:
            raise ValidationError(
                f"Loan duration cannot exceed {MAX_LOAN_DAYS} days", {"days": days}
            )

        item = self.items.find_by_id(data.item_id)
        if item is None or not item.is_active:
            raise ItemNotFound(data.item_id)
        if not item.is_available:
            raise ValidationError("Item is not available for loans", {"item_id": item.id})
        if item.owner_id == borrower_id:
            raise ValidationError("You cannot borrow your own item", {"item_id": item.id})
        if not self.users.exists(borrower_id):
            raise NotFoundError("Borrower not found", {"user_id": borrower_id})

        loan = self.loans.create(
            LoanCreate(item_id=data.item_id, start_date=start, end_date=end, notes=data.notes),
            borrower_id,
        )
        logger.info(f"Loan #{loan.id} requested for item #{item.id} ({days} days)")
        return loan

    # ── READ ──────────────────────────────────────────────

    def get_loan(self, loan_id: str, user_id: str) -> dict:
        """Loan details, visible to its two parties only."""
        details = self.loans.find_with_details(loan_id)
        if details is None:
            raise NotFoundError("Loan not found", {"loan_id": loan_id})
        if user_id not in (details["borrower_id"], details["lender_id"]):
            raise AuthorizationError("You are not a party to this loan", {"loan_id": loan_id})
        return details

    def get_user_loans(self, user_id: str) -> list[dict]:
        return self.loans.find_user_loans(user_id)

    def get_user_loan_stats(self, user_id: str) -> dict:
        return self.loans.get_user_loan_stats(user_id)

    # ── STATUS ────────────────────────────────────────────

    def update_loan_status(self, loan_id: str, status: str, user_id: str) -> Loan:
        """
        Move a loan to a new status.

        Raises:
            NotFoundError: Unknown loan.
            AuthorizationError: Caller is not a party, or not the lender for a
                lender-only transition.
            ValidationError: Unknown status or a transition not allowed from
                the current status.
            ConflictingLoan: Approving would double-book the item.
        """
        if status not in LOAN_STATUSES:
            raise ValidationError(f"Unknown loan status: {status}", {"status": status})

        loan = self.loans.find_by_id(loan_id)
        if loan is None:
            raise NotFoundError("Loan not found", {"loan_id": loan_id})
        if not loan.is_party(user_id):
            raise AuthorizationError("You are not a party to this loan", {"loan_id": loan_id})
        if status in LENDER_ONLY and user_id != loan.lender_id:
            raise AuthorizationError(
                f"Only the lender can mark a loan as {status}", {"loan_id": loan_id}
            )
        if status not in VALID_TRANSITIONS[loan.status]:
            raise ValidationError(
                f"Cannot change loan from {loan.status} to {status}",
                {"from": loan.status, "to": status},
            )

        if status == APPROVED and self.loans.has_conflicting_loans(
            loan.item_id, loan.start_date, loan.end_date, exclude_loan_id=loan.id
        ):
            raise ConflictingLoan(loan.item_id, loan.start_date, loan.end_date)

        updated = self.loans.update(loan_id, LoanUpdate(status=status))
        logger.info(f"Loan #{loan_id}: {loan.status} → {status} by user #{user_id}")
        return updated

    def cancel_loan(self, loan_id: str, user_id: str) -> Loan:
        return self.update_loan_status(loan_id, CANCELLED, user_id)

    def complete_loan(self, loan_id: str, user_id: str) -> Loan:
        return self.update_loan_status(loan_id, COMPLETED, user_id)
