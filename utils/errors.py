"""
utils/errors.py
---------------
Exception taxonomy shared by repositories and services.

"Not found" on a single lookup is never an exception at the repository
level (methods return None). Precondition failures raise one of the
classes below before any write is attempted.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for all application errors."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ValidationError(AppError):
    """Input failed a business rule."""


class AuthenticationError(AppError):
    """Credentials or tokens were rejected."""


class AuthorizationError(AppError):
    """The caller is not allowed to perform the operation."""


class NotFoundError(AppError):
    """A referenced entity does not exist."""


class ItemNotFound(NotFoundError):
    def __init__(self, item_id: str):
        super().__init__(f"Item {item_id} not found", {"item_id": item_id})
        self.item_id = item_id


class ConflictError(AppError):
    """The operation conflicts with existing state."""


class ConflictingLoan(ConflictError):
    def __init__(self, item_id: str, start_date, end_date):
        super().__init__(
            "Item is already booked for the selected dates",
            {"item_id": item_id, "start_date": str(start_date), "end_date": str(end_date)},
        )
        self.item_id = item_id


class DuplicateReview(ConflictError):
    def __init__(self, loan_id: str, reviewer_id: str, review_type: str):
        super().__init__(
            "You have already reviewed this loan",
            {"loan_id": loan_id, "reviewer_id": reviewer_id, "type": review_type},
        )
        self.loan_id = loan_id


class RepositoryError(AppError):
    """The data layer could not complete an operation it started."""
