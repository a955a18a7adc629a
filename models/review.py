"""
models/review.py
----------------
Domain model for reviews left by loan participants.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

BORROWER_TO_LENDER = "borrower_to_lender"
LENDER_TO_BORROWER = "lender_to_borrower"

REVIEW_TYPES = (BORROWER_TO_LENDER, LENDER_TO_BORROWER)


@dataclass
class Review:
    """
    A 1-5 rating from one loan participant about the other.

    At most one review exists per (loan_id, reviewer_id, type).
    """
    id: str
    loan_id: str
    reviewer_id: str
    reviewed_id: str
    rating: int
    type: str
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class ReviewCreate:
    loan_id: str
    reviewed_id: str
    rating: int
    type: str
    comment: Optional[str] = None


@dataclass
class ReviewUpdate:
    rating: Optional[int] = None
    comment: Optional[str] = None
