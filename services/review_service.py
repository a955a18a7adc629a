"""
services/review_service.py
--------------------------
Business rules for reviews between loan participants.
"""

from typing import Optional

from models.loan import COMPLETED
from models.review import BORROWER_TO_LENDER, LENDER_TO_BORROWER, Review, ReviewCreate, ReviewUpdate
from repositories.loan_repo import LoanRepository
from repositories.review_repo import ReviewRepository
from utils.errors import AuthorizationError, NotFoundError, ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)


def _check_rating(rating: int) -> None:
    if not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5", {"rating": rating})


class ReviewService:
    """Handles all business logic related to reviews."""

    def __init__(
        self,
        review_repo: Optional[ReviewRepository] = None,
        loan_repo: Optional[LoanRepository] = None,
    ):
        self.reviews = review_repo or ReviewRepository()
        self.loans = loan_repo or LoanRepository()

    def create_review(self, data: ReviewCreate, reviewer_id: str) -> Review:
        """
        Review the other party of a completed loan.

        The borrower writes borrower_to_lender reviews about the lender; the
        lender writes lender_to_borrower reviews about the borrower.

        Raises:
            ValidationError: Bad rating, loan not completed, wrong reviewed
                user, or a type that does not match the reviewer's role.
            NotFoundError: Unknown loan.
            AuthorizationError: Reviewer is not a party to the loan.
            DuplicateReview: Already reviewed (raised by the repository).
        """
        _check_rating(data.rating)

        loan = self.loans.find_by_id(data.loan_id)
        if loan is None:
            raise NotFoundError("Loan not found", {"loan_id": data.loan_id})
        if loan.status != COMPLETED:
            raise ValidationError("Only completed loans can be reviewed", {"status": loan.status})
        if not loan.is_party(reviewer_id):
            raise AuthorizationError("You are not a party to this loan", {"loan_id": loan.id})

        if reviewer_id == loan.borrower_id:
            expected_type, counterpart = BORROWER_TO_LENDER, loan.lender_id
        else:
            expected_type, counterpart = LENDER_TO_BORROWER, loan.borrower_id

        if data.reviewed_id != counterpart:
            raise ValidationError(
                "You can only review the other party of the loan",
                {"reviewed_id": data.reviewed_id},
            )
        if data.type != expected_type:
            raise ValidationError(
                f"Review type must be {expected_type} for your role in this loan",
                {"type": data.type},
            )

        review = self.reviews.create(data, reviewer_id)
        logger.info(f"Review #{review.id} ({review.type}) on loan #{loan.id}")
        return review

    def update_review(self, review_id: str, data: ReviewUpdate, user_id: str) -> Review:
        review = self._owned_review(review_id, user_id)
        if data.rating is not None:
            _check_rating(data.rating)
        return self.reviews.update(review.id, data)

    def delete_review(self, review_id: str, user_id: str) -> bool:
        review = self._owned_review(review_id, user_id)
        deleted = self.reviews.delete(review.id)
        logger.info(f"Review #{review_id} deleted by user #{user_id}")
        return deleted

    def get_user_reviews(self, user_id: str, limit: int = 20) -> list[dict]:
        return self.reviews.find_user_reviews_with_details(user_id, limit)

    def get_user_rating_stats(self, user_id: str) -> dict:
        return self.reviews.get_user_rating_stats(user_id)

    def _owned_review(self, review_id: str, user_id: str) -> Review:
        review = self.reviews.find_by_id(review_id)
        if review is None:
            raise NotFoundError("Review not found", {"review_id": review_id})
        if review.reviewer_id != user_id:
            raise AuthorizationError("You can only change your own reviews", {"review_id": review_id})
        return review
