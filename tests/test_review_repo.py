from datetime import datetime
from decimal import Decimal

import pytest

from models.review import BORROWER_TO_LENDER, ReviewCreate
from repositories.review_repo import ReviewRepository
from utils.errors import DuplicateReview


def review_row(**extra):
    row = {
        "id": "r1", "loan_id": "l1", "reviewer_id": "b1", "reviewed_id": "o1",
        "rating": 5, "comment": "Otimo", "type": BORROWER_TO_LENDER,
        "created_at": datetime(2024, 7, 1), "updated_at": datetime(2024, 7, 1),
    }
    row.update(extra)
    return row


def new_review():
    return ReviewCreate(loan_id="l1", reviewed_id="o1", rating=5, type=BORROWER_TO_LENDER, comment="Otimo")


def test_create_checks_uniqueness_then_inserts(fake_db):
    fake_db.add_rows([], [review_row()])

    review = ReviewRepository().create(new_review(), reviewer_id="b1")

    check_sql, check_params = fake_db.queries[0]
    assert "WHERE loan_id = %s AND reviewer_id = %s AND type = %s" in check_sql
    assert check_params == ["l1", "b1", BORROWER_TO_LENDER]
    assert fake_db.writes[0][1][1] == "b1"
    assert review.rating == 5


def test_duplicate_review_raises_before_insert(fake_db):
    fake_db.add_rows([{"?column?": 1}])

    with pytest.raises(DuplicateReview):
        ReviewRepository().create(new_review(), reviewer_id="b1")
    assert fake_db.writes == []


def test_rating_stats_zero_filled_distribution(fake_db):
    fake_db.add_rows([{
        "average_rating": Decimal("4.3333"), "total_reviews": 3,
        "rating_1": 0, "rating_2": 0, "rating_3": 0, "rating_4": 2, "rating_5": 1,
    }])

    stats = ReviewRepository().get_user_rating_stats("o1")

    assert stats == {
        "average_rating": 4.33,
        "total_reviews": 3,
        "rating_distribution": {1: 0, 2: 0, 3: 0, 4: 2, 5: 1},
    }


def test_rating_stats_for_user_without_reviews(fake_db):
    fake_db.add_rows([{
        "average_rating": 0, "total_reviews": 0,
        "rating_1": 0, "rating_2": 0, "rating_3": 0, "rating_4": 0, "rating_5": 0,
    }])

    stats = ReviewRepository().get_user_rating_stats("nobody")

    assert stats["average_rating"] == 0.0
    assert stats["rating_distribution"] == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
