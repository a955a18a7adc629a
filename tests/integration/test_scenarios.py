from datetime import date, datetime, timedelta, timezone

import pytest

from models.item import ItemSearchFilters
from models.loan import APPROVED, COMPLETED, LoanCreate, LoanUpdate
from models.refresh_token import RefreshTokenCreate
from models.review import BORROWER_TO_LENDER, LENDER_TO_BORROWER, ReviewCreate
from repositories.item_repo import ItemRepository
from repositories.loan_repo import LoanRepository
from repositories.refresh_token_repo import RefreshTokenRepository
from repositories.review_repo import ReviewRepository
from utils.errors import ConflictingLoan, DuplicateReview

KM_PER_DEGREE = 111.195
CENTER = (-23.5505, -46.6333)


def day(n: int) -> date:
    return date(2031, 3, n)


# ── LOANS ─────────────────────────────────────────────────

@pytest.fixture
def approved_loan(make_user, make_item):
    owner, borrower = make_user(), make_user()
    item = make_item(owner)
    repo = LoanRepository()
    loan = repo.create(LoanCreate(item.id, day(10), day(15)), borrower.id)
    return repo.update(loan.id, LoanUpdate(status=APPROVED))


def test_loan_total_uses_item_rate(approved_loan):
    assert approved_loan.total_amount == 50.0
    assert approved_loan.lender_id != approved_loan.borrower_id


@pytest.mark.parametrize("start,end,expected", [
    (12, 13, True),
    (16, 20, False),
    (8, 11, True),
    (14, 18, True),
    (5, 9, False),
])
def test_overlap_against_approved_loan(approved_loan, start, end, expected):
    assert LoanRepository().has_conflicting_loans(approved_loan.item_id, day(start), day(end)) is expected


def test_loan_does_not_conflict_with_itself(approved_loan):
    assert LoanRepository().has_conflicting_loans(
        approved_loan.item_id, day(10), day(15), exclude_loan_id=approved_loan.id
    ) is False


def test_overlapping_request_is_refused(approved_loan, make_user):
    with pytest.raises(ConflictingLoan):
        LoanRepository().create(LoanCreate(approved_loan.item_id, day(12), day(13)), make_user().id)


# ── GEO ───────────────────────────────────────────────────

def test_nearby_items_within_radius_closest_first(make_user, make_item):
    owner = make_user()
    lat, lng = CENTER
    for title, km in (("A", 2), ("B", 8), ("C", 15)):
        make_item(owner, title=title, location_lat=lat + km / KM_PER_DEGREE, location_lng=lng)

    nearby = ItemRepository().find_nearby(lat, lng, radius_km=10)

    assert [i["title"] for i in nearby] == ["A", "B"]
    assert nearby[0]["distance"] == pytest.approx(2, abs=0.01)

    page = ItemRepository().search_items(
        ItemSearchFilters(location_lat=lat, location_lng=lng, radius=10)
    )
    assert page.pagination.total == 2
    assert [i["title"] for i in page.data] == ["A", "B"]


def test_viewer_location_sorts_without_dropping_unlocated_items(make_user, make_item):
    owner = make_user()
    lat, lng = CENTER
    make_item(owner, title="Sem local")
    make_item(owner, title="Perto", location_lat=lat + 1 / KM_PER_DEGREE, location_lng=lng)

    page = ItemRepository().search_items(ItemSearchFilters(), user_lat=lat, user_lng=lng)

    assert page.pagination.total == 2
    assert [i["title"] for i in page.data] == ["Perto", "Sem local"]
    assert page.data[1]["distance"] is None


def test_text_search_matches_title(make_user, make_item):
    owner = make_user()
    make_item(owner, title="Furadeira Bosch")
    make_item(owner, title="Barraca de camping", description="Barraca para 4 pessoas")

    page = ItemRepository().search_items(ItemSearchFilters(search="barraca"))

    assert [i["title"] for i in page.data] == ["Barraca de camping"]


# ── REVIEWS ───────────────────────────────────────────────

def test_one_review_per_loan_reviewer_and_type(approved_loan):
    loans, reviews = LoanRepository(), ReviewRepository()
    loans.update(approved_loan.id, LoanUpdate(status=COMPLETED))
    borrower, lender = approved_loan.borrower_id, approved_loan.lender_id

    reviews.create(ReviewCreate(approved_loan.id, lender, 5, BORROWER_TO_LENDER), borrower)
    with pytest.raises(DuplicateReview):
        reviews.create(ReviewCreate(approved_loan.id, lender, 4, BORROWER_TO_LENDER), borrower)
    reviews.create(ReviewCreate(approved_loan.id, borrower, 4, LENDER_TO_BORROWER), lender)

    stats = reviews.get_user_rating_stats(lender)
    assert stats["total_reviews"] == 1
    assert stats["rating_distribution"][5] == 1


# ── ROUND TRIP / DELETE ───────────────────────────────────

def test_create_round_trip(make_user, make_item):
    owner = make_user()
    item = make_item(owner, estimated_value=250.0)

    fetched = ItemRepository().find_by_id(item.id)

    assert fetched == item
    assert fetched.owner_id == owner.id


def test_soft_then_hard_delete(make_user, make_item):
    repo = ItemRepository()
    item = make_item(make_user())

    repo.soft_delete(item.id)
    assert repo.find_by_id(item.id).is_active is False
    assert repo.find_with_details(item.id) is None

    assert repo.delete(item.id) is True
    assert repo.find_by_id(item.id) is None
    assert repo.delete(item.id) is False


# ── TOKENS ────────────────────────────────────────────────

def test_refresh_token_lifecycle(make_user):
    user = make_user()
    repo = RefreshTokenRepository()
    expires = datetime.now(timezone.utc) + timedelta(days=7)
    stored = repo.create(RefreshTokenCreate(user.id, "plain-value", expires))

    assert repo.find_valid_token("plain-value", user.id).id == stored.id
    assert repo.find_valid_token("other-value", user.id) is None

    repo.revoke_token(stored.id)
    assert repo.find_valid_token("plain-value", user.id) is None
    assert repo.clean_expired_tokens() == 1


def test_expired_refresh_token_is_not_valid(make_user):
    user = make_user()
    repo = RefreshTokenRepository()
    expired = datetime.now(timezone.utc) - timedelta(seconds=1)
    repo.create(RefreshTokenCreate(user.id, "stale-value", expired))

    assert repo.find_valid_token("stale-value", user.id) is None
    assert repo.get_user_active_tokens_count(user.id) == 0
    assert repo.clean_expired_tokens() == 1
