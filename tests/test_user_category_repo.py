from datetime import datetime
from decimal import Decimal

from models.category import CategoryUpdate
from models.user import UserCreate
from repositories.category_repo import CategoryRepository
from repositories.user_repo import UserRepository
from security.passwords import hash_secret


def user_row(**extra):
    row = {
        "id": "u1", "email": "ana@example.com", "password_hash": hash_secret("Secret1!"),
        "first_name": "Ana", "last_name": "Lima", "phone": None, "avatar_url": None,
        "bio": None, "location_lat": None, "location_lng": None, "location_address": None,
        "is_verified": False, "is_active": True,
        "created_at": datetime(2024, 1, 1), "updated_at": datetime(2024, 1, 1),
    }
    row.update(extra)
    return row


def category_row(**extra):
    row = {
        "id": "c1", "name": "Tools", "description": None, "icon": "wrench", "color": "#333",
        "is_active": True, "created_at": datetime(2024, 1, 1), "updated_at": datetime(2024, 1, 1),
    }
    row.update(extra)
    return row


# ── USERS ─────────────────────────────────────────────────

def test_create_user_hashes_password(fake_db):
    fake_db.add_rows([user_row()])

    user = UserRepository().create(
        UserCreate(email="ana@example.com", password="Secret1!", first_name="Ana", last_name="Lima")
    )

    sql, params = fake_db.writes[0]
    assert sql.startswith("INSERT INTO users (id, email, password_hash, first_name, last_name)")
    assert "Secret1!" not in params
    assert UserRepository().verify_password(user, "Secret1!") is True
    assert UserRepository().verify_password(user, "wrong") is False


def test_find_by_email(fake_db):
    fake_db.add_rows([user_row()])

    user = UserRepository().find_by_email("ana@example.com")

    assert user.full_name == "Ana Lima"
    assert "password_hash" not in user.to_public_dict()
    assert fake_db.queries[0][1] == ["ana@example.com"]


def test_find_by_location_binds_center_for_select_and_filter(fake_db):
    fake_db.add_rows([{**user_row(), "distance": Decimal("1.5")}])

    users = UserRepository().find_by_location(-23.5, -46.6, radius_km=5)

    sql, params = fake_db.queries[0]
    assert "password_hash" not in sql
    assert params == [-23.5, -46.6, -23.5, -23.5, -46.6, -23.5, 5]
    assert users[0]["distance"] == 1.5


def test_user_stats_zero_filled(fake_db):
    fake_db.add_rows([{
        "items_count": 0, "loans_as_borrower": 0, "loans_as_lender": 0,
        "reviews_received": 0, "average_rating": 0,
    }])

    assert UserRepository().get_user_stats("u1") == {
        "items_count": 0, "loans_as_borrower": 0, "loans_as_lender": 0,
        "reviews_received": 0, "average_rating": 0.0,
    }


def test_deactivate_is_a_soft_delete(fake_db):
    fake_db.add_rows([user_row(is_active=False)])

    user = UserRepository().deactivate("u1")

    assert fake_db.writes[0] == (
        "UPDATE users SET is_active = %s, updated_at = NOW() WHERE id = %s;", [False, "u1"]
    )
    assert user.is_active is False


def test_update_location_without_address_keeps_stored_one(fake_db):
    fake_db.add_rows([user_row(location_lat=-23.5, location_lng=-46.6)])

    UserRepository().update_location("u1", -23.5, -46.6)

    assert fake_db.writes[0] == (
        "UPDATE users SET location_lat = %s, location_lng = %s, updated_at = NOW() WHERE id = %s;",
        [-23.5, -46.6, "u1"],
    )


# ── CATEGORIES ────────────────────────────────────────────

def test_find_popular_requires_items(fake_db):
    fake_db.add_rows([{**category_row(), "item_count": 3}])

    popular = CategoryRepository().find_popular(limit=5)

    sql, params = fake_db.queries[0]
    assert "HAVING COUNT(i.id) > 0" in sql
    assert params == [5]
    assert popular[0]["item_count"] == 3


def test_category_stats_zero_filled(fake_db):
    fake_db.add_rows([{"total_items": 0, "available_items": 0, "average_daily_rate": None}])

    assert CategoryRepository().get_category_stats("c1") == {
        "total_items": 0, "available_items": 0, "average_daily_rate": 0.0,
    }


def test_category_update_can_deactivate(fake_db):
    fake_db.add_rows([category_row(is_active=False)])

    CategoryRepository().update("c1", CategoryUpdate(is_active=False))

    assert fake_db.writes[0][1] == [False, "c1"]


def test_is_in_use(fake_db):
    fake_db.add_rows([])
    assert CategoryRepository().is_in_use("c1") is False


def test_category_hard_delete(fake_db):
    fake_db.add_rowcounts(1)

    assert CategoryRepository().delete("c1") is True
    assert fake_db.writes[0] == ("DELETE FROM categories WHERE id = %s;", ["c1"])
