from unittest.mock import MagicMock

import pytest

from models.user import User, UserUpdate
from services.user_service import UserService
from utils.errors import ConflictError, NotFoundError, ValidationError


def make_user(**extra):
    data = dict(
        id="u1", email="ana@example.com", password_hash="x",
        first_name="Ana", last_name="Lima", is_active=True, is_verified=False,
    )
    data.update(extra)
    return User(**data)


def make_service(user=None):
    users = MagicMock()
    users.find_by_id.return_value = user
    users.get_profile.return_value = {"id": "u1", "full_name": "Ana Lima"} if user else None
    return UserService(user_repo=users), users


# ── PROFILE ───────────────────────────────────────────────

def test_update_profile_returns_refreshed_profile():
    service, users = make_service(make_user())
    data = UserUpdate(bio="Oi")

    profile = service.update_profile("u1", data)

    users.update.assert_called_once_with("u1", data)
    assert profile["full_name"] == "Ana Lima"


def test_update_profile_unknown_user():
    service, users = make_service(None)
    with pytest.raises(NotFoundError):
        service.update_profile("missing", UserUpdate(bio="Oi"))
    users.update.assert_not_called()


@pytest.mark.parametrize("data", [
    UserUpdate(location_lat=-23.5),
    UserUpdate(location_lng=-46.6),
    UserUpdate(location_lat=91, location_lng=0),
    UserUpdate(location_lat=0, location_lng=-181),
])
def test_update_profile_rejects_bad_coordinates(data):
    service, users = make_service(make_user())
    with pytest.raises(ValidationError):
        service.update_profile("u1", data)
    users.update.assert_not_called()


def test_update_location():
    service, users = make_service(make_user())

    service.update_location("u1", -23.5, -46.6, "Sao Paulo")

    users.update_location.assert_called_once_with("u1", -23.5, -46.6, "Sao Paulo")
    users.get_profile.assert_called_once_with("u1")


def test_update_location_out_of_range():
    service, users = make_service(make_user())
    with pytest.raises(ValidationError):
        service.update_location("u1", 100, 0)
    users.update_location.assert_not_called()


def test_update_avatar_requires_url():
    service, users = make_service(make_user())
    with pytest.raises(ValidationError):
        service.update_avatar("u1", "  ")

    service.update_avatar("u1", "https://cdn.example.com/a.png")
    users.update.assert_called_once_with("u1", UserUpdate(avatar_url="https://cdn.example.com/a.png"))


# ── LOOKUPS ───────────────────────────────────────────────

def test_users_near_location_validates_center():
    service, users = make_service()
    with pytest.raises(ValidationError):
        service.get_users_near_location(0, 200)

    service.get_users_near_location(-23.5, -46.6)
    users.find_by_location.assert_called_once_with(-23.5, -46.6, 10)


def test_is_email_available_normalizes():
    service, users = make_service()
    users.find_by_email.return_value = None

    assert service.is_email_available(" Ana@Example.com ") is True
    users.find_by_email.assert_called_once_with("ana@example.com")


def test_email_taken():
    service, users = make_service()
    users.find_by_email.return_value = make_user()
    assert service.is_email_available("ana@example.com") is False


# ── ACCOUNT STATUS ────────────────────────────────────────

def test_deactivate_account():
    service, users = make_service(make_user())
    service.deactivate_account("u1")
    users.deactivate.assert_called_once_with("u1")


def test_deactivate_inactive_account_is_a_conflict():
    service, users = make_service(make_user(is_active=False))
    with pytest.raises(ConflictError):
        service.deactivate_account("u1")
    users.deactivate.assert_not_called()


def test_activate_active_account_is_a_conflict():
    service, users = make_service(make_user())
    with pytest.raises(ConflictError):
        service.activate_account("u1")
    users.activate.assert_not_called()


def test_verify_email_twice_is_a_conflict():
    service, _ = make_service(make_user(is_verified=True))
    with pytest.raises(ConflictError):
        service.verify_email("u1")
