from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from models.refresh_token import RefreshToken
from models.user import User, UserCreate
from security.tokens import create_access_token, decode_access_token, parse_duration
from services.auth_service import AuthService, validate_password_strength
from utils.errors import AuthenticationError, ConflictError, ValidationError


def make_user(**overrides):
    data = dict(id="u1", email="ana@example.com", password_hash="hash", first_name="Ana", last_name="Lima")
    data.update(overrides)
    return User(**data)


def make_service():
    users, tokens = MagicMock(), MagicMock()
    return AuthService(user_repo=users, token_repo=tokens), users, tokens


# ── PASSWORD RULES ────────────────────────────────────────

@pytest.mark.parametrize("password", ["short1!", "nouppercase1!", "NOLOWERCASE1!", "NoDigits!!", "NoSpecial12"])
def test_weak_passwords_are_rejected(password):
    with pytest.raises(ValidationError):
        validate_password_strength(password)


def test_strong_password_passes():
    validate_password_strength("Secret12!")


# ── REGISTER / LOGIN ──────────────────────────────────────

def test_register_issues_a_token_pair():
    service, users, tokens = make_service()
    users.find_by_email.return_value = None
    users.create.return_value = make_user()

    data = UserCreate(email=" Ana@Example.com ", password="Secret12!", first_name="Ana", last_name="Lima")
    session = service.register(data)

    assert users.create.call_args[0][0].email == "ana@example.com"
    assert data.email == " Ana@Example.com "
    assert decode_access_token(session["access_token"])["sub"] == "u1"
    assert session["refresh_token"]
    stored = tokens.create.call_args[0][0]
    assert stored.user_id == "u1"
    assert stored.token == session["refresh_token"]
    assert "password_hash" not in session["user"]


def test_register_duplicate_email():
    service, users, _ = make_service()
    users.find_by_email.return_value = make_user()

    with pytest.raises(ConflictError):
        service.register(UserCreate(email="ana@example.com", password="Secret12!", first_name="A", last_name="L"))
    users.create.assert_not_called()


def test_login_wrong_password_is_generic():
    service, users, tokens = make_service()
    users.find_by_email.return_value = make_user()
    users.verify_password.return_value = False

    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        service.login("ana@example.com", "nope")
    tokens.create.assert_not_called()


def test_login_unknown_email_is_generic():
    service, users, _ = make_service()
    users.find_by_email.return_value = None

    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        service.login("who@example.com", "Secret12!")


def test_login_inactive_user():
    service, users, _ = make_service()
    users.find_by_email.return_value = make_user(is_active=False)
    users.verify_password.return_value = True

    with pytest.raises(AuthenticationError):
        service.login("ana@example.com", "Secret12!")


# ── REFRESH / LOGOUT ──────────────────────────────────────

def test_refresh_rotates_the_token():
    service, users, tokens = make_service()
    tokens.find_valid_token.return_value = RefreshToken(id="t1", user_id="u1", token_hash="h", expires_at=None)
    users.find_by_id.return_value = make_user()

    session = service.refresh("old-token", "u1")

    tokens.revoke_token.assert_called_once_with("t1")
    assert tokens.create.call_count == 1
    assert session["refresh_token"] != "old-token"


def test_refresh_with_unknown_token():
    service, _, tokens = make_service()
    tokens.find_valid_token.return_value = None

    with pytest.raises(AuthenticationError):
        service.refresh("bad", "u1")
    tokens.revoke_token.assert_not_called()


def test_refresh_for_inactive_user():
    service, users, tokens = make_service()
    tokens.find_valid_token.return_value = RefreshToken(id="t1", user_id="u1", token_hash="h", expires_at=None)
    users.find_by_id.return_value = make_user(is_active=False)

    with pytest.raises(AuthenticationError):
        service.refresh("old-token", "u1")
    tokens.revoke_token.assert_not_called()


def test_logout_unknown_token_returns_false():
    service, _, tokens = make_service()
    tokens.find_valid_token.return_value = None
    assert service.logout("nope", "u1") is False


def test_change_password_revokes_all_sessions():
    service, users, tokens = make_service()
    users.find_by_id.return_value = make_user()
    users.verify_password.return_value = True

    service.change_password("u1", "Secret12!", "Better34$")

    users.update_password.assert_called_once_with("u1", "Better34$")
    tokens.revoke_all_user_tokens.assert_called_once_with("u1")


# ── ACCESS TOKENS ─────────────────────────────────────────

def test_verify_access_token_resolves_user():
    service, users, _ = make_service()
    users.find_by_id.return_value = make_user()

    user = service.verify_access_token(create_access_token("u1", "ana@example.com"))

    assert user.id == "u1"
    users.find_by_id.assert_called_once_with("u1")


def test_expired_access_token_is_rejected():
    service, _, _ = make_service()
    token = create_access_token("u1", "ana@example.com", expires_delta=timedelta(seconds=-5))

    with pytest.raises(AuthenticationError):
        service.verify_access_token(token)


def test_tampered_access_token_is_rejected():
    service, _, _ = make_service()
    with pytest.raises(AuthenticationError):
        service.verify_access_token(create_access_token("u1", "a@b.co") + "x")


@pytest.mark.parametrize("value,expected", [
    ("7d", timedelta(days=7)),
    ("15m", timedelta(minutes=15)),
    ("12h", timedelta(hours=12)),
    ("30s", timedelta(seconds=30)),
])
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected


def test_parse_duration_rejects_garbage():
    with pytest.raises(ValueError):
        parse_duration("a week")
