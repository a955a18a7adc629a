from datetime import datetime, timedelta, timezone

from models.refresh_token import RefreshTokenCreate
from repositories.refresh_token_repo import RefreshTokenRepository
from security.passwords import hash_secret


def token_row(token_id, plaintext, **extra):
    row = {
        "id": token_id, "user_id": "u1", "token_hash": hash_secret(plaintext),
        "expires_at": datetime.now(timezone.utc) + timedelta(days=7),
        "is_revoked": False, "created_at": datetime.now(timezone.utc),
    }
    row.update(extra)
    return row


def test_create_stores_hash_not_plaintext(fake_db):
    fake_db.add_rows([token_row("t1", "plain-token")])
    expires = datetime.now(timezone.utc) + timedelta(days=7)

    RefreshTokenRepository().create(RefreshTokenCreate(user_id="u1", token="plain-token", expires_at=expires))

    sql, params = fake_db.writes[0]
    assert sql.startswith("INSERT INTO refresh_tokens (id, user_id, token_hash, expires_at)")
    assert "plain-token" not in params
    assert params[2].startswith("$2")


def test_find_valid_token_verifies_each_live_hash(fake_db):
    fake_db.add_rows([token_row("t1", "other"), token_row("t2", "mine")])

    found = RefreshTokenRepository().find_valid_token("mine", "u1")

    assert found.id == "t2"
    sql, params = fake_db.queries[0]
    assert "is_revoked = FALSE AND expires_at > NOW()" in sql
    assert params == ["u1"]


def test_find_valid_token_without_match(fake_db):
    fake_db.add_rows([token_row("t1", "other")])
    assert RefreshTokenRepository().find_valid_token("mine", "u1") is None


def test_revoke_token_does_not_touch_updated_at(fake_db):
    fake_db.add_rows([token_row("t1", "x", is_revoked=True)])

    assert RefreshTokenRepository().revoke_token("t1") is True
    assert fake_db.writes[0] == ("UPDATE refresh_tokens SET is_revoked = %s WHERE id = %s;", [True, "t1"])


def test_clean_expired_tokens_returns_count(fake_db):
    fake_db.add_rowcounts(3)

    assert RefreshTokenRepository().clean_expired_tokens() == 3
    assert fake_db.writes[0] == (
        "DELETE FROM refresh_tokens WHERE expires_at <= NOW() OR is_revoked = TRUE;", []
    )
