from datetime import datetime

from models.message import MessageCreate
from repositories.message_repo import MessageRepository


def detail_row(message_id, sender="u1", recipient="u2", minute=0, **extra):
    row = {
        "id": message_id, "sender_id": sender, "recipient_id": recipient,
        "item_id": None, "loan_id": None, "content": f"msg {message_id}",
        "is_read": False, "created_at": datetime(2024, 6, 1, 10, minute),
        "updated_at": datetime(2024, 6, 1, 10, minute),
        "sender_first_name": "A", "sender_last_name": "A", "sender_avatar_url": None,
        "recipient_first_name": "B", "recipient_last_name": "B", "recipient_avatar_url": None,
        "item_title": None, "loan_status": None,
    }
    row.update(extra)
    return row


def test_create_sets_sender_from_argument(fake_db):
    fake_db.add_rows([detail_row("m1")])

    MessageRepository().create(MessageCreate(recipient_id="u2", content="Oi"), sender_id="u1")

    sql, params = fake_db.writes[0]
    assert sql.startswith("INSERT INTO messages (id, sender_id, recipient_id, content)")
    assert params[1:] == ["u1", "u2", "Oi"]


def test_conversation_is_returned_oldest_first(fake_db):
    fake_db.add_rows([detail_row("m3", minute=3), detail_row("m2", minute=2), detail_row("m1", minute=1)])

    thread = MessageRepository().get_conversation("u1", "u2", limit=3)

    assert [m["id"] for m in thread] == ["m1", "m2", "m3"]
    sql, params = fake_db.queries[0]
    assert "ORDER BY m.created_at DESC LIMIT %s;" in sql
    assert params == ["u1", "u2", "u2", "u1", 3]
    assert thread[0]["item"] is None


def test_user_conversations_shape(fake_db):
    fake_db.add_rows([{
        "participant_id": "u2", "participant_first_name": "B", "participant_last_name": "B",
        "participant_avatar_url": None, "last_message_content": "tchau",
        "last_message_created_at": datetime(2024, 6, 2), "last_message_is_read": False,
        "last_message_sender_id": "u2", "unread_count": 3,
    }])

    conversations = MessageRepository().get_user_conversations("u1")

    assert conversations == [{
        "participant": {"id": "u2", "first_name": "B", "last_name": "B", "avatar_url": None},
        "last_message": {
            "content": "tchau", "created_at": datetime(2024, 6, 2),
            "is_read": False, "sender_id": "u2",
        },
        "unread_count": 3,
    }]
    sql, params = fake_db.queries[0]
    assert "ROW_NUMBER() OVER" in sql
    assert params == ["u1"] * 5


def test_mark_as_read_targets_one_direction(fake_db):
    fake_db.add_rowcounts(2)

    assert MessageRepository().mark_as_read("u2", "u1") == 2

    sql, params = fake_db.writes[0]
    assert "WHERE sender_id = %s AND recipient_id = %s AND is_read = FALSE" in sql
    assert params == ["u2", "u1"]


def test_unread_count(fake_db):
    fake_db.add_rows([{"count": 4}])
    assert MessageRepository().get_unread_count("u1") == 4
