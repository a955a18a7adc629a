"""
repositories/message_repo.py
----------------------------
Data access layer for direct messages.
Conversations are derived here from the `messages` table; they are not stored.
"""

from dataclasses import asdict
from typing import Optional

from db.connection import execute_query, execute_write
from models.message import Message, MessageCreate
from repositories.base_repo import BaseRepository, PaginatedResult, as_values
from utils.logger import get_logger

logger = get_logger(__name__)

MESSAGE_FIELDS = (
    "id", "sender_id", "recipient_id", "item_id", "loan_id",
    "content", "is_read", "created_at", "updated_at",
)
MESSAGE_INSERT_FIELDS = ("sender_id", "recipient_id", "content", "item_id", "loan_id")

_DETAIL_QUERY = """
    SELECT
        {message_columns},
        s.first_name AS sender_first_name, s.last_name AS sender_last_name,
        s.avatar_url AS sender_avatar_url,
        rc.first_name AS recipient_first_name, rc.last_name AS recipient_last_name,
        rc.avatar_url AS recipient_avatar_url,
        i.title AS item_title,
        l.status AS loan_status
    FROM messages m
    JOIN users s ON m.sender_id = s.id
    JOIN users rc ON m.recipient_id = rc.id
    LEFT JOIN items i ON m.item_id = i.id
    LEFT JOIN loans l ON m.loan_id = l.id
""".format(message_columns=", ".join(f"m.{f}" for f in MESSAGE_FIELDS))


class MessageRepository:
    """Repository for the messages table and derived conversations."""

    def __init__(self):
        self.base = BaseRepository(
            "messages",
            MESSAGE_FIELDS,
            self._row_to_message,
            insert_fields=MESSAGE_INSERT_FIELDS,
            update_fields=("is_read",),
        )

    # ── CREATE ────────────────────────────────────────────

    def create(self, data: MessageCreate, sender_id: str) -> Message:
        return self.base.create({**as_values(data), "sender_id": sender_id})

    # ── READ ──────────────────────────────────────────────

    def find_by_id(self, message_id: str) -> Optional[Message]:
        return self.base.find_by_id(message_id)

    def find_with_pagination(
        self, filters: Optional[dict] = None, page: int = 1, limit: int = 20
    ) -> PaginatedResult[Message]:
        return self.base.find_with_pagination(filters, page, limit)

    def find_by_sender(self, sender_id: str) -> list[Message]:
        return self.base.find_all({"sender_id": sender_id})

    def find_by_recipient(self, recipient_id: str) -> list[Message]:
        return self.base.find_all({"recipient_id": recipient_id})

    def find_by_item(self, item_id: str) -> list[Message]:
        return self.base.find_all({"item_id": item_id})

    def find_by_loan(self, loan_id: str) -> list[Message]:
        return self.base.find_all({"loan_id": loan_id})

    def find_with_details(self, message_id: str) -> Optional[dict]:
        rows = execute_query(_DETAIL_QUERY + " WHERE m.id = %s;", [message_id])
        return self._row_to_details(rows[0]) if rows else None

    def get_conversation(self, user_id_1: str, user_id_2: str, limit: int = 50) -> list[dict]:
        """
        The latest `limit` messages exchanged by two users, oldest first.
        """
        sql = _DETAIL_QUERY + """
            WHERE (m.sender_id = %s AND m.recipient_id = %s)
               OR (m.sender_id = %s AND m.recipient_id = %s)
            ORDER BY m.created_at DESC
            LIMIT %s;
        """
        rows = execute_query(sql, [user_id_1, user_id_2, user_id_2, user_id_1, limit])
        return [self._row_to_details(r) for r in reversed(rows)]

    def get_user_conversations(self, user_id: str) -> list[dict]:
        """
        One entry per counterpart the user has exchanged messages with.

        The last message per counterpart comes from a ROW_NUMBER window
        partitioned by counterpart; the unread count covers messages the
        counterpart sent to this user that are still unread.

        Returns:
            [{'participant': {...}, 'last_message': {...}, 'unread_count': int}]
            ordered by the last message, newest first.
        """
        sql = """
            WITH ranked AS (
                SELECT
                    CASE WHEN sender_id = %s THEN recipient_id ELSE sender_id END AS other_user_id,
                    content, created_at, is_read, sender_id,
                    ROW_NUMBER() OVER (
                        PARTITION BY CASE WHEN sender_id = %s THEN recipient_id ELSE sender_id END
                        ORDER BY created_at DESC, id DESC
                    ) AS rn
                FROM messages
                WHERE sender_id = %s OR recipient_id = %s
            ),
            unread AS (
                SELECT sender_id, COUNT(*) AS unread_count
                FROM messages
                WHERE recipient_id = %s AND is_read = FALSE
                GROUP BY sender_id
            )
            SELECT
                p.id AS participant_id,
                p.first_name AS participant_first_name,
                p.last_name AS participant_last_name,
                p.avatar_url AS participant_avatar_url,
                ranked.content AS last_message_content,
                ranked.created_at AS last_message_created_at,
                ranked.is_read AS last_message_is_read,
                ranked.sender_id AS last_message_sender_id,
                COALESCE(unread.unread_count, 0) AS unread_count
            FROM ranked
            JOIN users p ON p.id = ranked.other_user_id
            LEFT JOIN unread ON unread.sender_id = ranked.other_user_id
            WHERE ranked.rn = 1
            ORDER BY ranked.created_at DESC;
        """
        rows = execute_query(sql, [user_id] * 5)
        return [
            {
                "participant": {
                    "id": r["participant_id"],
                    "first_name": r["participant_first_name"],
                    "last_name": r["participant_last_name"],
                    "avatar_url": r["participant_avatar_url"],
                },
                "last_message": {
                    "content": r["last_message_content"],
                    "created_at": r["last_message_created_at"],
                    "is_read": r["last_message_is_read"],
                    "sender_id": r["last_message_sender_id"],
                },
                "unread_count": int(r["unread_count"] or 0),
            }
            for r in rows
        ]

    def get_unread_count(self, user_id: str) -> int:
        sql = "SELECT COUNT(*) AS count FROM messages WHERE recipient_id = %s AND is_read = FALSE;"
        return int(execute_query(sql, [user_id])[0]["count"])

    def search_messages(self, user_id: str, term: str, limit: int = 20) -> list[dict]:
        """Messages the user sent or received whose content contains `term`."""
        sql = _DETAIL_QUERY + """
            WHERE (m.sender_id = %s OR m.recipient_id = %s)
              AND m.content ILIKE %s
            ORDER BY m.created_at DESC
            LIMIT %s;
        """
        escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        rows = execute_query(sql, [user_id, user_id, f"%{escaped}%", limit])
        return [self._row_to_details(r) for r in rows]

    # ── UPDATE ────────────────────────────────────────────

    def mark_as_read(self, sender_id: str, recipient_id: str) -> int:
        """Mark everything `sender_id` sent to `recipient_id` as read."""
        sql = """
            UPDATE messages SET is_read = TRUE, updated_at = NOW()
            WHERE sender_id = %s AND recipient_id = %s AND is_read = FALSE;
        """
        updated = execute_write(sql, [sender_id, recipient_id])
        if updated:
            logger.info(f"Marked {updated} message(s) from {sender_id} to {recipient_id} as read")
        return updated

    def mark_message_as_read(self, message_id: str) -> bool:
        return self.base.update(message_id, {"is_read": True}) is not None

    # ── DELETE ────────────────────────────────────────────

    def delete(self, message_id: str) -> bool:
        return self.base.delete(message_id)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_message(row: dict) -> Message:
        """Convert a database row to a Message domain object."""
        return Message(
            id=row["id"],
            sender_id=row["sender_id"],
            recipient_id=row["recipient_id"],
            item_id=row["item_id"],
            loan_id=row["loan_id"],
            content=row["content"],
            is_read=row["is_read"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @classmethod
    def _row_to_details(cls, row: dict) -> dict:
        details = asdict(cls._row_to_message(row))
        details["sender"] = {
            "id": row["sender_id"],
            "first_name": row["sender_first_name"],
            "last_name": row["sender_last_name"],
            "avatar_url": row["sender_avatar_url"],
        }
        details["recipient"] = {
            "id": row["recipient_id"],
            "first_name": row["recipient_first_name"],
            "last_name": row["recipient_last_name"],
            "avatar_url": row["recipient_avatar_url"],
        }
        details["item"] = (
            {"id": row["item_id"], "title": row["item_title"]} if row["item_id"] else None
        )
        details["loan"] = (
            {"id": row["loan_id"], "status": row["loan_status"]} if row["loan_id"] else None
        )
        return details
