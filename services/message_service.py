"""
services/message_service.py
---------------------------
Business rules for direct messages.
"""

from dataclasses import replace
from typing import Optional

from models.message import Message, MessageCreate
from repositories.message_repo import MessageRepository
from repositories.user_repo import UserRepository
from utils.errors import NotFoundError, ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)

MAX_MESSAGE_LENGTH = 2000


class MessageService:
    """Handles all business logic related to messaging."""

    def __init__(
        self,
        message_repo: Optional[MessageRepository] = None,
        user_repo: Optional[UserRepository] = None,
    ):
        self.messages = message_repo or MessageRepository()
        self.users = user_repo or UserRepository()

    def send_message(self, data: MessageCreate, sender_id: str) -> Message:
        """
        Raises:
            ValidationError: Empty or too long content, or messaging yourself.
            NotFoundError: Recipient missing or deactivated.
        """
        content = (data.content or "").strip()
        if not content:
            raise ValidationError("Message content cannot be empty")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise ValidationError(
                f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters", {"length": len(content)}
            )
        if data.recipient_id == sender_id:
            raise ValidationError("You cannot send a message to yourself")

        recipient = self.users.find_by_id(data.recipient_id)
        if recipient is None or not recipient.is_active:
            raise NotFoundError("Recipient not found", {"recipient_id": data.recipient_id})

        return self.messages.create(replace(data, content=content), sender_id)

    def get_conversation(self, user_id: str, other_user_id: str, limit: int = 50) -> list[dict]:
        """The thread with another user, oldest first; their messages become read."""
        thread = self.messages.get_conversation(user_id, other_user_id, limit)
        self.messages.mark_as_read(other_user_id, user_id)
        return thread

    def get_conversations(self, user_id: str) -> list[dict]:
        return self.messages.get_user_conversations(user_id)

    def get_unread_count(self, user_id: str) -> int:
        return self.messages.get_unread_count(user_id)

    def search_messages(self, user_id: str, term: str, limit: int = 20) -> list[dict]:
        if not (term or "").strip():
            raise ValidationError("Search term cannot be empty")
        return self.messages.search_messages(user_id, term.strip(), limit)
