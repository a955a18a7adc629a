"""
models/message.py
-----------------
Domain model for direct messages between users.
Conversations are not stored; they are derived from messages at query time.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Message:
    id: str
    sender_id: str
    recipient_id: str
    content: str
    item_id: Optional[str] = None
    loan_id: Optional[str] = None
    is_read: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class MessageCreate:
    recipient_id: str
    content: str
    item_id: Optional[str] = None
    loan_id: Optional[str] = None
