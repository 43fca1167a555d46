from datetime import datetime
from enum import Enum
from typing import TypedDict


class NotificationType(str, Enum):

    MESSAGE = "message"
    DISCUSSION_LIKE = "discussion_like"
    REPLY_LIKE = "reply_like"


class NotificationDocument(TypedDict, total=False):
    _id: str
    recipient_id: str
    type: str
    title: str
    content: str
    link: str
    read: bool
    created_at: datetime
