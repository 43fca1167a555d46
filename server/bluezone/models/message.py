from datetime import datetime
from typing import TypedDict


class MessageDocument(TypedDict, total=False):
    _id: str
    conversation_id: str
    sender_id: str
    content: str
    created_at: datetime
    # set by a non-sender participant's mark-read
    read: bool
