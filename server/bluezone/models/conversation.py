from datetime import datetime
from typing import Dict, List, Optional, TypedDict


class ConversationDocument(TypedDict, total=False):
    _id: str
    # "<min_id>:<max_id>" while the pair is intact, "left:<_id>" afterwards
    pair_key: str
    participants: List[str]
    created_at: datetime
    last_message_at: datetime
    last_message_preview: Optional[str]
    # per-user read state (user_id -> value)
    unread_counters: Dict[str, int]
    last_read_at: Dict[str, Optional[datetime]]
