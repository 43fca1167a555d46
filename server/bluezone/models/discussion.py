from datetime import datetime
from typing import List, Optional, TypedDict


class DiscussionDocument(TypedDict, total=False):
    _id: str
    author_id: str
    title: str
    content: str
    category: str
    tags: List[str]
    views: int
    reply_count: int
    created_at: datetime
    updated_at: datetime


class ReplyDocument(TypedDict, total=False):
    _id: str
    discussion_id: str
    author_id: str
    parent_id: Optional[str]
    content: str
    created_at: datetime
    updated_at: datetime
