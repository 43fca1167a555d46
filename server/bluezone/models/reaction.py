from datetime import datetime
from enum import Enum
from typing import TypedDict


class SubjectKind(str, Enum):

    DISCUSSION = "discussion"
    REPLY = "reply"


class ReactionDocument(TypedDict, total=False):
    _id: str
    subject_kind: str
    subject_id: str
    user_id: str
    created_at: datetime
