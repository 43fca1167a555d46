from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId


def parse_object_id(value: Any) -> Optional[ObjectId]:
    """Return an ObjectId for `value`, or None if it is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def pair_key(user_a: str, user_b: str) -> str:
    first, second = sorted([user_a, user_b])
    return f"{first}:{second}"
