from datetime import datetime
from typing import Any, Dict, List, Optional


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if isinstance(value, datetime) else value


def format_user(user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not user:
        return None
    return {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("role", "member"),
        "avatar": user.get("avatar"),
        "interests": user.get("interests") or [],
    }


def serialize_message(message: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(message["_id"]),
        "conversation_id": str(message["conversation_id"]),
        "sender_id": message["sender_id"],
        "content": message["content"],
        "read": bool(message.get("read")),
        "created_at": _iso(message.get("created_at")),
    }


def serialize_conversation(
    convo: Dict[str, Any],
    viewer_id: str,
    users: Dict[str, Dict[str, Any]] | None = None,
    last_message: Optional[Dict[str, Any]] = None,
    messages: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    users = users or {}
    unread = convo.get("unread_counters") or {}
    last_read = convo.get("last_read_at") or {}
    data: Dict[str, Any] = {
        "id": str(convo["_id"]),
        "participants": [
            {
                "user_id": uid,
                "user": format_user(users.get(uid)),
                "unread_count": int(unread.get(uid, 0)),
                "last_read_at": _iso(last_read.get(uid)),
            }
            for uid in convo.get("participants", [])
        ],
        "unread_count": int(unread.get(viewer_id, 0)),
        "last_message_at": _iso(convo.get("last_message_at")),
        "last_message_preview": convo.get("last_message_preview"),
        "created_at": _iso(convo.get("created_at")),
    }
    if last_message is not None:
        data["last_message"] = serialize_message(last_message)
    if messages is not None:
        data["messages"] = [serialize_message(m) for m in messages]
    return data


def serialize_notification(notification: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(notification["_id"]),
        "recipient_id": notification["recipient_id"],
        "type": notification["type"],
        "title": notification.get("title"),
        "content": notification.get("content"),
        "link": notification.get("link"),
        "read": bool(notification.get("read")),
        "created_at": _iso(notification.get("created_at")),
    }


def serialize_discussion(discussion: Dict[str, Any], likes: Dict[str, Any] | None = None, author: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    likes = likes or {"likes_count": 0, "liked_by_user": False}
    return {
        "id": str(discussion["_id"]),
        "author_id": discussion["author_id"],
        "author": format_user(author),
        "title": discussion["title"],
        "content": discussion["content"],
        "category": discussion.get("category"),
        "tags": discussion.get("tags") or [],
        "views": discussion.get("views", 0),
        "replies_count": discussion.get("reply_count", 0),
        "likes_count": likes["likes_count"],
        "liked_by_user": likes["liked_by_user"],
        "created_at": _iso(discussion.get("created_at")),
        "updated_at": _iso(discussion.get("updated_at")),
    }


def serialize_reply(reply: Dict[str, Any], likes: Dict[str, Any] | None = None, author: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    likes = likes or {"likes_count": 0, "liked_by_user": False}
    return {
        "id": str(reply["_id"]),
        "discussion_id": reply["discussion_id"],
        "parent_id": reply.get("parent_id"),
        "author_id": reply["author_id"],
        "author": format_user(author),
        "content": reply["content"],
        "likes_count": likes["likes_count"],
        "liked_by_user": likes["liked_by_user"],
        "created_at": _iso(reply.get("created_at")),
        "updated_at": _iso(reply.get("updated_at")),
    }
