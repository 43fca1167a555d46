from enum import Enum
from typing import Dict, FrozenSet, List, Optional, TypedDict


class UserRole(str, Enum):

    MEMBER = "member"
    ADMIN = "admin"
    MODERATOR = "moderator"
    COMPANY = "company"


class Capability(str, Enum):

    MODERATE_CONTENT = "moderate_content"
    MANAGE_USERS = "manage_users"
    POST_INITIATIVES = "post_initiatives"


ROLE_CAPABILITIES: Dict[UserRole, FrozenSet[Capability]] = {
    UserRole.MEMBER: frozenset(),
    UserRole.COMPANY: frozenset({Capability.POST_INITIATIVES}),
    UserRole.MODERATOR: frozenset({Capability.MODERATE_CONTENT}),
    UserRole.ADMIN: frozenset(Capability),
}


def parse_role(value: Optional[str]) -> UserRole:
    try:
        return UserRole(value)
    except ValueError:
        return UserRole.MEMBER


def has_capability(role: UserRole | str | None, capability: Capability) -> bool:
    if not isinstance(role, UserRole):
        role = parse_role(role)
    return capability in ROLE_CAPABILITIES[role]


class UserDocument(TypedDict, total=False):

    _id: str
    email: str
    name: str
    role: str
    avatar: Optional[str]
    interests: List[str]
    suspended: bool
