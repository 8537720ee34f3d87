from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


ROLE_PERMISSIONS: dict[Role, set[str]] = {
    Role.ADMIN: {
        "requests:manage:department",
    },
    Role.MEMBER: set(),
}


def has_permission(role: Role, permission: str) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, set())
