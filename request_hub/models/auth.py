from pydantic import BaseModel

from request_hub.core.rbac import Role


class TokenData(BaseModel):
    sub: str
    role: Role
    department: str


class CurrentUser(BaseModel):
    user_id: str
    role: Role = Role.MEMBER
    department: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
