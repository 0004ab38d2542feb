from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    READER = "reader"
    ADMIN = "admin"


ROLE_SCOPES: dict[Role, set[str]] = {
    Role.READER: {"posts:read", "engagement:write"},
    Role.ADMIN: {
        "posts:read",
        "engagement:write",
        "posts:write",
        "categories:write",
        "notifications:read",
    },
}


@dataclass(slots=True)
class Principal:
    """Authenticated session identity passed to routes through dependency injection."""

    subject: str
    role: Role
    scopes: set[str] = field(default_factory=set)
    email: str | None = None
    name: str | None = None
    username: str | None = None
    avatar_url: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def require_scopes(self, required: set[str]) -> None:
        missing = required - self.scopes
        if missing:
            raise PermissionError(f"missing required scopes: {sorted(missing)}")
