from datetime import datetime
from typing import Optional

import strawberry

from memberdesk.models.adminModel import AdminUser


@strawberry.type
class Admin:
    id: strawberry.ID
    email: str
    name: str
    role: str
    created_at: datetime

    @classmethod
    def from_model(cls, admin: AdminUser) -> "Admin":
        return cls(
            id=strawberry.ID(str(admin.id)),
            email=admin.email,
            name=admin.name,
            role=admin.role,
            created_at=admin.created_at,
        )


@strawberry.input
class LoginInput:
    email: str
    password: str


@strawberry.input
class CreateAdminInput:
    email: str
    name: str
    password: str
    role: str = "manager"


@strawberry.type
class TokenResponse:
    access_token: Optional[str]
    admin: Optional[Admin]
    message: str


@strawberry.type
class AdminResponse:
    admin: Optional[Admin]
    message: str
    error_kind: Optional[str] = None
