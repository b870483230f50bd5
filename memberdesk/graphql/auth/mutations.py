import strawberry
from fastapi import Response

from memberdesk.core.errors import MemberDeskError
from memberdesk.core.logging_config import get_logger, log_auth_event
from memberdesk.crud.adminsCrud import create_admin, get_admin_by_email
from memberdesk.db.guard import call_backend
from memberdesk.graphql.auth.permissions import IsOwner
from memberdesk.graphql.auth.types import (
    Admin,
    AdminResponse,
    CreateAdminInput,
    LoginInput,
    TokenResponse,
)
from memberdesk.security.hashing import verify_password
from memberdesk.security.jwt import (
    create_access_token,
    create_refresh_token,
    get_cookie_samesite_setting,
    get_cookie_secure_setting,
    get_refresh_cookie_max_age_seconds,
)

logger = get_logger("graphql.auth")

ADMIN_ROLES = ("owner", "manager")
MIN_PASSWORD_LENGTH = 8


@strawberry.type
class AuthMutation:
    @strawberry.mutation
    async def login(self, data: LoginInput, info: strawberry.Info) -> TokenResponse:
        db = info.context.db

        admin = await call_backend(get_admin_by_email(db, data.email), action="sign in")
        if admin is None or not verify_password(data.password, admin.password_hash):
            log_auth_event("login", email=data.email, success=False)
            return TokenResponse(access_token=None, admin=None, message="Invalid email or password")

        claims = {"user_id": str(admin.id), "email": admin.email}
        access_token = create_access_token(claims)
        refresh_token = create_refresh_token(claims)

        response: Response = info.context.response
        if response is not None:
            response.set_cookie(
                key="refresh_token",
                value=refresh_token,
                httponly=True,
                secure=get_cookie_secure_setting(),
                samesite=get_cookie_samesite_setting(),
                max_age=get_refresh_cookie_max_age_seconds(),
            )
            response.headers["x-access-token"] = access_token

        log_auth_event("login", email=admin.email, success=True)
        return TokenResponse(access_token=access_token, admin=Admin.from_model(admin), message="Login successful")

    @strawberry.mutation(permission_classes=[IsOwner])
    async def create_admin(self, info: strawberry.Info, input: CreateAdminInput) -> AdminResponse:
        """Add a staff account (owner only)"""
        if input.role not in ADMIN_ROLES:
            return AdminResponse(admin=None, message="Role must be owner or manager", error_kind="validation")
        if len(input.password) < MIN_PASSWORD_LENGTH:
            return AdminResponse(
                admin=None,
                message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                error_kind="validation",
            )

        try:
            admin = await call_backend(
                create_admin(
                    info.context.db,
                    email=input.email,
                    name=input.name,
                    password=input.password,
                    role=input.role,
                ),
                action="add admin",
            )
        except MemberDeskError as e:
            return AdminResponse(admin=None, message=e.message, error_kind=e.kind)

        logger.info(f"Admin {admin.email} created by {info.context.user.email}")
        return AdminResponse(admin=Admin.from_model(admin), message="Admin added successfully")
