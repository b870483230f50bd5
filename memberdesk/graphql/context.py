import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from strawberry.fastapi import BaseContext

from memberdesk.core.conversions import coerce_uuid
from memberdesk.core.logging_config import get_logger
from memberdesk.crud.adminsCrud import get_admin_by_id
from memberdesk.db.postgresql import get_db
from memberdesk.models.adminModel import AdminUser
from memberdesk.security.jwt import create_access_token, verify_refresh_token, verify_token
from memberdesk.services.member_collection import MemberCollection, MemberFilters

logger = get_logger("graphql.context")


@dataclass
class Context(BaseContext):
    db: AsyncSession
    request: Optional[Request] = None
    response: Optional[Response] = None
    user: Optional[AdminUser] = None

    def current_user_id(self) -> Optional[uuid.UUID]:
        return self.user.id if self.user else None

    def member_collection(self, filters: Optional[MemberFilters] = None) -> MemberCollection:
        """A collection scoped to this request."""
        return MemberCollection(self.db, self, filters)


async def _load_user(db: AsyncSession, payload: Optional[dict]) -> Optional[AdminUser]:
    if not payload:
        return None
    user_id = coerce_uuid(payload.get("user_id"))
    if user_id is None:
        return None
    return await get_admin_by_id(db, user_id)


async def build_context(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> Context:
    access_token = request.headers.get("x-access-token")
    refresh_token = request.cookies.get("refresh_token")

    user = None
    if access_token:
        user = await _load_user(db, verify_token(access_token))

    if user is None and refresh_token:
        payload_refresh = verify_refresh_token(refresh_token)
        user = await _load_user(db, payload_refresh)
        if user is not None:
            logger.debug(f"Access token renewed from refresh token for {user.email}")
            response.headers["x-access-token"] = create_access_token(
                {"user_id": str(user.id), "email": user.email}
            )

    return Context(db=db, request=request, response=response, user=user)
