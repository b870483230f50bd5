from datetime import date
from typing import List, Optional

import strawberry
from sqlalchemy.ext.asyncio import AsyncSession

from memberdesk.core import settings
from memberdesk.core.conversions import coerce_uuid
from memberdesk.crud.membersCrud import (
    get_member_by_id,
    get_member_stats,
    list_expiring_members,
    list_members,
)
from memberdesk.db.guard import call_backend
from memberdesk.graphql.auth.permissions import IsAuthenticated
from memberdesk.graphql.members.types import Member, MembersPage, MemberStats, ReminderLink
from memberdesk.services.lifecycle import days_remaining
from memberdesk.services.whatsapp import build_whatsapp_url, create_payment_reminder_message

MAX_PAGE_SIZE = 100


@strawberry.type
class MembersQuery:
    @strawberry.field(permission_classes=[IsAuthenticated])
    async def members(
        self,
        info: strawberry.Info,
        search: Optional[str] = None,
        active_only: Optional[bool] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> MembersPage:
        """Newest first. `hasMore` is true when the page came back full."""
        db: AsyncSession = info.context.db
        page_size = min(max(limit or settings.MEMBER_PAGE_SIZE, 1), MAX_PAGE_SIZE)

        rows = await call_backend(
            list_members(
                db,
                search=search,
                is_active=active_only,
                offset=max(offset, 0),
                limit=page_size,
            ),
            action="fetch members",
        )
        today = date.today()
        return MembersPage(
            items=[Member.from_model(row, today) for row in rows],
            has_more=len(rows) == page_size,
        )

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def member(self, info: strawberry.Info, id: strawberry.ID) -> Optional[Member]:
        member_id = coerce_uuid(id)
        if member_id is None:
            return None
        row = await call_backend(get_member_by_id(info.context.db, member_id), action="load member")
        return Member.from_model(row) if row else None

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def member_stats(self, info: strawberry.Info) -> MemberStats:
        data = await call_backend(get_member_stats(info.context.db, date.today()), action="load member stats")
        return MemberStats.from_dataclass(data)

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def expiring_members(self, info: strawberry.Info, days_ahead: int = 7) -> List[Member]:
        today = date.today()
        rows = await call_backend(
            list_expiring_members(info.context.db, today, max(days_ahead, 0)),
            action="load expiring members",
        )
        return [Member.from_model(row, today) for row in rows]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def reminder_link(self, info: strawberry.Info, member_id: strawberry.ID) -> Optional[ReminderLink]:
        """WhatsApp link with a renewal reminder for the member."""
        parsed_id = coerce_uuid(member_id)
        if parsed_id is None:
            return None
        row = await call_backend(get_member_by_id(info.context.db, parsed_id), action="load member")
        if row is None:
            return None

        remaining = days_remaining(row.membership_end, date.today())
        message = create_payment_reminder_message(row.full_name, row.membership_end, remaining)
        return ReminderLink(
            url=build_whatsapp_url(row.phone_number, message),
            message=message,
            days_remaining=remaining,
        )
