"""
Cached, paginated view over the members table.

A MemberCollection belongs to a single view (a request, a screen) and is the
only writer of its cached list. Writes update the cache optimistically as soon
as the backend confirms them; ``refresh()`` re-reads the first page and is the
point where the cache is reconciled with the database again, e.g. after a
change that affects sort order or the active filter.

Offset pagination over ``created_at DESC`` can repeat or skip a row at a page
boundary if members are created while paging. ``refresh()`` clears that up.
"""
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from memberdesk.core import settings
from memberdesk.core.errors import (
    AuthorizationError,
    MemberDeskError,
    NotFoundError,
    UniqueConstraintError,
    ValidationError,
)
from memberdesk.core.logging_config import get_logger
from memberdesk.crud.membersCrud import (
    delete_member,
    get_member_by_id,
    insert_member,
    list_members,
    update_member,
)
from memberdesk.db.guard import call_backend
from memberdesk.models.membersModel import Member
from memberdesk.services import lifecycle
from memberdesk.services.assignment_numbers import AssignmentNumberAllocator

logger = get_logger("services.member_collection")


class IdentityProvider(Protocol):
    def current_user_id(self) -> Optional[uuid.UUID]:
        ...


@dataclass(frozen=True)
class MemberFilters:
    search: Optional[str] = None
    is_active: Optional[bool] = None


class MemberCollection:
    def __init__(
        self,
        db: AsyncSession,
        identity: IdentityProvider,
        filters: Optional[MemberFilters] = None,
        *,
        allocator: Optional[AssignmentNumberAllocator] = None,
        page_size: Optional[int] = None,
    ):
        self.db = db
        self.identity = identity
        self.filters = filters or MemberFilters()
        self.allocator = allocator or AssignmentNumberAllocator.for_session(db)
        self.page_size = page_size or settings.MEMBER_PAGE_SIZE

        self.members: List[Member] = []
        self.has_more = True
        self.is_loading = False
        self.error: Optional[str] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Detach from the owning view; late results no longer touch the cache."""
        self._closed = True

    def require_user(self) -> uuid.UUID:
        user_id = self.identity.current_user_id()
        if not user_id:
            raise AuthorizationError("User not authenticated")
        return user_id

    def _cached(self, member_id: uuid.UUID) -> Optional[Member]:
        return next((m for m in self.members if m.id == member_id), None)

    def _replace_cached(self, member: Member) -> None:
        self.members = [member if m.id == member.id else m for m in self.members]

    async def list(self, filters: Optional[MemberFilters] = None, reset: bool = False) -> List[Member]:
        """Load one page. `reset` starts over at offset 0 and replaces the cache."""
        if filters is not None:
            self.filters = filters

        if not self.identity.current_user_id():
            logger.info("No user available, skipping member fetch")
            return self.members

        offset = 0 if reset else len(self.members)
        self.is_loading = True
        self.error = None
        logger.debug(f"Fetching members filters={self.filters} offset={offset} limit={self.page_size}")

        try:
            rows = await call_backend(
                list_members(
                    self.db,
                    search=self.filters.search,
                    is_active=self.filters.is_active,
                    offset=offset,
                    limit=self.page_size,
                ),
                action="fetch members",
            )
        except MemberDeskError as e:
            if not self._closed:
                self.error = e.message
            raise
        finally:
            self.is_loading = False

        if self._closed:
            return rows

        logger.info(f"Members fetched successfully: {len(rows)} records")
        if reset:
            self.members = rows
        else:
            self.members = self.members + rows
        self.has_more = len(rows) == self.page_size
        return self.members

    async def load_more(self) -> List[Member]:
        if self.is_loading or not self.has_more:
            return self.members
        return await self.list(reset=False)

    async def refresh(self) -> List[Member]:
        return await self.list(reset=True)

    async def get(self, member_id: uuid.UUID) -> Member:
        member = self._cached(member_id)
        if member is None:
            member = await call_backend(get_member_by_id(self.db, member_id), action="load member")
        if member is None:
            raise NotFoundError("Member not found")
        return member

    async def create(
        self,
        draft: Dict[str, Any],
        *,
        reallocate_on_conflict: Optional[bool] = None,
    ) -> Member:
        """
        Persist a new member and put it at the top of the cache.

        When the draft has no assignment number one is allocated. On a
        uniqueness conflict an allocated number is replaced and the insert is
        retried once; a caller-supplied number is never replaced unless
        `reallocate_on_conflict` says so.
        """
        user_id = self.require_user()

        values = dict(draft)
        supplied = bool(values.get("assignment_number"))
        if reallocate_on_conflict is None:
            reallocate_on_conflict = not supplied
        if not supplied:
            values["assignment_number"] = await self.allocator.allocate()
        values["created_by"] = user_id

        try:
            member = await call_backend(insert_member(self.db, values), action="add member")
        except UniqueConstraintError:
            if not reallocate_on_conflict:
                raise
            previous = values["assignment_number"]
            values["assignment_number"] = await self.allocator.allocate()
            logger.warning(
                f"Assignment number {previous} already taken, retrying with {values['assignment_number']}"
            )
            try:
                member = await call_backend(insert_member(self.db, values), action="add member")
            except UniqueConstraintError as exc:
                raise UniqueConstraintError(
                    "Could not assign a unique assignment number. Please try again."
                ) from exc

        logger.info(f"Member added successfully: {member.id} ({member.assignment_number})")
        if not self._closed:
            self.members = [member] + self.members
        return member

    async def update(self, member_id: uuid.UUID, patch: Dict[str, Any]) -> Member:
        """Validate and persist a partial change, replacing the cached entry in place."""
        self.require_user()

        current = await self.get(member_id)
        values = lifecycle.validate_member_update(current, patch)

        member = await call_backend(update_member(self.db, member_id, values), action="update member")
        if member is None:
            raise NotFoundError("Member not found")

        logger.info(f"Member updated successfully: {member_id}")
        if not self._closed:
            self._replace_cached(member)
        return member

    async def renew(self, member_id: uuid.UUID, extra_months: int = 1) -> Member:
        """Extend the membership end date; no other field changes."""
        self.require_user()
        if extra_months < 1:
            raise ValidationError("Renewal must extend the membership by at least one month")

        current = await self.get(member_id)
        if current.membership_end is None:
            raise ValidationError("Membership end date is missing")

        new_end = lifecycle.renew(current.membership_end, extra_months)
        member = await call_backend(
            update_member(self.db, member_id, {"membership_end": new_end}),
            action="renew membership",
        )
        if member is None:
            raise NotFoundError("Member not found")

        logger.info(f"Membership {member_id} renewed until {new_end.isoformat()}")
        if not self._closed:
            self._replace_cached(member)
        return member

    async def delete(self, member_id: uuid.UUID) -> Member:
        """
        Remove a member and drop it from the cache.

        Returns the deleted row so the caller can remove its photo object.
        """
        self.require_user()

        member = await call_backend(delete_member(self.db, member_id), action="delete member")
        if member is None:
            raise NotFoundError("Member not found")

        logger.info(f"Member deleted successfully: {member_id}")
        if not self._closed:
            self.members = [m for m in self.members if m.id != member_id]
        return member
