from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

import strawberry

from memberdesk.core.errors import MemberDeskError, PartialCompletionWarning
from memberdesk.crud.membersCrud import MemberStatsData
from memberdesk.models.membersModel import Member as MemberModel
from memberdesk.services import lifecycle


@strawberry.type
class Member:
    id: strawberry.ID
    assignment_number: str
    full_name: str
    phone_number: str
    joining_date: date
    membership_start: date
    membership_end: date
    total_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    photo_url: Optional[str]
    is_active: bool
    status: str
    days_remaining: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, member: MemberModel, today: Optional[date] = None) -> "Member":
        today = today or date.today()
        total = Decimal(member.total_amount or 0)
        discount = Decimal(member.discount_amount or 0)
        return cls(
            id=strawberry.ID(str(member.id)),
            assignment_number=member.assignment_number,
            full_name=member.full_name,
            phone_number=member.phone_number,
            joining_date=member.joining_date,
            membership_start=member.membership_start,
            membership_end=member.membership_end,
            total_amount=total,
            discount_amount=discount,
            final_amount=lifecycle.final_amount(total, discount),
            photo_url=member.photo_url,
            is_active=member.is_active,
            status=lifecycle.compute_status(today, member.membership_end, member.is_active).value,
            days_remaining=lifecycle.days_remaining(member.membership_end, today),
            created_at=member.created_at,
            updated_at=member.updated_at,
        )


@strawberry.type
class MembersPage:
    items: List[Member]
    has_more: bool


@strawberry.type
class MemberStats:
    total: int
    active: int
    new_this_month: int
    active_percentage: int

    @staticmethod
    def from_dataclass(data: MemberStatsData) -> "MemberStats":
        return MemberStats(
            total=data.total,
            active=data.active,
            new_this_month=data.new_this_month,
            active_percentage=data.active_percentage,
        )


@strawberry.type
class ReminderLink:
    url: str
    message: str
    days_remaining: int


@strawberry.type
class MemberResponse:
    member: Optional[Member]
    message: str
    error_kind: Optional[str] = None
    warnings: List[str] = strawberry.field(default_factory=list)


@strawberry.type
class RegistrationResponse:
    member: Optional[Member]
    message: str
    error_kind: Optional[str] = None
    payment_id: Optional[strawberry.ID] = None
    whatsapp_url: Optional[str] = None
    whatsapp_message: Optional[str] = None
    warnings: List[str] = strawberry.field(default_factory=list)


@strawberry.type
class DeleteMemberResponse:
    success: bool
    message: str
    error_kind: Optional[str] = None


def error_response(cls, error: MemberDeskError, **kwargs):
    return cls(message=error.message, error_kind=error.kind, **kwargs)


def warning_messages(warnings: List[PartialCompletionWarning]) -> List[str]:
    return [w.message for w in warnings]
