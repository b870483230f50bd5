from datetime import date
from decimal import Decimal

import strawberry

from memberdesk.services.lifecycle import MembershipPlan as PlanData, PlanQuote as PlanQuoteData


@strawberry.type
class MembershipPlan:
    id: str
    name: str
    duration_months: int
    price: Decimal
    description: str

    @staticmethod
    def from_data(data: PlanData) -> "MembershipPlan":
        return MembershipPlan(
            id=data.id,
            name=data.name,
            duration_months=data.duration_months,
            price=data.price,
            description=data.description,
        )


@strawberry.type
class PlanQuote:
    end_date: date
    total_amount: Decimal

    @staticmethod
    def from_data(data: PlanQuoteData) -> "PlanQuote":
        return PlanQuote(end_date=data.end_date, total_amount=data.total_amount)
