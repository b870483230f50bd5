from datetime import date
from typing import List, Optional

import strawberry

from memberdesk.graphql.auth.permissions import IsAuthenticated
from memberdesk.graphql.memberships.types import MembershipPlan, PlanQuote
from memberdesk.services.lifecycle import MEMBERSHIP_PLANS, apply_plan, get_plan, is_valid_date


@strawberry.type
class MembershipsQuery:
    @strawberry.field(permission_classes=[IsAuthenticated])
    def membership_plans(self) -> List[MembershipPlan]:
        """Get all available membership plans"""
        return [MembershipPlan.from_data(plan) for plan in MEMBERSHIP_PLANS]

    @strawberry.field(permission_classes=[IsAuthenticated])
    def plan_quote(self, plan_id: str, start: str) -> Optional[PlanQuote]:
        """End date and price for a plan starting on `start` (YYYY-MM-DD)"""
        if get_plan(plan_id) is None or not is_valid_date(start):
            return None
        return PlanQuote.from_data(apply_plan(plan_id, date.fromisoformat(start)))
