from datetime import date
from typing import List, Optional

import strawberry
from sqlalchemy.ext.asyncio import AsyncSession

from memberdesk.core.conversions import coerce_uuid
from memberdesk.crud.paymentsCrud import get_latest_payment_method, get_payment_stats, list_payments
from memberdesk.db.guard import call_backend
from memberdesk.graphql.auth.permissions import IsAuthenticated
from memberdesk.graphql.payments.types import Payment, PaymentStats

NO_PAYMENT_METHOD = "Not specified"


@strawberry.type
class PaymentsQuery:
    @strawberry.field(permission_classes=[IsAuthenticated])
    async def payments(self, info: strawberry.Info, member_id: Optional[strawberry.ID] = None) -> List[Payment]:
        db: AsyncSession = info.context.db
        parsed_id = None
        if member_id is not None:
            parsed_id = coerce_uuid(member_id)
            if parsed_id is None:
                return []
        rows = await call_backend(list_payments(db, parsed_id), action="load payments")
        return [Payment.from_model(row) for row in rows]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def latest_payment_method(self, info: strawberry.Info, member_id: strawberry.ID) -> str:
        parsed_id = coerce_uuid(member_id)
        if parsed_id is None:
            return NO_PAYMENT_METHOD
        method = await call_backend(
            get_latest_payment_method(info.context.db, parsed_id),
            action="load payment method",
        )
        return method or NO_PAYMENT_METHOD

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def payment_stats(self, info: strawberry.Info) -> PaymentStats:
        """Revenue and payment counts for the current month"""
        data = await call_backend(get_payment_stats(info.context.db, date.today()), action="load payment stats")
        return PaymentStats.from_dataclass(data)
