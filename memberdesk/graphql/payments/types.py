from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import strawberry

from memberdesk.crud.paymentsCrud import PaymentStatsData
from memberdesk.models.membersModel import Payment as PaymentModel


@strawberry.type
class Payment:
    id: strawberry.ID
    member_id: strawberry.ID
    amount: Decimal
    payment_method: str
    payment_date: date
    notes: Optional[str]
    created_at: datetime

    @classmethod
    def from_model(cls, payment: PaymentModel) -> "Payment":
        return cls(
            id=strawberry.ID(str(payment.id)),
            member_id=strawberry.ID(str(payment.member_id)),
            amount=payment.amount,
            payment_method=payment.payment_method,
            payment_date=payment.payment_date,
            notes=payment.notes,
            created_at=payment.created_at,
        )


@strawberry.type
class PaymentStats:
    total_revenue: Decimal
    total_payments: int
    cash_payments: int
    upi_payments: int

    @staticmethod
    def from_dataclass(data: PaymentStatsData) -> "PaymentStats":
        return PaymentStats(
            total_revenue=data.total_revenue,
            total_payments=data.total_payments,
            cash_payments=data.cash_payments,
            upi_payments=data.upi_payments,
        )
