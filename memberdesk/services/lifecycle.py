"""
Membership lifecycle rules: plan catalog, date arithmetic, status and form validation.

Month arithmetic uses dateutil's relativedelta, which clamps to the last day of
the target month: 2024-01-31 + 1 month is 2024-02-29, never 2024-03-02.
"""
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Dict, Any

from dateutil.relativedelta import relativedelta

from memberdesk.core.conversions import coerce_amount
from memberdesk.core.errors import ValidationError

DATE_PATTERN = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")
MIN_YEAR = 1900
MAX_YEAR = 2100
MIN_PHONE_DIGITS = 10
# Numeric(12, 2) columns
MAX_AMOUNT = Decimal("9999999999.99")


class MembershipStatus(str, Enum):
    ACTIVE = "Active"
    EXPIRED = "Expired"


@dataclass(frozen=True)
class MembershipPlan:
    id: str
    name: str
    duration_months: int
    price: Decimal
    description: str


MEMBERSHIP_PLANS: List[MembershipPlan] = [
    MembershipPlan(
        id="1month",
        name="1 Month Plan",
        duration_months=1,
        price=Decimal("700"),
        description="Perfect for beginners",
    ),
    MembershipPlan(
        id="3months",
        name="3 Months Plan",
        duration_months=3,
        price=Decimal("1500"),
        description="Most popular choice",
    ),
]


@dataclass
class PlanQuote:
    end_date: date
    total_amount: Decimal


@dataclass
class MemberForm:
    """Raw member input as typed by staff; dates are YYYY-MM-DD strings."""

    full_name: str = ""
    phone_number: str = ""
    joining_date: str = ""
    membership_start: str = ""
    membership_end: str = ""
    total_amount: Any = None
    discount_amount: Any = None
    plan_mode: bool = False
    plan_id: Optional[str] = None


@dataclass
class MemberValues:
    """Validated, typed member fields ready to persist."""

    full_name: str
    phone_number: str
    joining_date: date
    membership_start: date
    membership_end: date
    total_amount: Decimal
    discount_amount: Decimal
    plan_id: Optional[str] = None

    @property
    def final_amount(self) -> Decimal:
        return final_amount(self.total_amount, self.discount_amount)


def get_plan(plan_id: Optional[str]) -> Optional[MembershipPlan]:
    return next((plan for plan in MEMBERSHIP_PLANS if plan.id == plan_id), None)


def digits_only(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def is_valid_date(value: Optional[str]) -> bool:
    """Strict YYYY-MM-DD check that also rejects impossible dates like 2024-02-30."""
    if not value or not isinstance(value, str):
        return False
    match = DATE_PATTERN.fullmatch(value)
    if not match:
        return False

    year, month, day = (int(part) for part in match.groups())
    if year < MIN_YEAR or year > MAX_YEAR:
        return False
    if month < 1 or month > 12:
        return False
    if day < 1 or day > 31:
        return False

    try:
        date(year, month, day)
    except ValueError:
        return False
    return True


def parse_date(value: str) -> date:
    if not is_valid_date(value):
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")
    return date.fromisoformat(value)


def compute_end_date(start: date, duration_months: int) -> date:
    return start + relativedelta(months=duration_months)


def renew(end: date, extra_months: int = 1) -> date:
    return end + relativedelta(months=extra_months)


def compute_status(now: date, end: date, active_flag: bool) -> MembershipStatus:
    if active_flag and end >= now:
        return MembershipStatus.ACTIVE
    return MembershipStatus.EXPIRED


def days_remaining(end: date, today: date) -> int:
    return (end - today).days


def final_amount(total: Decimal, discount: Decimal) -> Decimal:
    return max(Decimal("0"), total - discount)


def apply_plan(plan_id: str, start: date) -> PlanQuote:
    plan = get_plan(plan_id)
    if plan is None:
        raise ValidationError("Please select a membership plan")
    return PlanQuote(
        end_date=compute_end_date(start, plan.duration_months),
        total_amount=plan.price,
    )


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_member_form(form: MemberForm) -> MemberValues:
    """
    Validate a member form and resolve derived fields.

    In plan mode the end date is always re-derived from the start date and
    the plan duration, and a blank total is filled from the plan price.

    Raises:
        ValidationError: with the first failing rule's message.
    """
    full_name = (form.full_name or "").strip()
    if not full_name:
        raise ValidationError("Full name is required")

    phone_number = (form.phone_number or "").strip()
    if not phone_number:
        raise ValidationError("Phone number is required")
    if len(digits_only(phone_number)) < MIN_PHONE_DIGITS:
        raise ValidationError("Please enter a valid phone number (at least 10 digits)")

    plan = None
    if form.plan_mode:
        plan = get_plan(form.plan_id)
        if plan is None:
            raise ValidationError("Please select a membership plan")
    elif _is_blank(form.membership_end):
        raise ValidationError("Membership end date is required in manual mode")

    if plan is not None and _is_blank(form.total_amount):
        total_amount = plan.price
    else:
        total_amount = coerce_amount(form.total_amount)
    discount_amount = coerce_amount(form.discount_amount)

    if discount_amount > total_amount:
        raise ValidationError("Discount amount cannot be greater than total amount")
    if total_amount < 0 or discount_amount < 0:
        raise ValidationError("Amounts cannot be negative")
    if total_amount > MAX_AMOUNT:
        raise ValidationError("Amount is too large")

    if not is_valid_date(form.joining_date):
        raise ValidationError("Please enter a valid joining date (YYYY-MM-DD)")
    if not is_valid_date(form.membership_start):
        raise ValidationError("Please enter a valid membership start date (YYYY-MM-DD)")
    membership_start = date.fromisoformat(form.membership_start)

    if plan is not None:
        derived_end = apply_plan(plan.id, membership_start).end_date.isoformat()
        if not is_valid_date(derived_end):
            raise ValidationError(
                "Calculated membership end date is invalid. Please check the plan or start date."
            )
        membership_end = date.fromisoformat(derived_end)
    else:
        if not is_valid_date(form.membership_end):
            raise ValidationError("Please enter a valid membership end date (YYYY-MM-DD)")
        membership_end = date.fromisoformat(form.membership_end)

    if membership_end < membership_start:
        raise ValidationError("Membership end date cannot be before the start date")

    return MemberValues(
        full_name=full_name,
        phone_number=phone_number,
        joining_date=date.fromisoformat(form.joining_date),
        membership_start=membership_start,
        membership_end=membership_end,
        total_amount=total_amount,
        discount_amount=discount_amount,
        plan_id=plan.id if plan else None,
    )


EDITABLE_FIELDS = (
    "assignment_number",
    "full_name",
    "phone_number",
    "joining_date",
    "membership_start",
    "membership_end",
    "total_amount",
    "discount_amount",
    "photo_url",
    "is_active",
)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def validate_member_update(current: Any, patch: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate `patch` merged over the `current` member and return typed values
    for the patched fields only.
    """
    unknown = set(patch) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown member fields: {', '.join(sorted(unknown))}")

    if "assignment_number" in patch and _is_blank(patch["assignment_number"]):
        raise ValidationError("Assignment number cannot be empty")

    merged = {field: patch.get(field, getattr(current, field)) for field in EDITABLE_FIELDS}
    values = validate_member_form(
        MemberForm(
            full_name=_as_text(merged["full_name"]),
            phone_number=_as_text(merged["phone_number"]),
            joining_date=_as_text(merged["joining_date"]),
            membership_start=_as_text(merged["membership_start"]),
            membership_end=_as_text(merged["membership_end"]),
            total_amount=merged["total_amount"],
            discount_amount=merged["discount_amount"],
        )
    )

    cleaned: Dict[str, Any] = {}
    for field, value in patch.items():
        if hasattr(values, field):
            cleaned[field] = getattr(values, field)
        elif field == "assignment_number":
            cleaned[field] = str(value).strip()
        elif field == "is_active":
            cleaned[field] = bool(value)
        else:
            cleaned[field] = value
    return cleaned
