"""
Member registration workflow.

Steps run strictly in order and a failure stops the remaining ones:
allocate number -> upload photo -> persist member -> persist payment ->
compose (and optionally dispatch) the welcome message. Once the member row is
committed, later failures are reported as PartialCompletionWarning instead of
errors. A photo uploaded before a failed member insert is left in storage.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from memberdesk.core.errors import MemberDeskError, PartialCompletionWarning, ValidationError
from memberdesk.core.logging_config import get_logger
from memberdesk.crud.paymentsCrud import PAYMENT_METHODS, create_payment
from memberdesk.db.guard import call_backend
from memberdesk.models.membersModel import Member, Payment
from memberdesk.services.image_service import PhotoStorage
from memberdesk.services.lifecycle import MemberForm, validate_member_form
from memberdesk.services.member_collection import MemberCollection
from memberdesk.services.whatsapp import (
    LinkOpener,
    build_whatsapp_url,
    create_membership_message,
    send_whatsapp_message,
)

logger = get_logger("services.registration")


@dataclass
class PhotoUpload:
    data: bytes
    filename: str


@dataclass
class NotificationResult:
    url: str
    message: str
    attempted: bool = False
    dispatched: bool = False


@dataclass
class RegistrationResult:
    member: Member
    payment: Optional[Payment] = None
    notification: Optional[NotificationResult] = None
    warnings: List[PartialCompletionWarning] = field(default_factory=list)


def format_amount(amount: Decimal) -> str:
    if amount == amount.to_integral_value():
        return str(int(amount))
    return f"{amount:.2f}"


def discount_note(discount: Decimal) -> Optional[str]:
    return f"Discount applied: ₹{format_amount(discount)}" if discount > 0 else None


async def dispatch_notification(
    phone_number: str,
    message: str,
    opener: Optional[LinkOpener] = None,
) -> NotificationResult:
    """Compose the deep link and, when an opener is available, try to open it."""
    result = NotificationResult(url=build_whatsapp_url(phone_number, message), message=message)
    if opener is None:
        return result

    result.attempted = True
    result.dispatched = await send_whatsapp_message(phone_number, message, opener)
    return result


async def register_member(
    collection: MemberCollection,
    form: MemberForm,
    *,
    payment_method: str = "cash",
    assignment_number: Optional[str] = None,
    photo: Optional[PhotoUpload] = None,
    storage: Optional[PhotoStorage] = None,
    opener: Optional[LinkOpener] = None,
) -> RegistrationResult:
    """
    Register a member from a staff-entered form.

    Raises:
        ValidationError: invalid form, nothing was sent to the backend.
        AuthorizationError: no signed-in staff member.
        UniqueConstraintError: the assignment number could not be made unique.
        TransientBackendError: the member could not be stored.
    """
    values = validate_member_form(form)
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError("Payment method must be cash or upi")
    user_id = collection.require_user()

    supplied_number = (assignment_number or "").strip()
    number = supplied_number or await collection.allocator.allocate()

    photo_url = None
    if photo is not None:
        storage = storage or PhotoStorage()
        photo_url = storage.upload_member_photo(photo.data, photo.filename, values.full_name)

    draft = {
        "assignment_number": number,
        "full_name": values.full_name,
        "phone_number": values.phone_number,
        "joining_date": values.joining_date,
        "membership_start": values.membership_start,
        "membership_end": values.membership_end,
        "total_amount": values.total_amount,
        "discount_amount": values.discount_amount,
        "photo_url": photo_url,
        "is_active": True,
    }

    try:
        member = await collection.create(draft, reallocate_on_conflict=not supplied_number)
    except MemberDeskError:
        if photo_url:
            logger.warning(f"Member insert failed; photo {photo_url} left in storage")
        raise

    # Detached: a rollback in a later step must not expire the committed row
    collection.db.expunge(member)
    result = RegistrationResult(member=member)

    amount = values.final_amount
    if amount > 0:
        try:
            result.payment = await call_backend(
                create_payment(
                    collection.db,
                    member_id=member.id,
                    amount=amount,
                    payment_method=payment_method,
                    payment_date=values.membership_start,
                    notes=discount_note(values.discount_amount),
                    created_by=user_id,
                ),
                action="record payment",
            )
        except MemberDeskError as e:
            logger.error(f"Payment for member {member.id} failed: {e.message}")
            result.warnings.append(
                PartialCompletionWarning(
                    "payment",
                    f"Member was added but the payment could not be recorded: {e.message}",
                )
            )
            return result

    message = create_membership_message(
        member.full_name,
        member.membership_start,
        member.membership_end,
        member.assignment_number,
    )
    result.notification = await dispatch_notification(member.phone_number, message, opener)
    if result.notification.attempted and not result.notification.dispatched:
        result.warnings.append(
            PartialCompletionWarning(
                "notification",
                "Member was added but WhatsApp could not be opened. "
                "Make sure WhatsApp is installed on your device.",
            )
        )

    return result
