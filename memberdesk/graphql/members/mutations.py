import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

import strawberry
from strawberry.file_uploads import Upload

from memberdesk.core.conversions import coerce_uuid
from memberdesk.core.errors import MemberDeskError, NotFoundError
from memberdesk.core.logging_config import get_logger
from memberdesk.graphql.auth.permissions import IsAuthenticated
from memberdesk.graphql.members.types import (
    DeleteMemberResponse,
    Member,
    MemberResponse,
    RegistrationResponse,
    error_response,
    warning_messages,
)
from memberdesk.services.image_service import PhotoStorage
from memberdesk.services.lifecycle import MemberForm
from memberdesk.services.registration import PhotoUpload, register_member

logger = get_logger("graphql.members")


@strawberry.input
class RegisterMemberInput:
    full_name: str
    phone_number: str
    joining_date: Optional[str] = None
    membership_start: Optional[str] = None
    membership_end: Optional[str] = None
    total_amount: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    plan_mode: bool = False
    plan_id: Optional[str] = None
    payment_method: str = "cash"
    assignment_number: Optional[str] = None


@strawberry.input
class UpdateMemberInput:
    assignment_number: Optional[str] = None
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    joining_date: Optional[date] = None
    membership_start: Optional[date] = None
    membership_end: Optional[date] = None
    total_amount: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    is_active: Optional[bool] = None


def _member_id(value: strawberry.ID) -> uuid.UUID:
    member_id = coerce_uuid(value)
    if member_id is None:
        raise NotFoundError("Member not found")
    return member_id


def _patch_from_input(input: UpdateMemberInput) -> Dict[str, Any]:
    return {
        field: getattr(input, field)
        for field in (
            "assignment_number",
            "full_name",
            "phone_number",
            "joining_date",
            "membership_start",
            "membership_end",
            "total_amount",
            "discount_amount",
            "is_active",
        )
        if getattr(input, field) is not None
    }


async def _read_upload(file: Upload) -> PhotoUpload:
    data = await file.read()
    return PhotoUpload(data=data, filename=file.filename or "photo.jpg")


@strawberry.type
class MemberMutation:
    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def register_member(
        self,
        info: strawberry.Info,
        input: RegisterMemberInput,
        photo: Optional[Upload] = None,
    ) -> RegistrationResponse:
        """Add a member, record the payment and prepare the welcome message"""
        today = date.today().isoformat()
        form = MemberForm(
            full_name=input.full_name,
            phone_number=input.phone_number,
            joining_date=input.joining_date or today,
            membership_start=input.membership_start or today,
            membership_end=input.membership_end or "",
            total_amount=input.total_amount,
            discount_amount=input.discount_amount,
            plan_mode=input.plan_mode,
            plan_id=input.plan_id,
        )

        collection = info.context.member_collection()
        try:
            upload = await _read_upload(photo) if photo is not None else None
            result = await register_member(
                collection,
                form,
                payment_method=input.payment_method,
                assignment_number=input.assignment_number,
                photo=upload,
            )
        except MemberDeskError as e:
            logger.info(f"Member registration rejected ({e.kind}): {e.message}")
            return error_response(RegistrationResponse, e, member=None)
        finally:
            collection.close()

        notification = result.notification
        return RegistrationResponse(
            member=Member.from_model(result.member),
            message="Member added successfully",
            payment_id=strawberry.ID(str(result.payment.id)) if result.payment else None,
            whatsapp_url=notification.url if notification else None,
            whatsapp_message=notification.message if notification else None,
            warnings=warning_messages(result.warnings),
        )

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def update_member(
        self,
        info: strawberry.Info,
        id: strawberry.ID,
        input: UpdateMemberInput,
    ) -> MemberResponse:
        collection = info.context.member_collection()
        try:
            member = await collection.update(_member_id(id), _patch_from_input(input))
        except MemberDeskError as e:
            return error_response(MemberResponse, e, member=None)
        finally:
            collection.close()

        return MemberResponse(member=Member.from_model(member), message="Member updated successfully")

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def renew_membership(
        self,
        info: strawberry.Info,
        id: strawberry.ID,
        months: int = 1,
    ) -> MemberResponse:
        """Push the membership end date forward by whole months"""
        collection = info.context.member_collection()
        try:
            member = await collection.renew(_member_id(id), months)
        except MemberDeskError as e:
            return error_response(MemberResponse, e, member=None)
        finally:
            collection.close()

        return MemberResponse(member=Member.from_model(member), message="Membership renewed successfully")

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def delete_member(self, info: strawberry.Info, id: strawberry.ID) -> DeleteMemberResponse:
        collection = info.context.member_collection()
        try:
            member = await collection.delete(_member_id(id))
        except MemberDeskError as e:
            return error_response(DeleteMemberResponse, e, success=False)
        finally:
            collection.close()

        if member.photo_url:
            PhotoStorage().delete_member_photo(member.photo_url)
        return DeleteMemberResponse(success=True, message="Member deleted successfully")

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def upload_member_photo(
        self,
        info: strawberry.Info,
        id: strawberry.ID,
        file: Upload,
    ) -> MemberResponse:
        """Replace the member photo; the previous object is removed afterwards"""
        storage = PhotoStorage()
        collection = info.context.member_collection()
        try:
            current = await collection.get(_member_id(id))
            upload = await _read_upload(file)
            photo_url = storage.upload_member_photo(upload.data, upload.filename, current.full_name)
            previous_url = current.photo_url
            member = await collection.update(current.id, {"photo_url": photo_url})
        except MemberDeskError as e:
            return error_response(MemberResponse, e, member=None)
        finally:
            collection.close()

        if previous_url and previous_url != photo_url:
            storage.delete_member_photo(previous_url)
        return MemberResponse(member=Member.from_model(member), message="Photo updated successfully")

    @strawberry.mutation(permission_classes=[IsAuthenticated])
    async def delete_member_photo(self, info: strawberry.Info, id: strawberry.ID) -> MemberResponse:
        collection = info.context.member_collection()
        try:
            current = await collection.get(_member_id(id))
            previous_url = current.photo_url
            member = await collection.update(current.id, {"photo_url": None})
        except MemberDeskError as e:
            return error_response(MemberResponse, e, member=None)
        finally:
            collection.close()

        if previous_url:
            PhotoStorage().delete_member_photo(previous_url)
        return MemberResponse(member=Member.from_model(member), message="Photo removed successfully")
