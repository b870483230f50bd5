from memberdesk.models.adminModel import AdminUser
from memberdesk.models.membersModel import Member, Payment, AssignmentSequence

__all__ = [
    "AdminUser",
    "Member", "Payment", "AssignmentSequence",
]
