from typing import List, Optional

import strawberry

from memberdesk.crud.adminsCrud import list_admins
from memberdesk.db.guard import call_backend
from memberdesk.graphql.auth.permissions import IsAuthenticated, IsOwner
from memberdesk.graphql.auth.types import Admin


@strawberry.type
class AuthQuery:
    @strawberry.field(permission_classes=[IsAuthenticated])
    def me(self, info: strawberry.Info) -> Optional[Admin]:
        user = info.context.user
        return Admin.from_model(user) if user else None

    @strawberry.field(permission_classes=[IsOwner])
    async def admins(self, info: strawberry.Info) -> List[Admin]:
        admins = await call_backend(list_admins(info.context.db), action="load admins")
        return [Admin.from_model(admin) for admin in admins]
