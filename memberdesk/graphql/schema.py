import strawberry

from memberdesk.graphql.auth.mutations import AuthMutation
from memberdesk.graphql.auth.queries import AuthQuery
from memberdesk.graphql.members.mutations import MemberMutation
from memberdesk.graphql.members.queries import MembersQuery
from memberdesk.graphql.memberships.queries import MembershipsQuery
from memberdesk.graphql.payments.queries import PaymentsQuery


@strawberry.type
class Query(AuthQuery, MembersQuery, MembershipsQuery, PaymentsQuery):
    @strawberry.field
    def hello(self) -> str:
        return "Hello from GraphQL!"


@strawberry.type
class Mutation(AuthMutation, MemberMutation):
    pass


schema = strawberry.Schema(query=Query, mutation=Mutation)
