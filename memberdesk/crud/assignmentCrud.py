from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memberdesk.core.errors import TransientBackendError
from memberdesk.core.logging_config import get_logger
from memberdesk.models.membersModel import AssignmentSequence

logger = get_logger("crud.assignment")

_warned_dialects = set()


def _dialect_insert(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        if dialect not in _warned_dialects:
            _warned_dialects.add(dialect)
            logger.warning(f"Dialect {dialect} has no atomic upsert; assignment numbers will use the fallback path")
        raise TransientBackendError(f"Atomic assignment numbers are not supported on {dialect}")
    return insert


async def next_assignment_sequence(db: AsyncSession, year: int) -> int:
    """
    Atomically take the next sequence value for `year`.

    A single INSERT ... ON CONFLICT DO UPDATE ... RETURNING statement, so two
    concurrent callers always receive different values.
    """
    insert = _dialect_insert(db)
    stmt = (
        insert(AssignmentSequence)
        .values(year=year, last_value=1)
        .on_conflict_do_update(
            index_elements=[AssignmentSequence.year],
            set_={"last_value": AssignmentSequence.last_value + 1},
        )
        .returning(AssignmentSequence.last_value)
    )

    try:
        result = await db.execute(stmt)
        value = result.scalar_one()
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise

    return value
