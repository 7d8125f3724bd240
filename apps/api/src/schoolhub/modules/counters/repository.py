"""
Sequence Counter Repository

next_sequence is a single INSERT ... ON CONFLICT DO UPDATE ... RETURNING
statement. PostgreSQL serializes concurrent upserts on the same primary key,
so no two callers ever read the same value and there is no read-then-write
window.
"""

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from .models import SequenceCounter


async def next_sequence(db: AsyncSession, entity: str, key: str, year: int) -> int:
    """
    Increment and return the counter for (entity, key, year).

    The statement runs in the caller's transaction; the new value is final
    once that transaction commits.

    Args:
        db: Database session
        entity: Kind of record being numbered, e.g. "student"
        key: Tenant key, e.g. the school code
        year: Calendar year

    Returns:
        The post-increment value, 1 for the first call of a year
    """
    stmt = (
        insert(SequenceCounter)
        .values(entity=entity, key=key, year=year, seq=1)
        .on_conflict_do_update(
            index_elements=[SequenceCounter.entity, SequenceCounter.key, SequenceCounter.year],
            set_={"seq": SequenceCounter.seq + 1},
        )
        .returning(SequenceCounter.seq)
    )

    result = await db.execute(stmt)
    return result.scalar_one()
