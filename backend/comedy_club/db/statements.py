"""
Dialect-aware statements the ORM does not express portably.
"""

from sqlalchemy.ext.asyncio import AsyncSession


async def insert_ignoring_conflict(
    db: AsyncSession,
    model,
    values: dict,
    conflict_columns: list[str],
):
    """
    INSERT ... ON CONFLICT DO NOTHING against a unique constraint.

    The storage layer decides which of two concurrent inserts wins; callers
    re-read the row afterwards. Returns the number of rows inserted (0 or 1).
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"Conflict-tolerant insert not supported on {dialect}")

    stmt = insert(model).values(**values).on_conflict_do_nothing(index_elements=conflict_columns)
    result = await db.execute(stmt)
    return result.rowcount
