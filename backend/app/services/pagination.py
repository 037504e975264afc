"""
Offset pagination over a SELECT.
"""

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


async def paginate(db: AsyncSession, query: Select, page: int, limit: int) -> tuple[list, int]:
    """Return one page of ORM rows plus the total row count for the unpaged query."""
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    result = await db.execute(query.offset((page - 1) * limit).limit(limit))
    return list(result.scalars().all()), total
