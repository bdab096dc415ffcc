# FILE: craftads/services/generation_history.py
from __future__ import annotations

import math
from typing import Any, Dict, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import async_sessionmaker

from craftads.core.database import SessionLocal
from craftads.core.errors import ValidationError
from craftads.models.generation import Generation

MAX_PAGE_SIZE = 100


async def list_generations(
    user_id: str,
    page: int = 1,
    limit: int = 8,
    sort: str = "desc",
    session_factory: async_sessionmaker = SessionLocal,
) -> Dict[str, Any]:
    if page < 1:
        raise ValidationError("Invalid page parameter")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError("Invalid limit parameter")
    sort = (sort or "desc").lower()
    if sort not in {"asc", "desc"}:
        raise ValidationError("sort must be 'asc' or 'desc'")

    order = (
        (Generation.created_at.asc(), Generation.id.asc())
        if sort == "asc"
        else (Generation.created_at.desc(), Generation.id.desc())
    )

    async with session_factory() as session:
        total = (
            await session.execute(select(func.count(Generation.id)).where(Generation.user_id == user_id))
        ).scalar() or 0
        rows: List[Generation] = list((
            await session.execute(
                select(Generation)
                .where(Generation.user_id == user_id)
                .order_by(*order)
                .offset((page - 1) * limit)
                .limit(limit)
            )
        ).scalars().all())

    total_pages = math.ceil(total / limit) if total else 0
    return {
        "generations": rows,
        "pagination": {
            "page": page,
            "limit": limit,
            "totalItems": total,
            "totalPages": total_pages,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        },
    }
