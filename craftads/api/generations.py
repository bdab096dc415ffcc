# FILE: craftads/api/generations.py
from fastapi import APIRouter, Depends, Query

from craftads.api.deps import get_current_user
from craftads.schemas.envelope import ok
from craftads.schemas.generate import GenerationOut, GenerationPagination
from craftads.services.generation_history import list_generations

router = APIRouter(prefix="/api/generations", tags=["generations"])


@router.get("/history")
async def generation_history(
    page: int = Query(1),
    limit: int = Query(8),
    sort: str = Query("desc"),
    user=Depends(get_current_user),
):
    result = await list_generations(user["id"], page=page, limit=limit, sort=sort)
    return ok({
        "generations": [GenerationOut.model_validate(g) for g in result["generations"]],
        "pagination": GenerationPagination(
            page=result["pagination"]["page"],
            limit=result["pagination"]["limit"],
            total_items=result["pagination"]["totalItems"],
            total_pages=result["pagination"]["totalPages"],
            has_next_page=result["pagination"]["hasNextPage"],
            has_prev_page=result["pagination"]["hasPrevPage"],
        ),
    })
