from fastapi import APIRouter

from craftads.schemas.envelope import ok

router = APIRouter(prefix="/api", tags=["root"])


@router.get("/")
async def api_root():
    return ok({"message": "CraftAds API"})
