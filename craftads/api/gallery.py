# FILE: craftads/api/gallery.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from craftads.api.deps import get_current_user, get_gallery_service
from craftads.schemas.envelope import ok
from craftads.schemas.gallery import (
    CategoryOut,
    FavoriteRequest,
    FeedbackRequest,
    GalleryMeta,
    TemplateOut,
)
from craftads.services.gallery_service import GalleryService, clamp_limit, new_seed, seed_shuffle

logger = logging.getLogger("craftads.gallery")

router = APIRouter(prefix="/api/gallery", tags=["gallery"])


@router.get("/categories")
async def get_categories(
    slug: Optional[str] = Query(None),
    gallery: GalleryService = Depends(get_gallery_service),
):
    if slug:
        return ok(CategoryOut.model_validate(await gallery.get_category(slug)))
    return ok([CategoryOut.model_validate(c) for c in await gallery.list_categories()])


@router.get("/templates")
async def get_templates(
    q: Optional[str] = Query(None),
    category: Optional[str] = Query(None, description="One slug or a comma-separated list"),
    limit: Optional[int] = Query(None),
    offset: int = Query(0),
    premium: Optional[bool] = Query(None),
    featured: Optional[bool] = Query(None),
    random: bool = Query(False),
    seed: Optional[str] = Query(None),
    gallery: GalleryService = Depends(get_gallery_service),
):
    """
    Filtered template listing. With random=true the page is shuffled with a
    seeded Fisher-Yates; clients pass the returned seed back on the next page.
    """
    categories = [c for c in (category or "").split(",") if c.strip()]
    limit = clamp_limit(limit)
    seed = seed or new_seed()

    templates = await gallery.search_templates(
        query=q,
        categories=categories,
        limit=limit,
        offset=offset,
        is_premium=premium,
        is_featured=featured,
    )
    if random:
        templates = seed_shuffle(templates, seed)

    return ok(
        [TemplateOut.model_validate(t) for t in templates],
        meta=GalleryMeta(count=len(templates), limit=limit, offset=offset, seed=seed),
    )


@router.get("/templates/{slug}")
async def get_template(slug: str, gallery: GalleryService = Depends(get_gallery_service)):
    return ok(TemplateOut.model_validate(await gallery.get_template(slug)))


@router.get("/favorites")
async def get_favorites(user=Depends(get_current_user), gallery: GalleryService = Depends(get_gallery_service)):
    return ok([TemplateOut.model_validate(t) for t in await gallery.list_favorites(user["id"])])


@router.post("/favorites")
async def manage_favorite(
    req: FavoriteRequest,
    user=Depends(get_current_user),
    gallery: GalleryService = Depends(get_gallery_service),
):
    if req.action == "add":
        await gallery.add_favorite(user["id"], req.template_id)
        return ok({"templateId": req.template_id, "isFavorite": True})
    if req.action == "remove":
        await gallery.remove_favorite(user["id"], req.template_id)
        return ok({"templateId": req.template_id, "isFavorite": False})
    return ok({"templateId": req.template_id, "isFavorite": await gallery.is_favorite(user["id"], req.template_id)})


@router.post("/feedback")
async def submit_feedback(
    req: FeedbackRequest,
    user=Depends(get_current_user),
    gallery: GalleryService = Depends(get_gallery_service),
):
    feedback = await gallery.submit_feedback(user["id"], req.template_id, req.rating, req.comments)
    return ok({"templateId": feedback.template_id, "rating": feedback.rating, "comments": feedback.comments})
