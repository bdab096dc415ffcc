# FILE: craftads/schemas/gallery.py
from datetime import datetime
from typing import List, Optional

from pydantic import validator

from craftads.schemas.envelope import CamelModel

FAVORITE_ACTIONS = {"add", "remove", "check"}


class CategoryRef(CamelModel):
    id: str
    name: str
    slug: str


class CategoryOut(CamelModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    icon_name: Optional[str] = None
    color: Optional[str] = None
    parent_id: Optional[str] = None
    sort_order: int = 0


class TemplateOut(CamelModel):
    id: str
    title: str
    slug: str
    description: Optional[str] = None
    preview_image_url: str
    width: Optional[int] = None
    height: Optional[int] = None
    is_premium: bool
    is_featured: bool
    view_count: int
    usage_count: int
    tags: List[str] = []
    categories: List[CategoryRef] = []
    created_at: datetime

    @validator("tags", pre=True)
    def default_tags(cls, v):
        return v or []


class GalleryMeta(CamelModel):
    count: int
    limit: int
    offset: int
    seed: Optional[str] = None


class FavoriteRequest(CamelModel):
    template_id: str
    action: str

    @validator("action")
    def validate_action(cls, v: str):
        v = (v or "").strip().lower()
        if v not in FAVORITE_ACTIONS:
            raise ValueError("Valid action is required (add, remove, or check)")
        return v


class FeedbackRequest(CamelModel):
    template_id: str
    rating: int
    comments: Optional[str] = None
