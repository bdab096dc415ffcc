# FILE: craftads/services/gallery_service.py
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import List, Optional, Sequence, TypeVar

from sqlalchemy import select, delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from craftads.core.config import GALLERY_DEFAULT_LIMIT, GALLERY_MAX_LIMIT
from craftads.core.database import SessionLocal
from craftads.core.errors import NotFound, ValidationError
from craftads.models.ad_template import AdTemplate, TemplateCategoryRelationship
from craftads.models.template_category import TemplateCategory
from craftads.models.template_feedback import TemplateFeedback
from craftads.models.user_favorite_template import UserFavoriteTemplate

logger = logging.getLogger("craftads.gallery")

T = TypeVar("T")

_INT32 = 2 ** 32
_INT31 = 2 ** 31


# ─────────────────────────────────────────────
# SEEDED SHUFFLE
# ─────────────────────────────────────────────

def hash_string(value: str) -> int:
    """h = h*31 + c over the string, wrapped to a signed 32-bit int after every step."""
    h = 0
    for ch in value:
        h = (h << 5) - h + ord(ch)
        h = ((h + _INT31) % _INT32) - _INT31
    return h


def seed_shuffle(items: Sequence[T], seed: str) -> List[T]:
    """
    Deterministic Fisher-Yates shuffle.

    The same items and seed always give the same order, so a client that
    keeps its seed across infinite-scroll pages sees a stable arrangement.
    """
    result = list(items)
    state = hash_string(seed)

    def rnd() -> float:
        nonlocal state
        state = (state * 9301 + 49297) % 233280
        return state / 233280

    for i in range(len(result) - 1, 0, -1):
        j = int(rnd() * (i + 1))
        result[i], result[j] = result[j], result[i]
    return result


def new_seed() -> str:
    return str(int(time.time() * 1000))


# ─────────────────────────────────────────────
# CATEGORIES / TEMPLATES
# ─────────────────────────────────────────────

def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return GALLERY_DEFAULT_LIMIT
    return max(1, min(int(limit), GALLERY_MAX_LIMIT))


class GalleryService:
    def __init__(self, session_factory: async_sessionmaker = SessionLocal):
        self.session_factory = session_factory

    async def list_categories(self) -> List[TemplateCategory]:
        async with self.session_factory() as session:
            rows = await session.execute(
                select(TemplateCategory)
                .where(TemplateCategory.is_active.is_(True))
                .order_by(TemplateCategory.sort_order, TemplateCategory.name)
            )
            return list(rows.scalars().all())

    async def get_category(self, slug: str) -> TemplateCategory:
        async with self.session_factory() as session:
            category = (
                await session.execute(
                    select(TemplateCategory).where(
                        TemplateCategory.slug == slug, TemplateCategory.is_active.is_(True)
                    )
                )
            ).scalar_one_or_none()
        if category is None:
            raise NotFound("Category not found")
        return category

    async def search_templates(
        self,
        query: Optional[str] = None,
        categories: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        is_premium: Optional[bool] = None,
        is_featured: Optional[bool] = None,
    ) -> List[AdTemplate]:
        limit = clamp_limit(limit)
        if offset is None or offset < 0:
            raise ValidationError("offset must be >= 0")

        stmt = select(AdTemplate).where(AdTemplate.is_active.is_(True))

        q = (query or "").strip()
        if q:
            stmt = stmt.where(or_(
                AdTemplate.title.icontains(q, autoescape=True),
                AdTemplate.description.icontains(q, autoescape=True),
            ))

        slugs = [s.strip() for s in (categories or []) if s and s.strip()]
        if slugs:
            in_category = (
                select(TemplateCategoryRelationship.template_id)
                .join(TemplateCategory, TemplateCategory.id == TemplateCategoryRelationship.category_id)
                .where(TemplateCategory.slug.in_(slugs))
            )
            stmt = stmt.where(AdTemplate.id.in_(in_category))

        if is_premium is not None:
            stmt = stmt.where(AdTemplate.is_premium.is_(is_premium))
        if is_featured is not None:
            stmt = stmt.where(AdTemplate.is_featured.is_(is_featured))

        stmt = (
            stmt.order_by(
                AdTemplate.is_featured.desc(),
                AdTemplate.usage_count.desc(),
                AdTemplate.view_count.desc(),
                AdTemplate.created_at.desc(),
                AdTemplate.id,
            )
            .offset(offset)
            .limit(limit)
        )

        async with self.session_factory() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def get_template(self, slug: str) -> AdTemplate:
        async with self.session_factory() as session:
            template = (
                await session.execute(
                    select(AdTemplate).where(AdTemplate.slug == slug, AdTemplate.is_active.is_(True))
                )
            ).scalar_one_or_none()
        if template is None:
            raise NotFound("Template not found")
        return template

    async def _require_template(self, session, template_id: str) -> None:
        found = (
            await session.execute(select(AdTemplate.id).where(AdTemplate.id == template_id))
        ).scalar_one_or_none()
        if found is None:
            raise NotFound("Template not found")

    # ─────────────────────────────────────────────
    # FAVORITES
    # ─────────────────────────────────────────────

    async def list_favorites(self, user_id: str) -> List[AdTemplate]:
        async with self.session_factory() as session:
            rows = await session.execute(
                select(AdTemplate)
                .join(UserFavoriteTemplate, UserFavoriteTemplate.template_id == AdTemplate.id)
                .where(UserFavoriteTemplate.user_id == user_id)
                .order_by(UserFavoriteTemplate.created_at.desc(), UserFavoriteTemplate.id.desc())
            )
            return list(rows.scalars().all())

    async def is_favorite(self, user_id: str, template_id: str) -> bool:
        async with self.session_factory() as session:
            found = (
                await session.execute(
                    select(UserFavoriteTemplate.id).where(
                        UserFavoriteTemplate.user_id == user_id,
                        UserFavoriteTemplate.template_id == template_id,
                    )
                )
            ).scalar_one_or_none()
        return found is not None

    async def add_favorite(self, user_id: str, template_id: str) -> None:
        if await self.is_favorite(user_id, template_id):
            return
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await self._require_template(session, template_id)
                    session.add(UserFavoriteTemplate(
                        user_id=user_id, template_id=template_id, created_at=datetime.utcnow()
                    ))
        except IntegrityError:
            # added concurrently
            logger.info(f"Favorite {user_id}/{template_id} already present")

    async def remove_favorite(self, user_id: str, template_id: str) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(
                    delete(UserFavoriteTemplate).where(
                        UserFavoriteTemplate.user_id == user_id,
                        UserFavoriteTemplate.template_id == template_id,
                    )
                )

    # ─────────────────────────────────────────────
    # FEEDBACK
    # ─────────────────────────────────────────────

    async def submit_feedback(
        self, user_id: str, template_id: str, rating: int, comments: Optional[str] = None
    ) -> TemplateFeedback:
        """One feedback row per user and template; resubmitting overwrites it."""
        if not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("rating must be an integer between 1 and 5")

        now = datetime.utcnow()
        async with self.session_factory() as session:
            async with session.begin():
                await self._require_template(session, template_id)
                feedback = (
                    await session.execute(
                        select(TemplateFeedback).where(
                            TemplateFeedback.user_id == user_id,
                            TemplateFeedback.template_id == template_id,
                        )
                    )
                ).scalar_one_or_none()
                if feedback is None:
                    feedback = TemplateFeedback(
                        user_id=user_id, template_id=template_id, created_at=now
                    )
                    session.add(feedback)
                feedback.rating = rating
                feedback.comments = comments or None
                feedback.updated_at = now
        return feedback
