# FILE: craftads/models/ad_template.py
from datetime import datetime
from typing import Optional, Any, List
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, Boolean, DateTime, Text, JSON, ForeignKey

from craftads.core.database import Base
from craftads.models.template_category import TemplateCategory


class TemplateCategoryRelationship(Base):
    __tablename__ = "template_category_relationships"

    template_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("ad_templates.id", ondelete="CASCADE"), primary_key=True
    )
    category_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("template_categories.id", ondelete="CASCADE"), primary_key=True
    )


class AdTemplate(Base):
    __tablename__ = "ad_templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(200))
    slug: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    preview_image_url: Mapped[str] = mapped_column(String(500))
    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    is_premium: Mapped[bool] = mapped_column(Boolean, default=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    view_count: Mapped[int] = mapped_column(Integer, default=0)
    usage_count: Mapped[int] = mapped_column(Integer, default=0)

    tags: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    meta: Mapped[Optional[Any]] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # active categories only
    categories: Mapped[List[TemplateCategory]] = relationship(
        secondary="template_category_relationships",
        primaryjoin="AdTemplate.id == TemplateCategoryRelationship.template_id",
        secondaryjoin=(
            "and_(TemplateCategory.id == TemplateCategoryRelationship.category_id, "
            "TemplateCategory.is_active.is_(True))"
        ),
        order_by=TemplateCategory.sort_order,
        lazy="selectin",
        viewonly=True,
    )
