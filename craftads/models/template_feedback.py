# FILE: craftads/models/template_feedback.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, Text, ForeignKey, UniqueConstraint, CheckConstraint

from craftads.core.database import Base


class TemplateFeedback(Base):
    __tablename__ = "template_feedback"
    __table_args__ = (
        UniqueConstraint("user_id", "template_id", name="uq_template_feedback_user_template"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_template_feedback_rating"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    template_id: Mapped[str] = mapped_column(String(36), ForeignKey("ad_templates.id", ondelete="CASCADE"))
    rating: Mapped[int] = mapped_column(Integer)
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
