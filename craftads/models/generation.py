# FILE: craftads/models/generation.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, ForeignKey, Integer, DateTime, JSON

from craftads.core.database import Base


class Generation(Base):
    __tablename__ = "generations"
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    template_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("ad_templates.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Status: completed, failed
    status: Mapped[str] = mapped_column(String(20), default="completed")
    result_image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    ai_model: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    prompt_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    processing_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    credits_used: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
