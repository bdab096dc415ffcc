# FILE: craftads/models/user_favorite_template.py
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint

from craftads.core.database import Base


class UserFavoriteTemplate(Base):
    __tablename__ = "user_favorite_templates"
    __table_args__ = (
        UniqueConstraint("user_id", "template_id", name="uq_user_favorite_template"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    template_id: Mapped[str] = mapped_column(String(36), ForeignKey("ad_templates.id", ondelete="CASCADE"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
