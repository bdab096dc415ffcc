# FILE: craftads/models/payment.py
from datetime import datetime
from typing import Optional, Any
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Numeric, ForeignKey, DateTime, JSON

from craftads.core.database import Base


class Payment(Base):
    """Purchase attempts against a credit package."""
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    package_id: Mapped[str] = mapped_column(String(36), ForeignKey("credit_packages.id"))

    # Payment provider: mock only for now
    provider: Mapped[str] = mapped_column(String(40), default="mock")
    provider_payment_id: Mapped[Optional[str]] = mapped_column(String(190), nullable=True)

    amount: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False))
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    # Status: pending, completed, failed
    status: Mapped[str] = mapped_column(String(20), default="pending")
    credits_purchased: Mapped[int] = mapped_column(Integer)

    meta: Mapped[Optional[Any]] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
