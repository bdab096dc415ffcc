# FILE: craftads/models/credit_transaction.py
from datetime import datetime
from typing import Optional, Any
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, ForeignKey, DateTime, JSON, Text, Index

from craftads.core.database import Base

TRANSACTION_TYPES = ("purchase", "usage", "refund", "signup_bonus")

STATUS_COMMITTED = "committed"
STATUS_PENDING = "pending"
STATUS_RELEASED = "released"


class CreditTransaction(Base):
    """Append-only credit ledger - one row per balance change."""
    __tablename__ = "credit_transactions"
    __table_args__ = (
        Index("ix_credit_transactions_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)

    # Signed: positive = credit, negative = debit
    amount: Mapped[int] = mapped_column(Integer)

    # Type: purchase, usage, refund, signup_bonus
    type: Mapped[str] = mapped_column(String(30))

    # Reservations start as pending and end committed or released
    status: Mapped[str] = mapped_column(String(20), default=STATUS_COMMITTED)

    # Loose pointer to the originating entity (payment, generation, ...)
    reference_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    reference_type: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # users.credits_balance right after this row was applied
    balance_after: Mapped[int] = mapped_column(Integer)

    meta: Mapped[Optional[Any]] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
