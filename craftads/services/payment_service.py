# FILE: craftads/services/payment_service.py
"""Credit packages and the mock purchase flow."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from craftads.core.database import SessionLocal
from craftads.core.errors import NotFound, ValidationError
from craftads.models.credit_package import CreditPackage
from craftads.models.payment import Payment
from craftads.services.credit_service import CreditService, apply_balance_change

logger = logging.getLogger("craftads.payments")

DEFAULT_PACKAGES = [
    {
        "id": "starter",
        "name": "Starter",
        "description": "Best for beginner creators",
        "credit_amount": 100,
        "price": 15.00,
        "is_featured": False,
        "sort_order": 1,
    },
    {
        "id": "pro",
        "name": "Pro",
        "description": "Best for growing creators",
        "credit_amount": 500,
        "price": 45.00,
        "is_featured": True,
        "sort_order": 2,
    },
    {
        "id": "business",
        "name": "Business",
        "description": "Best for scaling brands",
        "credit_amount": 1500,
        "price": 95.00,
        "is_featured": False,
        "sort_order": 3,
    },
]

PAYMENT_FINAL_STATES = {"completed", "failed"}


@dataclass
class PaymentCompletion:
    payment: Payment
    credits_added: int
    new_balance: Optional[int]


class PaymentService:
    def __init__(self, session_factory: async_sessionmaker = SessionLocal, credits: Optional[CreditService] = None):
        self.session_factory = session_factory
        self.credits = credits or CreditService(session_factory=session_factory)

    async def seed_default_packages(self) -> int:
        """Insert the default packages when the table is empty; returns how many were added."""
        async with self.session_factory() as session:
            async with session.begin():
                count = (await session.execute(select(func.count(CreditPackage.id)))).scalar() or 0
                if count:
                    return 0
                now = datetime.utcnow()
                for pkg in DEFAULT_PACKAGES:
                    session.add(CreditPackage(currency="USD", is_active=True, created_at=now, updated_at=now, **pkg))
        logger.info(f"Seeded {len(DEFAULT_PACKAGES)} default credit packages")
        return len(DEFAULT_PACKAGES)

    async def list_packages(self) -> List[CreditPackage]:
        async with self.session_factory() as session:
            rows = await session.execute(
                select(CreditPackage)
                .where(CreditPackage.is_active.is_(True))
                .order_by(CreditPackage.sort_order, CreditPackage.price)
            )
            return list(rows.scalars().all())

    async def get_package(self, package_id: str) -> CreditPackage:
        async with self.session_factory() as session:
            package = (
                await session.execute(
                    select(CreditPackage).where(
                        CreditPackage.id == package_id, CreditPackage.is_active.is_(True)
                    )
                )
            ).scalar_one_or_none()
        if package is None:
            raise NotFound("Credit package not found")
        return package

    async def create_payment(self, user_id: str, package_id: str, provider: str = "mock") -> Payment:
        package = await self.get_package(package_id)
        now = datetime.utcnow()
        payment = Payment(
            id=str(uuid.uuid4()),
            user_id=user_id,
            package_id=package.id,
            provider=provider,
            amount=package.price,
            currency=package.currency,
            status="pending",
            credits_purchased=package.credit_amount,
            meta={"package_name": package.name},
            created_at=now,
            updated_at=now,
        )
        async with self.session_factory() as session:
            async with session.begin():
                session.add(payment)
        logger.info(f"Created payment {payment.id} for user {user_id}: {package.name} ({package.credit_amount} credits)")
        return payment

    async def _load(self, session: AsyncSession, payment_id: str, user_id: str) -> Payment:
        payment = (
            await session.execute(select(Payment).where(Payment.id == payment_id))
        ).scalar_one_or_none()
        if payment is None or payment.user_id != user_id:
            raise NotFound("Payment not found")
        return payment

    async def complete_payment(
        self,
        user_id: str,
        payment_id: str,
        provider_payment_id: Optional[str] = None,
        status: str = "completed",
    ) -> PaymentCompletion:
        """
        Settle a pending payment. On success the purchase credit is written in the
        same transaction as the status change, so completing twice credits once.
        """
        if status not in PAYMENT_FINAL_STATES:
            raise ValidationError(f"status must be one of {sorted(PAYMENT_FINAL_STATES)}")

        provider_payment_id = provider_payment_id or f"mock_{int(datetime.utcnow().timestamp() * 1000)}"

        async def _apply(session: AsyncSession) -> PaymentCompletion:
            payment = await self._load(session, payment_id, user_id)
            result = await session.execute(
                update(Payment)
                .where(Payment.id == payment_id, Payment.status == "pending")
                .values(status=status, provider_payment_id=provider_payment_id, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                # already settled; report what is stored
                await session.refresh(payment)
                logger.info(f"Payment {payment_id} already {payment.status}; nothing to do")
                return PaymentCompletion(payment=payment, credits_added=0, new_balance=None)

            await session.refresh(payment)
            if status != "completed":
                logger.info(f"Payment {payment_id} marked {status}")
                return PaymentCompletion(payment=payment, credits_added=0, new_balance=None)

            package_name = (payment.meta or {}).get("package_name") or "Credit Package"
            tx = await apply_balance_change(
                session, payment.user_id, payment.credits_purchased, "purchase",
                f"Purchased {package_name}",
                reference_id=payment.id, reference_type="payment",
            )
            logger.info(f"Payment {payment_id} completed: +{payment.credits_purchased} credits for {payment.user_id}")
            return PaymentCompletion(payment=payment, credits_added=payment.credits_purchased, new_balance=tx.balance_after)

        return await self.credits.run_write("complete_payment", _apply)
