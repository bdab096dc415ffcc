# FILE: craftads/services/credit_service.py
from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from sqlalchemy import select, update, func
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from craftads.core.config import (
    HISTORY_MAX_LIMIT,
    LEDGER_RETRY_DELAY_SECONDS,
    LEDGER_WRITE_RETRIES,
    STALE_RESERVATION_SECONDS,
)
from craftads.core.database import SessionLocal
from craftads.core.errors import (
    InsufficientCredits,
    LedgerWriteFailed,
    NotFound,
    ValidationError,
)
from craftads.core.log import LEDGER_LOGGER
from craftads.models.credit_transaction import (
    CreditTransaction,
    STATUS_COMMITTED,
    STATUS_PENDING,
    STATUS_RELEASED,
    TRANSACTION_TYPES,
)
from craftads.models.user import User

logger = logging.getLogger("craftads.credits")
ledger_logger = logging.getLogger(LEDGER_LOGGER)

T = TypeVar("T")

# every type except usage adds credits
CREDIT_TYPES = frozenset(TRANSACTION_TYPES) - {"usage"}


@dataclass
class LedgerEntry:
    transaction_id: int
    user_id: str
    amount: int
    type: str
    status: str
    new_balance: int


@dataclass
class HistoryPage:
    transactions: List[CreditTransaction]
    total: int
    page: int
    limit: int
    pages: int


@dataclass
class LedgerAudit:
    user_id: str
    balance: int
    ledger_sum: int
    last_balance_after: Optional[int]
    transaction_count: int
    problems: List[str] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.problems


def _entry(tx: CreditTransaction) -> LedgerEntry:
    return LedgerEntry(
        transaction_id=tx.id,
        user_id=tx.user_id,
        amount=tx.amount,
        type=tx.type,
        status=tx.status,
        new_balance=tx.balance_after,
    )


def _require_positive(amount: Any) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError("Amount must be a positive integer")
    return amount


async def apply_balance_change(
    session: AsyncSession,
    user_id: str,
    delta: int,
    type: str,
    description: Optional[str] = None,
    reference_id: Optional[str] = None,
    reference_type: Optional[str] = None,
    status: str = STATUS_COMMITTED,
    meta: Optional[Dict[str, Any]] = None,
    operation: str = "credit operation",
) -> CreditTransaction:
    """
    Apply one signed balance change and append its ledger row.

    Must run inside a transaction owned by the caller. The balance update is a
    single conditional statement, so two overlapping debits can never both
    pass the non-negative check.
    """
    result = await session.execute(
        update(User)
        .where(User.id == user_id, User.credits_balance + delta >= 0)
        .values(credits_balance=User.credits_balance + delta, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        current = (
            await session.execute(select(User.credits_balance).where(User.id == user_id))
        ).scalar_one_or_none()
        if current is None:
            raise NotFound("User not found")
        raise InsufficientCredits(required=-delta, available=current, operation=operation)

    new_balance = (
        await session.execute(select(User.credits_balance).where(User.id == user_id))
    ).scalar_one()

    # stamped while the write lock is held so created_at follows commit order
    now = datetime.utcnow()
    tx = CreditTransaction(
        user_id=user_id,
        amount=delta,
        type=type,
        status=status,
        reference_id=reference_id,
        reference_type=reference_type,
        description=description,
        balance_after=new_balance,
        meta=meta,
        created_at=now,
    )
    session.add(tx)
    await session.flush()

    ledger_logger.info(
        f"user={user_id} amount={delta:+d} type={type} status={status} "
        f"ref={reference_type}:{reference_id} balance_after={new_balance}"
    )
    return tx


class CreditService:
    """Sole writer of users.credits_balance and credit_transactions."""

    def __init__(
        self,
        session_factory: async_sessionmaker = SessionLocal,
        max_retries: int = LEDGER_WRITE_RETRIES,
        retry_delay: float = LEDGER_RETRY_DELAY_SECONDS,
    ):
        self.session_factory = session_factory
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def run_write(self, op: str, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                async with self.session_factory() as session:
                    async with session.begin():
                        return await fn(session)
            except OperationalError as exc:
                if attempt > self.max_retries:
                    logger.error(f"{op} failed after {attempt} attempts", exc_info=exc)
                    raise LedgerWriteFailed() from exc
                logger.warning(f"{op}: transient store error (attempt {attempt}), retrying: {exc}")
                await asyncio.sleep(self.retry_delay * attempt)
            except SQLAlchemyError as exc:
                logger.error(f"{op} failed", exc_info=exc)
                raise LedgerWriteFailed() from exc

    # ─────────────────────────────────────────────
    # READS
    # ─────────────────────────────────────────────

    async def get_account(self, user_id: str) -> User:
        async with self.session_factory() as session:
            user = (await session.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
        if user is None:
            raise NotFound("User not found")
        return user

    async def get_balance(self, user_id: str) -> int:
        async with self.session_factory() as session:
            balance = (
                await session.execute(select(User.credits_balance).where(User.id == user_id))
            ).scalar_one_or_none()
        if balance is None:
            raise NotFound("User not found")
        return balance

    async def validate(self, user_id: str, required: int, operation: str = "generation") -> int:
        """Check the user can afford `required` credits; returns the current balance."""
        _require_positive(required)
        balance = await self.get_balance(user_id)
        if balance < required:
            raise InsufficientCredits(required=required, available=balance, operation=operation)
        return balance

    async def history(self, user_id: str, page: int = 1, limit: int = 20) -> HistoryPage:
        page = max(1, int(page or 1))
        limit = max(1, min(int(limit or 20), HISTORY_MAX_LIMIT))

        async with self.session_factory() as session:
            exists = (await session.execute(select(User.id).where(User.id == user_id))).scalar_one_or_none()
            if exists is None:
                raise NotFound("User not found")

            total = (
                await session.execute(
                    select(func.count(CreditTransaction.id)).where(CreditTransaction.user_id == user_id)
                )
            ).scalar() or 0

            rows = (
                await session.execute(
                    select(CreditTransaction)
                    .where(CreditTransaction.user_id == user_id)
                    .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
                    .offset((page - 1) * limit)
                    .limit(limit)
                )
            ).scalars().all()

        return HistoryPage(
            transactions=list(rows),
            total=total,
            page=page,
            limit=limit,
            pages=math.ceil(total / limit) if total else 0,
        )

    async def audit(self, user_id: str) -> LedgerAudit:
        """Walk the user's ledger oldest-first and compare it with the stored balance."""
        async with self.session_factory() as session:
            balance = (
                await session.execute(select(User.credits_balance).where(User.id == user_id))
            ).scalar_one_or_none()
            if balance is None:
                raise NotFound("User not found")
            rows = (
                await session.execute(
                    select(CreditTransaction)
                    .where(CreditTransaction.user_id == user_id)
                    .order_by(CreditTransaction.created_at.asc(), CreditTransaction.id.asc())
                )
            ).scalars().all()

        problems: List[str] = []
        running = 0
        for tx in rows:
            running += tx.amount
            if tx.balance_after != running:
                problems.append(
                    f"transaction {tx.id}: balance_after={tx.balance_after}, expected {running}"
                )

        last = rows[-1].balance_after if rows else None
        if running != balance:
            problems.append(f"ledger sum {running} != stored balance {balance}")
        if last is not None and last != balance:
            problems.append(f"last balance_after {last} != stored balance {balance}")

        return LedgerAudit(
            user_id=user_id,
            balance=balance,
            ledger_sum=running,
            last_balance_after=last,
            transaction_count=len(rows),
            problems=problems,
        )

    # ─────────────────────────────────────────────
    # WRITES
    # ─────────────────────────────────────────────

    async def deduct(
        self,
        user_id: str,
        amount: int,
        description: str,
        reference_id: Optional[str] = None,
        reference_type: Optional[str] = None,
        operation: str = "credit deduction",
    ) -> LedgerEntry:
        amount = _require_positive(amount)

        async def _apply(session: AsyncSession) -> LedgerEntry:
            tx = await apply_balance_change(
                session, user_id, -amount, "usage", description,
                reference_id=reference_id, reference_type=reference_type, operation=operation,
            )
            return _entry(tx)

        return await self.run_write("deduct", _apply)

    async def add(
        self,
        user_id: str,
        amount: int,
        type: str,
        description: str,
        reference_id: Optional[str] = None,
        reference_type: Optional[str] = None,
    ) -> LedgerEntry:
        amount = _require_positive(amount)
        if type not in CREDIT_TYPES:
            raise ValidationError(f"type must be one of {sorted(CREDIT_TYPES)}")

        async def _apply(session: AsyncSession) -> LedgerEntry:
            tx = await apply_balance_change(
                session, user_id, amount, type, description,
                reference_id=reference_id, reference_type=reference_type,
            )
            return _entry(tx)

        return await self.run_write("add", _apply)

    async def reserve(
        self,
        user_id: str,
        amount: int,
        description: str,
        reference_id: Optional[str] = None,
        reference_type: Optional[str] = None,
        operation: str = "generation",
    ) -> LedgerEntry:
        """Debit now with a pending row; finish with commit_reservation or release_reservation."""
        amount = _require_positive(amount)

        async def _apply(session: AsyncSession) -> LedgerEntry:
            tx = await apply_balance_change(
                session, user_id, -amount, "usage", description,
                reference_id=reference_id, reference_type=reference_type,
                status=STATUS_PENDING, operation=operation,
            )
            return _entry(tx)

        return await self.run_write("reserve", _apply)

    async def _settle(self, session: AsyncSession, transaction_id: int, new_status: str) -> Optional[CreditTransaction]:
        """Flip a pending reservation; returns the row, or None when it was already in new_status."""
        result = await session.execute(
            update(CreditTransaction)
            .where(CreditTransaction.id == transaction_id, CreditTransaction.status == STATUS_PENDING)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        tx = (
            await session.execute(select(CreditTransaction).where(CreditTransaction.id == transaction_id))
        ).scalar_one_or_none()
        if tx is None:
            raise NotFound("Reservation not found")
        if result.rowcount == 0:
            if tx.status == new_status:
                return None
            raise ValidationError(f"Reservation {transaction_id} is already {tx.status}")
        return tx

    async def commit_reservation(self, transaction_id: int) -> None:
        async def _apply(session: AsyncSession) -> None:
            tx = await self._settle(session, transaction_id, STATUS_COMMITTED)
            if tx is not None:
                ledger_logger.info(f"user={tx.user_id} reservation={transaction_id} committed")

        await self.run_write("commit_reservation", _apply)

    async def release_reservation(self, transaction_id: int, reason: str = "Reservation released") -> Optional[LedgerEntry]:
        """Undo a pending reservation by appending a refund row; no-op if already released."""

        async def _apply(session: AsyncSession) -> Optional[LedgerEntry]:
            tx = await self._settle(session, transaction_id, STATUS_RELEASED)
            if tx is None:
                return None
            refund = await apply_balance_change(
                session, tx.user_id, -tx.amount, "refund", reason,
                reference_id=str(transaction_id), reference_type="reservation",
            )
            return _entry(refund)

        return await self.run_write("release_reservation", _apply)

    async def release_stale_reservations(
        self,
        older_than_seconds: float = STALE_RESERVATION_SECONDS,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Release usage reservations left pending past `older_than_seconds`.

        A reservation stays pending when its release failed or the process died
        mid-generation; sweeping it appends the refund the user is owed.
        Returns how many were released.
        """
        cutoff = (now or datetime.utcnow()) - timedelta(seconds=older_than_seconds)
        async with self.session_factory() as session:
            stale = (
                await session.execute(
                    select(CreditTransaction.id)
                    .where(
                        CreditTransaction.status == STATUS_PENDING,
                        CreditTransaction.type == "usage",
                        CreditTransaction.created_at < cutoff,
                    )
                    .order_by(CreditTransaction.id)
                )
            ).scalars().all()

        released = 0
        for transaction_id in stale:
            try:
                entry = await self.release_reservation(transaction_id, "Released stale reservation")
            except ValidationError:
                # committed between the scan and the release
                continue
            except LedgerWriteFailed:
                logger.error(f"Could not release stale reservation {transaction_id}; will retry on next sweep")
                continue
            if entry is not None:
                released += 1

        if stale:
            logger.info(f"Released {released} of {len(stale)} stale reservations older than {cutoff.isoformat()}")
        return released
