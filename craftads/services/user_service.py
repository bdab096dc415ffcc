# FILE: craftads/services/user_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from craftads.core.config import SIGNUP_BONUS_CREDITS
from craftads.core.database import SessionLocal
from craftads.models.user import User
from craftads.services.credit_service import apply_balance_change

logger = logging.getLogger("craftads.auth")


async def _find_by_email(session_factory: async_sessionmaker, email: str) -> Optional[User]:
    async with session_factory() as session:
        return (await session.execute(select(User).where(User.email == email))).scalar_one_or_none()


async def ensure_user(
    email: str,
    name: Optional[str] = None,
    password_hash: Optional[str] = None,
    auth_provider: str = "password",
    auth_provider_id: Optional[str] = None,
    avatar_url: Optional[str] = None,
    session_factory: async_sessionmaker = SessionLocal,
) -> Tuple[User, bool]:
    """
    Idempotently provision the account for `email`.

    Returns (user, created). A new user starts at zero and receives the signup
    bonus through the ledger in the same transaction, so the welcome credits
    always have a matching transaction row.
    """
    existing = await _find_by_email(session_factory, email)
    if existing:
        await touch_last_login(existing.id, session_factory)
        return await _find_by_email(session_factory, email), False

    user_id = str(uuid.uuid4())
    now = datetime.utcnow()
    try:
        async with session_factory() as session:
            async with session.begin():
                session.add(User(
                    id=user_id,
                    email=email,
                    name=name,
                    password_hash=password_hash,
                    auth_provider=auth_provider,
                    auth_provider_id=auth_provider_id,
                    avatar_url=avatar_url,
                    credits_balance=0,
                    created_at=now,
                    updated_at=now,
                    last_login=now,
                ))
                await session.flush()
                if SIGNUP_BONUS_CREDITS > 0:
                    await apply_balance_change(
                        session, user_id, SIGNUP_BONUS_CREDITS, "signup_bonus",
                        "Welcome bonus credits",
                    )
    except IntegrityError:
        # lost the race against a concurrent sign-in for the same email
        user = await _find_by_email(session_factory, email)
        if user is None:
            raise
        logger.info(f"ensure_user: {email} was created concurrently")
        return user, False

    user = await _find_by_email(session_factory, email)
    logger.info(f"Provisioned user {user_id} ({email}) with {SIGNUP_BONUS_CREDITS} signup credits")
    return user, True


async def touch_last_login(user_id: str, session_factory: async_sessionmaker = SessionLocal) -> None:
    async with session_factory() as session:
        user = await session.get(User, user_id)
        if user:
            user.last_login = datetime.utcnow()
            await session.commit()
