# FILE: craftads/api/auth.py
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import select

from craftads.api.deps import get_current_user, get_credit_service
from craftads.core.database import SessionLocal
from craftads.core.errors import Unauthenticated, ValidationError
from craftads.models.user import User
from craftads.schemas.auth import UserCreate, UserLogin, TokenResponse, UserResponse
from craftads.schemas.envelope import ok
from craftads.services.auth_service import hash_password, verify_password, create_token
from craftads.services.credit_service import CreditService
from craftads.services.user_service import ensure_user, touch_last_login

logger = logging.getLogger("craftads.auth")

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        avatar_url=user.avatar_url,
        credits=user.credits_balance,
        created_at=user.created_at,
        last_login=user.last_login,
    )


async def _find_user(email: str):
    async with SessionLocal() as db:
        return (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()


@router.post("/register")
async def register(data: UserCreate):
    if await _find_user(data.email):
        raise ValidationError("Email already registered")

    user, created = await ensure_user(
        email=data.email,
        name=data.name,
        password_hash=hash_password(data.password),
    )
    if not created:
        raise ValidationError("Email already registered")

    logger.info(f"Registered {user.email}")
    return JSONResponse(
        status_code=201,
        content=ok(TokenResponse(token=create_token(user.id, user.email), user=_user_response(user))),
    )


@router.post("/login")
async def login(data: UserLogin):
    user = await _find_user(data.email)
    if not user or not verify_password(data.password, user.password_hash):
        raise Unauthenticated("Invalid credentials")

    await touch_last_login(user.id)
    return ok(TokenResponse(token=create_token(user.id, user.email), user=_user_response(user)))


@router.get("/me")
async def auth_me(user=Depends(get_current_user), credits: CreditService = Depends(get_credit_service)):
    account = await credits.get_account(user["id"])
    return ok(_user_response(account))
