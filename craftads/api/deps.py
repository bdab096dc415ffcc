# FILE: craftads/api/deps.py

import jwt

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select

from craftads.core.database import SessionLocal
from craftads.core.errors import Unauthenticated
from craftads.models.user import User
from craftads.services.ad_generation_service import AdGenerationService
from craftads.services.auth_service import decode_token
from craftads.services.credit_service import CreditService
from craftads.services.gallery_service import GalleryService
from craftads.services.generation import GenerationBackend
from craftads.services.payment_service import PaymentService

security = HTTPBearer(auto_error=False)


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    if not credentials or not credentials.credentials:
        raise Unauthenticated("Authentication required")

    try:
        payload = decode_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid token")

    user_id = payload.get("user_id") or payload.get("sub")
    if not user_id or not isinstance(user_id, str):
        raise Unauthenticated("Invalid token payload")

    # short-lived session: handlers open their own for writes
    async with SessionLocal() as db:
        user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not user or not user.is_active:
        raise Unauthenticated("User not found")

    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
    }


# Services are built once in create_app() and live on app.state

def get_credit_service(request: Request) -> CreditService:
    return request.app.state.credit_service


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service


def get_gallery_service(request: Request) -> GalleryService:
    return request.app.state.gallery_service


def get_generation_backend(request: Request) -> GenerationBackend:
    return request.app.state.generation_backend


def get_ad_generation_service(request: Request) -> AdGenerationService:
    return request.app.state.ad_generation_service
