# FILE: craftads/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from craftads.api import auth, credits, gallery, generate, generations, root
from craftads.core.config import CORS_ORIGINS, GENERATION_BACKEND
from craftads.core.database import init_models
from craftads.core.errors import CraftAdsError
from craftads.core.log import configure_logging
from craftads.schemas.envelope import fail
from craftads.services.ad_generation_service import AdGenerationService
from craftads.services.credit_service import CreditService
from craftads.services.gallery_service import GalleryService
from craftads.services.generation import GenerationBackend, build_generation_backend
from craftads.services.payment_service import PaymentService

logger = logging.getLogger("craftads")

HTTP_ERROR_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "RESOURCE_NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    422: "VALIDATION_ERROR",
}


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())[1:])
        msg = err.get("msg", "Invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CraftAdsError)
    async def craftads_error_handler(request: Request, exc: CraftAdsError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=fail(exc.code, exc.message, exc.data))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = HTTP_ERROR_CODES.get(exc.status_code, "SERVER_ERROR")
        return JSONResponse(status_code=exc.status_code, content=fail(code, str(exc.detail)))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=422, content=fail("VALIDATION_ERROR", _validation_message(exc)))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(status_code=500, content=fail("SERVER_ERROR", "An unexpected error occurred"))


def create_app(
    generation_backend: Optional[GenerationBackend] = None,
    init_db: bool = True,
) -> FastAPI:
    """
    Build the API. The generation backend is constructed here once and shared
    through app.state; pass one in to override GENERATION_BACKEND.
    """
    configure_logging()

    backend = generation_backend or build_generation_backend(GENERATION_BACKEND)
    credit_service = CreditService()
    payment_service = PaymentService(credits=credit_service)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"CraftAds API starting (generation backend: {backend.name})")
        if init_db:
            await init_models()
            await payment_service.seed_default_packages()
        await credit_service.release_stale_reservations()
        if not await backend.is_available():
            logger.warning(f"Generation backend '{backend.name}' is not available")
        yield
        logger.info("CraftAds API stopped")

    app = FastAPI(title="CraftAds API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.generation_backend = backend
    app.state.credit_service = credit_service
    app.state.payment_service = payment_service
    app.state.gallery_service = GalleryService()
    app.state.ad_generation_service = AdGenerationService(backend, credits=credit_service)

    register_exception_handlers(app)

    for module in (root, auth, credits, generate, generations, gallery):
        app.include_router(module.router)

    return app


app = create_app()
