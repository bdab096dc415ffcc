# FILE: craftads/api/generate.py

import logging

from fastapi import APIRouter, Depends

from craftads.api.deps import (
    get_ad_generation_service,
    get_current_user,
    get_generation_backend,
)
from craftads.schemas.envelope import ok
from craftads.schemas.generate import (
    GenerateRequest,
    GenerateResponse,
    ModelInfoResponse,
    PromptTemplateOut,
)
from craftads.services.ad_generation_service import AdGenerationService
from craftads.services.generation import GenerationBackend
from craftads.services.prompt_service import list_prompt_templates

logger = logging.getLogger("craftads.generate")

router = APIRouter(prefix="/api/generate", tags=["generate"])


@router.post("")
async def generate_ad(
    req: GenerateRequest,
    user=Depends(get_current_user),
    service: AdGenerationService = Depends(get_ad_generation_service),
):
    """
    Credits are reserved before the model runs and handed back when it fails,
    so the response is either an image with its charge or an error with none.
    """
    outcome = await service.generate_ad(
        user_id=user["id"],
        reference_image=req.reference_image,
        product_image=req.product_image,
        prompt_template=req.prompt_template,
        prompt_values=req.prompt_values,
        width=req.width,
        height=req.height,
        template_id=req.template_id,
        reference_description=req.reference_description,
        product_description=req.product_description,
    )
    return ok(GenerateResponse(
        image_url=outcome.image_url,
        generation_id=outcome.generation_id,
        metadata=outcome.metadata,
        credits_used=outcome.credits_used,
        new_balance=outcome.new_balance,
    ))


@router.get("/model")
async def model_info(backend: GenerationBackend = Depends(get_generation_backend)):
    info = await backend.describe_model()
    return ok(ModelInfoResponse(
        name=info.name,
        version=info.version,
        capabilities=info.capabilities,
        credit_cost=info.credit_cost,
        available=await backend.is_available(),
    ))


@router.get("/prompt-templates")
async def prompt_templates():
    return ok([PromptTemplateOut.model_validate(t) for t in list_prompt_templates()])
