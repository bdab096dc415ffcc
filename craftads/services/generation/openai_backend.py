# FILE: craftads/services/generation/openai_backend.py
from __future__ import annotations

import asyncio
import base64
import logging
import time
import uuid
from typing import Tuple

import httpx

from craftads.core.config import OPENAI_IMAGE_MODEL, get_openai_client, has_openai_key
from craftads.core.errors import MissingInput
from craftads.services.generation.base import (
    DEFAULT_CAPABILITIES,
    GenerationBackend,
    GenerationInput,
    GenerationResult,
    ModelInfo,
)

logger = logging.getLogger("craftads.generate")

SUPPORTED_SIZES = {"1024x1024", "1536x1024", "1024x1536"}


def _decode_data_url(value: str) -> Tuple[bytes, str]:
    """Accepts `data:image/png;base64,...` or bare base64."""
    mime = "image/png"
    payload = value
    if value.startswith("data:"):
        header, _, payload = value.partition(",")
        mime = header[5:].split(";")[0] or mime
    return base64.b64decode(payload), mime


async def load_image(value: str, client: httpx.AsyncClient) -> Tuple[bytes, str]:
    if value.startswith(("http://", "https://")):
        resp = await client.get(value, timeout=30)
        resp.raise_for_status()
        return resp.content, resp.headers.get("content-type", "image/png").split(";")[0]
    return _decode_data_url(value)


class OpenAIGenerationBackend(GenerationBackend):
    """Image edit endpoint with the reference and product images as inputs."""

    name = "openai"

    def __init__(self, model: str = OPENAI_IMAGE_MODEL):
        self.model = model

    async def generate(self, data: GenerationInput) -> GenerationResult:
        if data.missing_fields():
            return GenerationResult(
                success=False,
                error=MissingInput.default_message,
                error_code=MissingInput.code,
                credit_used=0,
            )

        started = time.monotonic()
        size = f"{data.width}x{data.height}"
        try:
            async with httpx.AsyncClient(follow_redirects=True) as http:
                ref_bytes, ref_mime = await load_image(data.reference_image, http)
                prod_bytes, prod_mime = await load_image(data.product_image, http)

            client = get_openai_client()

            def _call():
                return client.images.edit(
                    model=self.model,
                    image=[
                        ("reference.png", ref_bytes, ref_mime),
                        ("product.png", prod_bytes, prod_mime),
                    ],
                    prompt=data.prompt,
                    size=size if size in SUPPORTED_SIZES else "auto",
                    user=data.user_id,
                )

            resp = await asyncio.to_thread(_call)
            b64 = resp.data[0].b64_json
        except Exception as e:
            logger.error(f"OpenAI image generation failed for user {data.user_id}: {e}")
            return GenerationResult(
                success=False,
                error="The image model could not complete this generation",
                error_code="GENERATION_FAILED",
                credit_used=0,
            )

        usage = getattr(resp, "usage", None)
        return GenerationResult(
            success=True,
            image_url=f"data:image/png;base64,{b64}",
            credit_used=1,
            generation_id=str(uuid.uuid4()),
            metadata={
                "model": self.model,
                "promptTokens": getattr(usage, "input_tokens", None) or len(data.prompt) // 4,
                "processingTime": int((time.monotonic() - started) * 1000),
                "dimensions": {"width": data.width, "height": data.height},
            },
        )

    async def is_available(self) -> bool:
        return has_openai_key()

    async def describe_model(self) -> ModelInfo:
        return ModelInfo(
            name="OpenAI Image",
            version=self.model,
            capabilities=list(DEFAULT_CAPABILITIES),
            credit_cost=1,
        )
