# FILE: craftads/services/generation/mock.py
from __future__ import annotations

import asyncio
import random
import time
import uuid
from typing import List, Optional, Sequence

from craftads.core.config import MOCK_GENERATION_DELAY_SECONDS, MOCK_GENERATION_FAILURE_RATE
from craftads.core.errors import MissingInput
from craftads.services.generation.base import (
    DEFAULT_CAPABILITIES,
    GenerationBackend,
    GenerationInput,
    GenerationResult,
    ModelInfo,
)

MOCK_IMAGES: List[str] = [f"/images/mock_generations/generation_{i}.jpg" for i in range(1, 6)]

RANDOM_FAILURE_MESSAGE = "Random generation failure (this is a mock error for testing)"


class MockGenerationBackend(GenerationBackend):
    """Simulated model: fixed delay, random failures, canned images."""

    name = "mock"

    def __init__(
        self,
        delay_seconds: float = MOCK_GENERATION_DELAY_SECONDS,
        failure_rate: float = MOCK_GENERATION_FAILURE_RATE,
        rng: Optional[random.Random] = None,
        images: Sequence[str] = MOCK_IMAGES,
    ):
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        self.delay_seconds = max(0.0, delay_seconds)
        self.failure_rate = failure_rate
        self.rng = rng or random.Random()
        self.images = list(images)

    async def generate(self, data: GenerationInput) -> GenerationResult:
        if data.missing_fields():
            return GenerationResult(
                success=False,
                error=MissingInput.default_message,
                error_code=MissingInput.code,
                credit_used=0,
            )

        started = time.monotonic()
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        if self.rng.random() < self.failure_rate:
            return GenerationResult(
                success=False,
                error=RANDOM_FAILURE_MESSAGE,
                error_code="GENERATION_FAILED",
                credit_used=0,
            )

        return GenerationResult(
            success=True,
            image_url=self.rng.choice(self.images),
            credit_used=1,
            generation_id=str(uuid.uuid4()),
            metadata={
                "model": "mock-gpt4o",
                "promptTokens": len(data.prompt) // 4,
                "processingTime": int((time.monotonic() - started) * 1000),
                "dimensions": {"width": data.width, "height": data.height},
            },
        )

    async def is_available(self) -> bool:
        return True

    async def describe_model(self) -> ModelInfo:
        return ModelInfo(
            name="Mock GPT-4o",
            version="1.0",
            capabilities=list(DEFAULT_CAPABILITIES),
            credit_cost=1,
        )
