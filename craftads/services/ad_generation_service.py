# FILE: craftads/services/ad_generation_service.py
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from craftads.core.config import GENERATION_TIMEOUT_SECONDS
from craftads.core.database import SessionLocal
from craftads.core.errors import (
    CraftAdsError,
    MissingInput,
    NotFound,
    UpstreamGenerationFailure,
)
from craftads.models.ad_template import AdTemplate
from craftads.models.generation import Generation
from craftads.services.credit_service import CreditService, LedgerEntry
from craftads.services.generation import GenerationBackend, GenerationInput, GenerationResult
from craftads.services.prompt_service import enhance_prompt, format_prompt

logger = logging.getLogger("craftads.generate")


@dataclass
class AdGenerationOutcome:
    generation_id: str
    image_url: str
    credits_used: int
    new_balance: int
    metadata: Dict[str, Any] = field(default_factory=dict)


class AdGenerationService:
    """
    reserve credits -> generate -> commit on success, release on failure.

    The reservation is taken before the backend is called, so a user can
    never receive output without being charged, and a failed or timed-out
    generation always hands the credits back.
    """

    def __init__(
        self,
        backend: GenerationBackend,
        credits: Optional[CreditService] = None,
        session_factory: async_sessionmaker = SessionLocal,
        timeout_seconds: float = GENERATION_TIMEOUT_SECONDS,
    ):
        self.backend = backend
        self.credits = credits or CreditService(session_factory=session_factory)
        self.session_factory = session_factory
        self.timeout_seconds = timeout_seconds

    async def _template_exists(self, template_id: str) -> bool:
        async with self.session_factory() as session:
            found = (
                await session.execute(select(AdTemplate.id).where(AdTemplate.id == template_id))
            ).scalar_one_or_none()
        return found is not None

    async def _run_backend(self, data: GenerationInput) -> GenerationResult:
        try:
            return await asyncio.wait_for(self.backend.generate(data), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Generation for user {data.user_id} timed out after {self.timeout_seconds}s")
            return GenerationResult(
                success=False, error="Generation timed out", error_code=UpstreamGenerationFailure.code
            )
        except Exception as e:
            logger.error(f"Generation backend '{self.backend.name}' crashed: {e}", exc_info=e)
            return GenerationResult(
                success=False, error=UpstreamGenerationFailure.default_message,
                error_code=UpstreamGenerationFailure.code,
            )

    async def _release(self, reservation: LedgerEntry, reason: str) -> None:
        try:
            await self.credits.release_reservation(reservation.transaction_id, reason)
        except CraftAdsError:
            logger.error(
                f"Could not release reservation {reservation.transaction_id} "
                f"for user {reservation.user_id}; left pending for the stale-reservation sweep"
            )
            raise

    async def _record(
        self,
        generation_id: str,
        user_id: str,
        template_id: Optional[str],
        result: GenerationResult,
        prompt_data: Dict[str, Any],
        credits_used: int,
    ) -> None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(Generation(
                        id=generation_id,
                        user_id=user_id,
                        template_id=template_id,
                        status="completed" if result.success else "failed",
                        result_image_url=result.image_url,
                        ai_model=(result.metadata or {}).get("model"),
                        error_message=result.error,
                        prompt_data=prompt_data,
                        processing_time=(result.metadata or {}).get("processingTime"),
                        credits_used=credits_used,
                        created_at=datetime.utcnow(),
                    ))
                    if template_id and result.success:
                        await session.execute(
                            update(AdTemplate)
                            .where(AdTemplate.id == template_id)
                            .values(usage_count=AdTemplate.usage_count + 1)
                            .execution_options(synchronize_session=False)
                        )
        except SQLAlchemyError as e:
            # history only; the ledger already reflects the outcome
            logger.error(f"Failed to record generation {generation_id}: {e}")

    async def generate_ad(
        self,
        user_id: str,
        reference_image: Optional[str],
        product_image: Optional[str],
        prompt_template: Optional[str],
        prompt_values: Optional[Dict[str, str]] = None,
        width: int = 1024,
        height: int = 1024,
        template_id: Optional[str] = None,
        reference_description: Optional[str] = None,
        product_description: Optional[str] = None,
    ) -> AdGenerationOutcome:
        if not reference_image or not product_image or not prompt_template:
            raise MissingInput(
                "Missing required fields: referenceImage, productImage, and promptTemplate are required"
            )

        prompt = enhance_prompt(
            format_prompt(prompt_template, prompt_values), reference_description, product_description
        )
        if template_id and not await self._template_exists(template_id):
            raise NotFound("Template not found")

        cost = (await self.backend.describe_model()).credit_cost
        generation_id = str(uuid.uuid4())
        prompt_data = {"template": prompt_template, "values": prompt_values or {}, "prompt": prompt}

        # raises InsufficientCredits before the backend is ever called
        reservation = await self.credits.reserve(
            user_id, cost, "Ad generation",
            reference_id=generation_id, reference_type="generation", operation="generation",
        )

        data = GenerationInput(
            reference_image=reference_image,
            product_image=product_image,
            prompt=prompt,
            user_id=user_id,
            width=width,
            height=height,
        )
        try:
            result = await self._run_backend(data)
        except asyncio.CancelledError:
            await self._release(reservation, "Generation cancelled")
            raise

        if not result.success:
            await self._release(reservation, "Refund for failed generation")
            await self._record(generation_id, user_id, template_id, result, prompt_data, 0)
            logger.info(f"Generation {generation_id} failed for user {user_id}: {result.error}")
            if result.error_code == MissingInput.code:
                raise MissingInput(result.error)
            raise UpstreamGenerationFailure(result.error or UpstreamGenerationFailure.default_message)

        try:
            await self.credits.commit_reservation(reservation.transaction_id)
        except CraftAdsError as e:
            # the debit already happened at reserve time; only the status flip is missing
            logger.error(f"Commit of reservation {reservation.transaction_id} failed: {e.message}")

        metadata = dict(result.metadata or {})
        if result.generation_id and result.generation_id != generation_id:
            metadata["providerGenerationId"] = result.generation_id

        await self._record(generation_id, user_id, template_id, result, prompt_data, cost)
        logger.info(f"Generation {generation_id} completed for user {user_id}")

        return AdGenerationOutcome(
            generation_id=generation_id,
            image_url=result.image_url,
            credits_used=cost,
            new_balance=reservation.new_balance,
            metadata=metadata,
        )
