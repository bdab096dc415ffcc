# FILE: craftads/services/generation/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_CAPABILITIES = ["image-to-image", "text-guided-generation", "product-integration"]


@dataclass
class GenerationInput:
    reference_image: str    # data URL, raw base64 or http(s) URL
    product_image: str
    prompt: str
    user_id: str
    width: int = 1024
    height: int = 1024
    style: Optional[str] = None

    def missing_fields(self) -> List[str]:
        missing = []
        if not self.reference_image:
            missing.append("referenceImage")
        if not self.product_image:
            missing.append("productImage")
        if not (self.prompt or "").strip():
            missing.append("prompt")
        return missing


@dataclass
class GenerationResult:
    success: bool
    credit_used: int = 0
    image_url: Optional[str] = None
    generation_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None  # MISSING_INPUT | GENERATION_FAILED
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ModelInfo:
    name: str
    version: str
    capabilities: List[str]
    credit_cost: int


class GenerationBackend(ABC):
    """Produces an ad image from a reference image, a product image and a prompt."""

    name: str = "base"

    @abstractmethod
    async def generate(self, data: GenerationInput) -> GenerationResult:
        """Never raises for model-side failures; those come back as success=False."""

    @abstractmethod
    async def is_available(self) -> bool:
        ...

    @abstractmethod
    async def describe_model(self) -> ModelInfo:
        ...
