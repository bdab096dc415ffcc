# =========================================================
# FILE: craftads/schemas/generate.py
# =========================================================

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, validator

from craftads.schemas.envelope import CamelModel


class GenerateRequest(CamelModel):
    # optional here so a missing image is reported as MISSING_INPUT, not a schema error
    reference_image: Optional[str] = None
    product_image: Optional[str] = None
    prompt_template: Optional[str] = None
    prompt_values: Dict[str, str] = Field(default_factory=dict)
    width: int = 1024
    height: int = 1024
    template_id: Optional[str] = None
    # optional text descriptions appended to the prompt
    reference_description: Optional[str] = None
    product_description: Optional[str] = None

    @validator("width", "height")
    def validate_dimension(cls, v: int):
        if v < 256 or v > 4096:
            raise ValueError("width and height must be between 256 and 4096")
        return v


class GenerateResponse(CamelModel):
    image_url: str
    generation_id: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    credits_used: int
    new_balance: int


class ModelInfoResponse(CamelModel):
    name: str
    version: str
    capabilities: List[str]
    credit_cost: int
    available: bool


class PromptTemplateOut(CamelModel):
    id: str
    name: str
    description: str
    template: str
    placeholders: List[str]
    default_values: Dict[str, str]


class GenerationOut(CamelModel):
    id: str
    template_id: Optional[str] = None
    status: str
    image_url: Optional[str] = Field(default=None, validation_alias="result_image_url", serialization_alias="imageUrl")
    model: Optional[str] = Field(default=None, validation_alias="ai_model", serialization_alias="model")
    prompt_data: Optional[Dict[str, Any]] = None
    processing_time: Optional[int] = None
    credits_used: int
    error_message: Optional[str] = None
    created_at: datetime


class GenerationPagination(CamelModel):
    page: int
    limit: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool
