# FILE: craftads/services/prompt_service.py

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from craftads.core.errors import ValidationError

_PLACEHOLDER = re.compile(r"\{([a-zA-Z0-9_]+)\}")


@dataclass(frozen=True)
class PromptTemplate:
    id: str
    name: str
    description: str
    template: str
    placeholders: List[str] = field(default_factory=list)
    default_values: Dict[str, str] = field(default_factory=dict)


PROMPT_TEMPLATES: List[PromptTemplate] = [
    PromptTemplate(
        id="product-integration",
        name="Product Integration",
        description="Integrate your product into the reference ad style",
        template=(
            "Create a new advertisement that follows the style, layout, and aesthetic of the reference ad, "
            "but replace the main product with my product. Maintain the overall look and feel, color scheme, "
            "and typography style of the reference ad. Make sure my product is the focal point of the new ad."
        ),
    ),
    PromptTemplate(
        id="style-transfer",
        name="Style Transfer",
        description="Transfer the visual style to your product",
        template=(
            "Create a new advertisement featuring my product using the visual style, color palette, and design "
            "elements of the reference ad. Adapt the composition to best showcase my product while maintaining "
            "the artistic direction of the reference."
        ),
    ),
    PromptTemplate(
        id="brand-adaptation",
        name="Brand Adaptation",
        description="Adapt your brand message in this style",
        template=(
            "Create a new advertisement for my product that uses the design language and layout approach of the "
            "reference ad, but update it to reflect my product's unique features. Include the tagline: "
            "\"{tagline}\" in a way that integrates well with the design."
        ),
        placeholders=["tagline"],
        default_values={"tagline": "Experience the difference"},
    ),
    PromptTemplate(
        id="seasonal-theme",
        name="Seasonal Theme",
        description="Create a seasonal variation in this style",
        template=(
            "Create a {season}-themed advertisement for my product, inspired by the design style of the reference "
            "ad. Incorporate seasonal elements and colors while maintaining the visual language of the reference."
        ),
        placeholders=["season"],
        default_values={"season": "summer"},
    ),
    PromptTemplate(
        id="custom",
        name="Custom Instructions",
        description="Write your own specific instructions",
        template="{customInstructions}",
        placeholders=["customInstructions"],
        default_values={
            "customInstructions": "Create a new advertisement that features my product, inspired by the reference ad."
        },
    ),
]

_BY_ID = {t.id: t for t in PROMPT_TEMPLATES}


def list_prompt_templates() -> List[PromptTemplate]:
    return list(PROMPT_TEMPLATES)


def get_prompt_template(template_id: str) -> Optional[PromptTemplate]:
    return _BY_ID.get(template_id)


def format_prompt(template_id: str, values: Optional[Dict[str, str]] = None) -> str:
    """Fill `{name}` placeholders; values override the template defaults. Unknown names stay as-is."""
    template = get_prompt_template(template_id)
    if template is None:
        raise ValidationError(f"Invalid prompt template: '{template_id}' not found")

    merged = dict(template.default_values)
    merged.update({k: str(v) for k, v in (values or {}).items() if v is not None})

    def repl(m: re.Match) -> str:
        key = m.group(1)
        return merged[key] if key in merged else m.group(0)

    return _PLACEHOLDER.sub(repl, template.template)


def enhance_prompt(
    prompt: str,
    reference_image_desc: Optional[str] = None,
    product_image_desc: Optional[str] = None,
) -> str:
    enhanced = prompt
    if reference_image_desc:
        enhanced += f"\n\nThe reference ad shows: {reference_image_desc}"
    if product_image_desc:
        enhanced += f"\n\nMy product image shows: {product_image_desc}"
    return enhanced
