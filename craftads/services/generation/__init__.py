# FILE: craftads/services/generation/__init__.py
from craftads.services.generation.base import (
    GenerationBackend,
    GenerationInput,
    GenerationResult,
    ModelInfo,
)
from craftads.services.generation.mock import MockGenerationBackend
from craftads.services.generation.openai_backend import OpenAIGenerationBackend

BACKENDS = {
    "mock": MockGenerationBackend,
    "openai": OpenAIGenerationBackend,
}


def build_generation_backend(kind: str, **kwargs) -> GenerationBackend:
    """Construct the configured backend once, at process start."""
    cls = BACKENDS.get((kind or "").strip().lower())
    if cls is None:
        raise ValueError(f"Unknown generation backend '{kind}'. Expected one of {sorted(BACKENDS)}")
    return cls(**kwargs)


__all__ = [
    "GenerationBackend", "GenerationInput", "GenerationResult", "ModelInfo",
    "MockGenerationBackend", "OpenAIGenerationBackend", "build_generation_backend",
]
