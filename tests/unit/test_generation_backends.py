import asyncio
import random

import pytest

from craftads.services.generation import (
    GenerationInput,
    MockGenerationBackend,
    OpenAIGenerationBackend,
    build_generation_backend,
)
from craftads.services.generation.mock import MOCK_IMAGES, RANDOM_FAILURE_MESSAGE

pytestmark = pytest.mark.unit


def _input(**overrides):
    data = dict(
        reference_image="data:image/png;base64,AAAA",
        product_image="data:image/png;base64,BBBB",
        prompt="Create a new advertisement for my product",
        user_id="user-1",
    )
    data.update(overrides)
    return GenerationInput(**data)


@pytest.mark.parametrize("missing", ["reference_image", "product_image", "prompt"])
def test_mock_missing_input_is_never_charged(missing):
    backend = MockGenerationBackend(delay_seconds=0, failure_rate=0)

    result = asyncio.run(backend.generate(_input(**{missing: ""})))

    assert result.success is False
    assert result.error_code == "MISSING_INPUT"
    assert result.credit_used == 0
    assert result.image_url is None


def test_mock_success_returns_canned_image():
    backend = MockGenerationBackend(delay_seconds=0, failure_rate=0, rng=random.Random(1))

    result = asyncio.run(backend.generate(_input(width=1536, height=1024)))

    assert result.success is True
    assert result.credit_used == 1
    assert result.image_url in MOCK_IMAGES
    assert result.generation_id
    assert result.metadata["model"] == "mock-gpt4o"
    assert result.metadata["promptTokens"] == len("Create a new advertisement for my product") // 4
    assert result.metadata["dimensions"] == {"width": 1536, "height": 1024}


def test_mock_random_failure_costs_nothing():
    backend = MockGenerationBackend(delay_seconds=0, failure_rate=1.0)

    result = asyncio.run(backend.generate(_input()))

    assert result.success is False
    assert result.error == RANDOM_FAILURE_MESSAGE
    assert result.error_code == "GENERATION_FAILED"
    assert result.credit_used == 0


def test_mock_failure_rate_must_be_a_probability():
    with pytest.raises(ValueError):
        MockGenerationBackend(failure_rate=1.5)


def test_mock_describes_itself():
    backend = MockGenerationBackend(delay_seconds=0)
    info = asyncio.run(backend.describe_model())
    assert (info.name, info.version, info.credit_cost) == ("Mock GPT-4o", "1.0", 1)
    assert "image-to-image" in info.capabilities
    assert asyncio.run(backend.is_available()) is True


def test_openai_backend_unavailable_without_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    assert asyncio.run(OpenAIGenerationBackend().is_available()) is False


def test_openai_backend_reports_failure_instead_of_raising(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    result = asyncio.run(OpenAIGenerationBackend().generate(_input()))

    assert result.success is False
    assert result.error_code == "GENERATION_FAILED"
    assert result.credit_used == 0


def test_build_generation_backend():
    assert isinstance(build_generation_backend("mock", delay_seconds=0), MockGenerationBackend)
    assert isinstance(build_generation_backend(" OpenAI "), OpenAIGenerationBackend)
    with pytest.raises(ValueError):
        build_generation_backend("dall-e-9000")
