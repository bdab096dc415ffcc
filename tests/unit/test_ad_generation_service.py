import asyncio
import random

import pytest
from sqlalchemy import select, update

from craftads.core.database import SessionLocal
from craftads.core.errors import InsufficientCredits, MissingInput, UpstreamGenerationFailure, ValidationError
from craftads.models.credit_transaction import CreditTransaction
from craftads.models.generation import Generation
from craftads.models.user import User
from craftads.services.ad_generation_service import AdGenerationService
from craftads.services.credit_service import CreditService
from craftads.services.generation import GenerationResult, MockGenerationBackend
from craftads.services.payment_service import PaymentService

pytestmark = pytest.mark.unit

REQUEST = dict(
    reference_image="data:image/png;base64,AAAA",
    product_image="data:image/png;base64,BBBB",
    prompt_template="product-integration",
)


class CountingBackend(MockGenerationBackend):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.calls = 0

    async def generate(self, data):
        self.calls += 1
        return await super().generate(data)


class SlowBackend(MockGenerationBackend):
    async def generate(self, data):
        await asyncio.sleep(1)
        return GenerationResult(success=True, credit_used=1, image_url="/late.jpg")


def _service(backend, timeout=5):
    return AdGenerationService(backend, credits=CreditService(retry_delay=0.01), timeout_seconds=timeout)


async def _ledger(user_id):
    async with SessionLocal() as session:
        rows = await session.execute(
            select(CreditTransaction).where(CreditTransaction.user_id == user_id).order_by(CreditTransaction.id)
        )
        return list(rows.scalars().all())


async def _generations(user_id):
    async with SessionLocal() as session:
        rows = await session.execute(select(Generation).where(Generation.user_id == user_id))
        return list(rows.scalars().all())


def test_successful_generation_commits_one_credit(make_user):
    user = make_user()
    service = _service(CountingBackend(delay_seconds=0, failure_rate=0, rng=random.Random(3)))

    outcome = asyncio.run(service.generate_ad(user.id, **REQUEST))

    assert outcome.credits_used == 1
    assert outcome.new_balance == 9
    assert outcome.image_url.startswith("/images/mock_generations/")
    usage = asyncio.run(_ledger(user.id))[-1]
    assert (usage.type, usage.amount, usage.status, usage.balance_after) == ("usage", -1, "committed", 9)
    assert usage.reference_id == outcome.generation_id
    assert usage.reference_type == "generation"

    [gen] = asyncio.run(_generations(user.id))
    assert gen.id == outcome.generation_id
    assert gen.status == "completed"
    assert gen.credits_used == 1
    assert gen.prompt_data["template"] == "product-integration"


def test_failed_generation_releases_reservation(make_user):
    user = make_user()
    service = _service(MockGenerationBackend(delay_seconds=0, failure_rate=1.0))

    with pytest.raises(UpstreamGenerationFailure):
        asyncio.run(service.generate_ad(user.id, **REQUEST))

    assert asyncio.run(service.credits.get_balance(user.id)) == 10
    ledger = asyncio.run(_ledger(user.id))
    assert [(t.type, t.amount, t.status) for t in ledger[1:]] == [
        ("usage", -1, "released"),
        ("refund", 1, "committed"),
    ]
    assert asyncio.run(service.credits.audit(user.id)).consistent
    [gen] = asyncio.run(_generations(user.id))
    assert gen.status == "failed"
    assert gen.credits_used == 0


def test_backend_missing_input_is_not_charged(make_user):
    user = make_user()
    service = _service(MockGenerationBackend(delay_seconds=0, failure_rate=0))

    with pytest.raises(MissingInput):
        asyncio.run(service.generate_ad(
            user.id, **dict(REQUEST, prompt_template="custom"), prompt_values={"customInstructions": "   "}
        ))

    assert asyncio.run(service.credits.get_balance(user.id)) == 10


def test_missing_fields_fail_before_reserving(make_user):
    user = make_user()
    backend = CountingBackend(delay_seconds=0, failure_rate=0)
    service = _service(backend)

    with pytest.raises(MissingInput):
        asyncio.run(service.generate_ad(user.id, **dict(REQUEST, product_image=None)))

    assert backend.calls == 0
    assert len(asyncio.run(_ledger(user.id))) == 1


def test_unknown_prompt_template_is_rejected(make_user):
    user = make_user()
    service = _service(MockGenerationBackend(delay_seconds=0, failure_rate=0))
    with pytest.raises(ValidationError):
        asyncio.run(service.generate_ad(user.id, **dict(REQUEST, prompt_template="nope")))


def test_timeout_releases_credits(make_user):
    user = make_user()
    service = _service(SlowBackend(delay_seconds=0, failure_rate=0), timeout=0.05)

    with pytest.raises(UpstreamGenerationFailure) as exc:
        asyncio.run(service.generate_ad(user.id, **REQUEST))

    assert "timed out" in exc.value.message
    assert asyncio.run(service.credits.get_balance(user.id)) == 10


def test_no_backend_call_without_credits(make_user):
    user = make_user()
    backend = CountingBackend(delay_seconds=0, failure_rate=0)
    service = _service(backend)

    async def drain():
        async with SessionLocal() as session:
            async with session.begin():
                await session.execute(update(User).where(User.id == user.id).values(credits_balance=0))

    asyncio.run(drain())
    with pytest.raises(InsufficientCredits):
        asyncio.run(service.generate_ad(user.id, **REQUEST))
    assert backend.calls == 0


def test_purchase_then_generate_scenario(make_user):
    """10 -> buy 100 -> 110 -> three generations -> 107 -> forced to 0 -> refused."""
    user = make_user()
    credits = CreditService(retry_delay=0.01)
    payments = PaymentService(credits=credits)
    backend = CountingBackend(delay_seconds=0, failure_rate=0, rng=random.Random(11))
    service = AdGenerationService(backend, credits=credits)

    async def buy():
        await payments.seed_default_packages()
        payment = await payments.create_payment(user.id, "starter")
        return await payments.complete_payment(user.id, payment.id)

    completion = asyncio.run(buy())
    assert completion.new_balance == 110
    purchase = asyncio.run(_ledger(user.id))[-1]
    assert (purchase.type, purchase.amount, purchase.balance_after) == ("purchase", 100, 110)

    for _ in range(3):
        asyncio.run(service.generate_ad(user.id, **REQUEST))

    assert asyncio.run(credits.get_balance(user.id)) == 107
    usage = [t for t in asyncio.run(_ledger(user.id)) if t.type == "usage"]
    assert [t.balance_after for t in usage] == [109, 108, 107]
    assert asyncio.run(credits.audit(user.id)).consistent

    async def force_zero():
        async with SessionLocal() as session:
            async with session.begin():
                await session.execute(update(User).where(User.id == user.id).values(credits_balance=0))

    asyncio.run(force_zero())
    rows_before = len(asyncio.run(_ledger(user.id)))
    calls_before = backend.calls

    with pytest.raises(InsufficientCredits):
        asyncio.run(service.generate_ad(user.id, **REQUEST))

    assert asyncio.run(credits.get_balance(user.id)) == 0
    assert len(asyncio.run(_ledger(user.id))) == rows_before
    assert backend.calls == calls_before


def test_image_descriptions_are_appended_to_prompt(make_user):
    user = make_user()
    service = _service(MockGenerationBackend(delay_seconds=0, failure_rate=0))

    outcome = asyncio.run(service.generate_ad(
        user.id, **REQUEST,
        reference_description="a bold red sneaker ad",
        product_description="a green water bottle",
    ))

    [gen] = asyncio.run(_generations(user.id))
    assert gen.id == outcome.generation_id
    assert gen.prompt_data["prompt"].endswith(
        "\n\nThe reference ad shows: a bold red sneaker ad\n\nMy product image shows: a green water bottle"
    )
