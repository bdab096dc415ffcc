import asyncio

import pytest

from craftads.core.errors import NotFound, ValidationError
from craftads.services.credit_service import CreditService
from craftads.services.payment_service import PaymentService

pytestmark = pytest.mark.unit


@pytest.fixture
def payments():
    service = PaymentService(credits=CreditService(retry_delay=0.01))
    asyncio.run(service.seed_default_packages())
    return service


def test_seed_is_idempotent(payments):
    assert asyncio.run(payments.seed_default_packages()) == 0
    packages = asyncio.run(payments.list_packages())
    assert [(p.id, p.credit_amount, p.price) for p in packages] == [
        ("starter", 100, 15.0),
        ("pro", 500, 45.0),
        ("business", 1500, 95.0),
    ]


def test_unknown_package_is_not_found(payments, make_user):
    user = make_user()
    with pytest.raises(NotFound):
        asyncio.run(payments.create_payment(user.id, "platinum"))


def test_create_payment_is_pending_and_priced_from_package(payments, make_user):
    user = make_user()
    payment = asyncio.run(payments.create_payment(user.id, "pro"))
    assert payment.status == "pending"
    assert payment.amount == 45.0
    assert payment.credits_purchased == 500
    assert payment.provider == "mock"


def test_completing_twice_credits_once(payments, make_user):
    user = make_user()

    async def flow():
        payment = await payments.create_payment(user.id, "starter")
        first = await payments.complete_payment(user.id, payment.id, "pi_123")
        second = await payments.complete_payment(user.id, payment.id, "pi_123")
        return first, second

    first, second = asyncio.run(flow())

    assert first.credits_added == 100
    assert first.new_balance == 110
    assert second.credits_added == 0
    assert second.payment.status == "completed"
    assert asyncio.run(payments.credits.get_balance(user.id)) == 110

    history = asyncio.run(payments.credits.history(user.id))
    purchase = history.transactions[0]
    assert purchase.description == "Purchased Starter"
    assert (purchase.reference_id, purchase.reference_type) == (first.payment.id, "payment")


def test_failed_payment_adds_nothing(payments, make_user):
    user = make_user()

    async def flow():
        payment = await payments.create_payment(user.id, "starter")
        return await payments.complete_payment(user.id, payment.id, status="failed")

    result = asyncio.run(flow())
    assert result.payment.status == "failed"
    assert asyncio.run(payments.credits.get_balance(user.id)) == 10


def test_cannot_complete_someone_elses_payment(payments, make_user):
    owner = make_user()
    other = make_user()
    payment = asyncio.run(payments.create_payment(owner.id, "starter"))

    with pytest.raises(NotFound):
        asyncio.run(payments.complete_payment(other.id, payment.id))


def test_invalid_completion_status(payments, make_user):
    user = make_user()
    payment = asyncio.run(payments.create_payment(user.id, "starter"))
    with pytest.raises(ValidationError):
        asyncio.run(payments.complete_payment(user.id, payment.id, status="refunded"))
