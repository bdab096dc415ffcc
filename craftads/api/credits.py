# FILE: craftads/api/credits.py
"""Credits and billing API endpoints."""

import logging

from fastapi import APIRouter, Depends, Query

from craftads.api.deps import get_current_user, get_credit_service, get_payment_service
from craftads.schemas.credits import (
    AuditResponse,
    BalanceResponse,
    DeductRequest,
    DeductResponse,
    HistoryResponse,
    PackageOut,
    Pagination,
    PurchaseCompleteRequest,
    PurchaseCompleteResponse,
    PurchaseRequest,
    PurchaseResponse,
    TransactionOut,
    ValidateRequest,
    ValidateResponse,
)
from craftads.schemas.envelope import ok
from craftads.services.credit_service import CreditService
from craftads.services.payment_service import PaymentService

logger = logging.getLogger("craftads.credits")

router = APIRouter(prefix="/api/credits", tags=["credits"])


# ─────────────────────────────────────────────
# BALANCE / LEDGER
# ─────────────────────────────────────────────

@router.get("/balance")
async def get_credit_balance(
    user=Depends(get_current_user),
    credits: CreditService = Depends(get_credit_service),
):
    """Current balance of the authenticated user."""
    account = await credits.get_account(user["id"])
    return ok(BalanceResponse(
        credits=account.credits_balance,
        user_id=account.id,
        last_updated=account.updated_at,
    ))


@router.post("/deduct")
async def deduct_credits(
    req: DeductRequest,
    user=Depends(get_current_user),
    credits: CreditService = Depends(get_credit_service),
):
    entry = await credits.deduct(
        user["id"],
        req.credits,
        req.description,
        reference_id=req.reference_id,
        reference_type=req.reference_type,
    )
    return ok(DeductResponse(
        credits_deducted=req.credits,
        new_balance=entry.new_balance,
        transaction_id=entry.transaction_id,
    ))


@router.get("/history")
async def get_credit_history(
    page: int = Query(1),
    limit: int = Query(20),
    user=Depends(get_current_user),
    credits: CreditService = Depends(get_credit_service),
):
    """Paginated transactions, newest first. limit is clamped to 1..100."""
    result = await credits.history(user["id"], page=page, limit=limit)
    return ok(HistoryResponse(
        transactions=[TransactionOut.model_validate(t) for t in result.transactions],
        pagination=Pagination(total=result.total, page=result.page, limit=result.limit, pages=result.pages),
    ))


@router.post("/validate")
async def validate_credits(
    req: ValidateRequest,
    user=Depends(get_current_user),
    credits: CreditService = Depends(get_credit_service),
):
    # InsufficientCredits carries the same payload as the success body
    available = await credits.validate(user["id"], req.required_credits, req.operation)
    return ok(ValidateResponse(
        required_credits=req.required_credits,
        available_credits=available,
        operation=req.operation,
    ))


@router.get("/audit")
async def audit_ledger(
    user=Depends(get_current_user),
    credits: CreditService = Depends(get_credit_service),
):
    report = await credits.audit(user["id"])
    if not report.consistent:
        logger.error(f"Ledger inconsistency for user {user['id']}: {report.problems}")
    return ok(AuditResponse(
        consistent=report.consistent,
        balance=report.balance,
        ledger_sum=report.ledger_sum,
        last_balance_after=report.last_balance_after,
        transaction_count=report.transaction_count,
        problems=report.problems,
    ))


# ─────────────────────────────────────────────
# PACKAGES / PURCHASE
# ─────────────────────────────────────────────

@router.get("/packages")
async def get_credit_packages(payments: PaymentService = Depends(get_payment_service)):
    """Active credit packages (public)."""
    packages = await payments.list_packages()
    return ok({"packages": [PackageOut.model_validate(p) for p in packages]})


@router.post("/purchase")
async def purchase_credits(
    req: PurchaseRequest,
    user=Depends(get_current_user),
    payments: PaymentService = Depends(get_payment_service),
):
    """Start a mock purchase; the client completes it through /purchase/complete."""
    payment = await payments.create_payment(user["id"], req.package_id)
    return ok(PurchaseResponse(
        transaction_id=payment.id,
        status=payment.status,
        payment_session_id=payment.id,
    ))


@router.post("/purchase/complete")
async def complete_purchase(
    req: PurchaseCompleteRequest,
    user=Depends(get_current_user),
    payments: PaymentService = Depends(get_payment_service),
):
    """Settle a pending payment. Completing an already completed payment credits nothing."""
    result = await payments.complete_payment(
        user["id"],
        req.payment_session_id,
        provider_payment_id=req.provider_payment_id,
        status=req.status,
    )
    return ok(PurchaseCompleteResponse(
        transaction_id=result.payment.id,
        status=result.payment.status,
        credits_purchased=result.payment.credits_purchased,
        new_balance=result.new_balance,
    ))
