# FILE: craftads/schemas/credits.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import validator

from craftads.schemas.envelope import CamelModel


class DeductRequest(CamelModel):
    credits: int
    description: str = "Credit usage"
    reference_id: Optional[str] = None
    reference_type: Optional[str] = None


class ValidateRequest(CamelModel):
    required_credits: int
    operation: str = "generation"


class PurchaseRequest(CamelModel):
    package_id: str

    @validator("package_id")
    def validate_package_id(cls, v: str):
        v = (v or "").strip()
        if not v:
            raise ValueError("Package ID is required")
        return v


class PurchaseCompleteRequest(CamelModel):
    payment_session_id: str
    provider_payment_id: Optional[str] = None
    status: str = "completed"


class BalanceResponse(CamelModel):
    credits: int
    user_id: str
    last_updated: datetime


class DeductResponse(CamelModel):
    credits_deducted: int
    new_balance: int
    transaction_id: int


class ValidateResponse(CamelModel):
    required_credits: int
    available_credits: int
    operation: str


class TransactionOut(CamelModel):
    id: int
    amount: int
    type: str
    status: str
    reference_id: Optional[str] = None
    reference_type: Optional[str] = None
    description: Optional[str] = None
    balance_after: int
    created_at: datetime


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    pages: int


class HistoryResponse(CamelModel):
    transactions: List[TransactionOut]
    pagination: Pagination


class PackageOut(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    credit_amount: int
    price: float
    currency: str
    is_featured: bool
    sort_order: int


class PurchaseResponse(CamelModel):
    transaction_id: str
    status: str
    payment_session_id: str


class PurchaseCompleteResponse(CamelModel):
    transaction_id: str
    status: str
    credits_purchased: int
    new_balance: Optional[int] = None


class AuditResponse(CamelModel):
    consistent: bool
    balance: int
    ledger_sum: int
    last_balance_after: Optional[int] = None
    transaction_count: int
    problems: List[str] = []
