# FILE: craftads/core/errors.py
"""Domain errors raised by services and rendered into the response envelope."""

from typing import Any, Dict, Optional


class CraftAdsError(Exception):
    code = "SERVER_ERROR"
    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)

    def to_error(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class Unauthenticated(CraftAdsError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Authentication required"


class ValidationError(CraftAdsError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid request"


class InsufficientCredits(CraftAdsError):
    code = "INSUFFICIENT_CREDITS"
    status_code = 403
    default_message = "Insufficient credits"

    def __init__(self, required: int, available: int, operation: str = "generation"):
        super().__init__(
            f"Insufficient credits. Required: {required}, available: {available}. Purchase more credits to continue.",
            data={"requiredCredits": required, "availableCredits": available, "operation": operation},
        )
        self.required = required
        self.available = available


class MissingInput(CraftAdsError):
    code = "MISSING_INPUT"
    status_code = 400
    default_message = "Missing required input: referenceImage, productImage, and prompt are required"


class NotFound(CraftAdsError):
    code = "RESOURCE_NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class LedgerWriteFailed(CraftAdsError):
    code = "LEDGER_WRITE_FAILED"
    status_code = 500
    default_message = "Could not record the credit transaction"


class UpstreamGenerationFailure(CraftAdsError):
    code = "GENERATION_FAILED"
    status_code = 500
    default_message = "Generation failed"
