"""
Custom exceptions for the marketplace domain.

These exceptions represent domain-level errors and are independent
of infrastructure concerns (HTTP, database, etc.).
"""

from typing import Any, Optional


class MarketplaceException(Exception):
    """Base exception for all marketplace errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(MarketplaceException):
    """Raised when user input is malformed or out of bounds."""

    def __init__(self, field: str, value: Any, reason: str):
        message = f"Validation failed for {field}: {reason}"
        super().__init__(
            message=message,
            details={"field": field, "value": str(value), "reason": reason},
        )


class EntityNotFoundException(MarketplaceException):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: str):
        message = f"{entity} not found: {entity_id}"
        super().__init__(message=message, details={"entity": entity, "id": entity_id})


class PermissionDeniedException(MarketplaceException):
    """Raised when the acting user may not perform an action."""

    def __init__(self, action: str, reason: Optional[str] = None):
        message = f"Not allowed to {action}"
        if reason:
            message += f": {reason}"
        super().__init__(message=message, details={"action": action, "reason": reason})


class ListingLimitExceededException(MarketplaceException):
    """Raised when a plan's listing cap blocks a new product."""

    def __init__(self, plan: str, limit: int, current: int):
        message = (
            f"Listing limit reached. {plan.title()} plan allows {limit} listings. "
            "Upgrade to add more."
        )
        super().__init__(
            message=message,
            details={
                "plan": plan,
                "limit": limit,
                "current": current,
                "upgrade_required": True,
            },
        )


class InvalidStatusTransitionException(MarketplaceException):
    """Raised when a status change is not permitted by the workflow."""

    def __init__(self, entity: str, current: str, requested: str, reason: Optional[str] = None):
        message = f"Cannot move {entity} from '{current}' to '{requested}'"
        if reason:
            message += f": {reason}"
        super().__init__(
            message=message,
            details={"entity": entity, "current": current, "requested": requested},
        )


class PaymentFailedException(MarketplaceException):
    """Raised when payment authorization did not succeed."""

    def __init__(self, outcome: str, amount: Optional[str] = None):
        message = f"Payment {outcome}"
        if amount:
            message += f" for {amount}"
        super().__init__(message=message, details={"outcome": outcome, "amount": amount})


class PersistenceException(MarketplaceException):
    """Raised when the store fails to commit a change."""

    def __init__(self, operation: str, reason: Optional[str] = None):
        message = f"Persistence {operation} failed"
        if reason:
            message += f": {reason}"
        super().__init__(
            message=message, details={"operation": operation, "reason": reason}
        )
