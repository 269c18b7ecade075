"""
Tests for domain exceptions.

Simple tests to ensure exceptions carry their message and details.
"""

from agrostore.domain.exceptions import (
    EntityNotFoundException,
    InvalidStatusTransitionException,
    ListingLimitExceededException,
    MarketplaceException,
    PaymentFailedException,
    PermissionDeniedException,
    PersistenceException,
    ValidationException,
)


class TestExceptions:
    """Test custom exceptions."""

    def test_validation_exception(self):
        """Test ValidationException."""
        exc = ValidationException("price", "abc", "Please enter a valid number")
        assert "price" in str(exc)
        assert exc.details == {"field": "price", "value": "abc", "reason": "Please enter a valid number"}

    def test_entity_not_found_exception(self):
        exc = EntityNotFoundException("Product", "p-1")
        assert "p-1" in str(exc)
        assert exc.details["entity"] == "Product"

    def test_permission_denied_exception(self):
        exc = PermissionDeniedException("create listing", "only farmers can manage listings")
        assert exc.message == "Not allowed to create listing: only farmers can manage listings"

    def test_listing_limit_exception_suggests_upgrade(self):
        """Test ListingLimitExceededException."""
        exc = ListingLimitExceededException("free", 5, 5)
        assert "Free plan allows 5 listings" in exc.message
        assert exc.details["upgrade_required"] is True
        assert exc.details["current"] == 5

    def test_invalid_status_transition_exception(self):
        exc = InvalidStatusTransitionException("order", "pending", "delivered")
        assert "'pending'" in str(exc)
        assert "'delivered'" in str(exc)

    def test_payment_failed_exception(self):
        exc = PaymentFailedException("cancelled", "19.99")
        assert exc.message == "Payment cancelled for 19.99"
        assert exc.details["outcome"] == "cancelled"

    def test_persistence_exception(self):
        exc = PersistenceException("commit", "disk full")
        assert "disk full" in str(exc)

    def test_all_share_base_class(self):
        for exc in (
            ValidationException("f", 1, "r"),
            EntityNotFoundException("User", "u"),
            PaymentFailedException("failed"),
        ):
            assert isinstance(exc, MarketplaceException)
