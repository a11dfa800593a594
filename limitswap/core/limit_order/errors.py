"""
Limit Order Errors

Errors raised at the asynchronous boundary of the limit-order session.
The derivation engine itself never raises; it reports absent values and
validation flags instead.
"""

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    """Categories of boundary errors."""

    QUOTE = "quote"            # Market quote lookup failed
    GAS_PRICE = "gas_price"    # Gas price feed failed
    VALIDATION = "validation"  # Order not placeable in its current state
    PENDING = "pending"        # Another submission is in flight
    SUBMISSION = "submission"  # Payload build or transaction send rejected


class LimitOrderError(Exception):
    """Base class for limit-order boundary errors."""

    category: ErrorCategory = ErrorCategory.VALIDATION

    def __init__(self, message: str, category: Optional[ErrorCategory] = None):
        super().__init__(message)
        self.message = message
        if category is not None:
            self.category = category


class QuoteUnavailableError(LimitOrderError):
    """The market-quote provider could not produce a trade."""

    category = ErrorCategory.QUOTE


class GasPriceUnavailableError(LimitOrderError):
    """The gas-price feed returned nothing usable."""

    category = ErrorCategory.GAS_PRICE


class OrderNotPlaceableError(LimitOrderError):
    """Placement was attempted while the order fails its gates."""

    def __init__(self, reasons: Optional[list] = None):
        self.reasons = list(reasons or [])
        detail = ", ".join(self.reasons) if self.reasons else "order is not valid"
        super().__init__(f"Order cannot be placed: {detail}", ErrorCategory.VALIDATION)


class SubmissionPendingError(LimitOrderError):
    """A previous placement has not resolved yet."""

    category = ErrorCategory.PENDING

    def __init__(self, message: str = "An order submission is already pending"):
        super().__init__(message)


class SubmissionError(LimitOrderError):
    """The submission collaborator or the transaction sender rejected the order."""

    category = ErrorCategory.SUBMISSION
