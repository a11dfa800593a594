"""
Limit Order Module

Swap state machine, fixed-point derivation engine and risk gates for
token-swap limit orders, plus the session that wires them to quotes, gas
prices and order submission.
"""

from .engine import derive, max_input_amount, swap_type
from .errors import (
    LimitOrderError,
    OrderNotPlaceableError,
    SubmissionError,
    SubmissionPendingError,
)
from .models import (
    DerivationContext,
    DerivedQuantities,
    Field,
    FlipIndependent,
    FlipRateOp,
    Order,
    OrderPayload,
    RateOp,
    Reset,
    SelectCurrency,
    SwapState,
    SwapType,
    TokenDetails,
    Trade,
    UpdateDependent,
    UpdateIndependent,
    ValidationError,
)
from .persistence import OrderStore
from .session import LimitOrderSession
from .state_machine import SwapStateMachine, initial_state, reduce

__all__ = [
    # State machine
    "SwapStateMachine",
    "initial_state",
    "reduce",
    # Engine
    "derive",
    "max_input_amount",
    "swap_type",
    # Session
    "LimitOrderSession",
    "OrderStore",
    # Models
    "DerivationContext",
    "DerivedQuantities",
    "Field",
    "FlipIndependent",
    "FlipRateOp",
    "Order",
    "OrderPayload",
    "RateOp",
    "Reset",
    "SelectCurrency",
    "SwapState",
    "SwapType",
    "TokenDetails",
    "Trade",
    "UpdateDependent",
    "UpdateIndependent",
    "ValidationError",
    # Errors
    "LimitOrderError",
    "OrderNotPlaceableError",
    "SubmissionError",
    "SubmissionPendingError",
]
