"""Typed models used by the limit-order subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict


class Field(str, Enum):
    """The three mutually dependent views of an order."""

    INPUT = "input"
    OUTPUT = "output"
    RATE = "rate"


class RateOp(str, Enum):
    """Orientation in which the rate is entered."""

    MULTIPLY = "x"  # output per input
    DIVIDE = "/"    # input per output


class SwapType(str, Enum):
    ETH_TO_TOKEN = "eth_to_token"
    TOKEN_TO_ETH = "token_to_eth"
    TOKEN_TO_TOKEN = "token_to_token"


class ValidationError(str, Enum):
    """Field-level problems surfaced for display, never raised."""

    INPUT_NOT_VALID = "inputNotValid"
    INSUFFICIENT_BALANCE = "insufficientBalance"


class OrderStatus(str, Enum):
    OPEN = "open"


@dataclass(frozen=True)
class SwapState:
    """Minimal user-editable state; everything numeric is derived elsewhere."""

    independent_field: Field = Field.INPUT
    prev_independent_field: Field = Field.OUTPUT
    independent_value: str = ""
    dependent_value: str = ""
    input_currency: Optional[str] = None
    output_currency: Optional[str] = None
    rate_op: RateOp = RateOp.MULTIPLY
    input_rate_value: str = ""


# ---------------------------
# Actions
# ---------------------------
@dataclass(frozen=True)
class FlipIndependent:
    pass


@dataclass(frozen=True)
class FlipRateOp:
    pass


@dataclass(frozen=True)
class SelectCurrency:
    field: Field
    currency: Optional[str]


@dataclass(frozen=True)
class UpdateIndependent:
    field: Field
    value: str


@dataclass(frozen=True)
class UpdateDependent:
    """``value=None`` restores the dependent field from ``last_input``."""

    value: Optional[str]
    last_input: str = ""


@dataclass(frozen=True)
class Reset:
    chain_id: Optional[int] = None
    output_currency: Optional[str] = None


SwapAction = Union[FlipIndependent, FlipRateOp, SelectCurrency, UpdateIndependent, UpdateDependent, Reset]


# ---------------------------
# Collaborator data
# ---------------------------
@dataclass(frozen=True)
class TokenDetails:
    symbol: str
    decimals: Optional[int]

    @property
    def resolved(self) -> bool:
        return isinstance(self.decimals, int) and not isinstance(self.decimals, bool) and self.decimals >= 0


@dataclass(frozen=True)
class Trade:
    """Best exact-in trade, amounts in base units of each asset."""

    input_amount: int
    output_amount: int


@dataclass
class DerivationContext:
    """Everything the engine reads besides the swap state."""

    chain_id: Optional[int] = None
    account: Optional[str] = None
    input_token: Optional[TokenDetails] = None
    output_token: Optional[TokenDetails] = None
    input_balance: Optional[int] = None
    output_balance: Optional[int] = None
    native_balance: Optional[int] = None
    best_trade: Optional[Trade] = None
    gas_price: Optional[int] = None
    gas_in_input_tokens: Optional[Trade] = None
    gas_limit: Optional[int] = None
    slippage_threshold: Optional[int] = None
    execution_threshold: Optional[int] = None


@dataclass
class DerivedQuantities:
    """Result of one derivation pass. Not persisted."""

    input_decimals: Optional[int] = None
    output_decimals: Optional[int] = None
    independent_value_parsed: Optional[int] = None
    independent_error: Optional[ValidationError] = None
    input_error: Optional[ValidationError] = None

    # Last known input amount, carried into the next pass
    input_value: Optional[int] = None
    input_value_parsed: Optional[int] = None
    input_value_formatted: str = ""
    output_value_parsed: Optional[int] = None
    output_value_formatted: str = ""

    rate: Optional[int] = None
    rate_formatted: str = ""
    inverse_rate: Optional[int] = None
    inverse_rate_formatted: Optional[str] = None
    market_rate: Optional[int] = None
    market_rate_inverted: Optional[int] = None
    market_rate_formatted: Optional[str] = None
    market_rate_inverted_formatted: Optional[str] = None

    required_gas: Optional[int] = None
    gas_price_formatted: Optional[str] = None
    used_input: Optional[int] = None
    real_input_value: Optional[int] = None
    execution_rate: Optional[int] = None
    execution_rate_formatted: Optional[str] = None
    execution_rate_delta: Optional[int] = None
    execution_rate_negative: bool = False
    execution_rate_warning: bool = False
    advice_amount: Optional[str] = None

    rate_delta: Optional[int] = None
    rate_delta_formatted: Optional[str] = None
    high_slippage_warning: bool = False

    is_native_wrapped_pair: bool = False
    has_enough_funds_to_pay_tx: bool = True
    has_output: bool = False
    is_valid: bool = False
    blocked_by: List[str] = field(default_factory=list)

    input_balance_formatted: str = ""
    output_balance_formatted: str = ""


# ---------------------------
# Orders
# ---------------------------
@dataclass(frozen=True)
class OrderPayload:
    """What the submission collaborator hands back for a new order."""

    secret: str
    witness: str
    tx_data: Dict[str, Any] = field(default_factory=dict)


class Order(BaseModel):
    """Immutable record of a placed limit order."""

    model_config = ConfigDict(frozen=True)

    input_token: str
    output_token: str
    input_amount: str
    creation_amount: str
    min_return: str
    module: str
    owner: str
    secret: str
    witness: str
    status: OrderStatus = OrderStatus.OPEN
