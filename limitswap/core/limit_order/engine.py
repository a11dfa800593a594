"""
Derivation Engine

Pure recomputation of everything the limit-order page shows from the swap
state plus collaborator data. ``derive`` is re-run by the host whenever any
dependency changes; it never mutates its inputs and never raises.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional, Tuple

from ...config import settings
from .constants import (
    DISPLAY_DECIMALS,
    MAX_UINT256,
    NATIVE_TOKEN_TICKER,
    RATE_DECIMALS,
)
from .fixed_point import (
    amount_formatter,
    apply_exchange_rate,
    flip_rate,
    get_exchange_rate,
    parse_number,
    parse_units,
    safe_parse_units,
    to_significant,
    try_parse_units,
)
from .models import (
    DerivationContext,
    DerivedQuantities,
    Field,
    RateOp,
    SwapState,
    SwapType,
    TokenDetails,
    ValidationError,
)
from .risk import assess_risk


def swap_type(chain_id: Optional[int], input_currency: Optional[str], output_currency: Optional[str]) -> Optional[SwapType]:
    if not input_currency or not output_currency:
        return None
    native = NATIVE_TOKEN_TICKER.get(chain_id)
    if input_currency == native:
        return SwapType.ETH_TO_TOKEN
    if output_currency == native:
        return SwapType.TOKEN_TO_ETH
    return SwapType.TOKEN_TO_TOKEN


def resolve_decimals(token: Optional[TokenDetails]) -> Optional[int]:
    """Decimals of a token, or ``None`` while it is not resolved."""
    if token is None or not token.resolved:
        return None
    return token.decimals


def parse_independent(value: str, decimals: Optional[int]) -> Tuple[Optional[int], Optional[ValidationError]]:
    """Parse the typed amount; out-of-range or malformed text is flagged, not raised."""
    if not value or decimals is None:
        return None, None
    try:
        parsed = parse_units(value, decimals)
    except ValueError:
        return None, ValidationError.INPUT_NOT_VALID
    if parsed <= 0 or parsed >= MAX_UINT256:
        return None, ValidationError.INPUT_NOT_VALID
    return parsed, None


def is_inverted(state: SwapState) -> bool:
    return state.rate_op == RateOp.DIVIDE


def trade_request_amount(
    state: SwapState,
    input_decimals: Optional[int],
    last_input_value: Optional[int],
) -> Optional[int]:
    """Input amount the best-trade quote should be requested for."""
    if state.independent_field == Field.INPUT:
        return try_parse_units(state.independent_value, input_decimals)
    return last_input_value


def required_gas(gas_price: Optional[int], gas_limit: Optional[int] = None) -> Optional[int]:
    """Native-asset cost of executing the order."""
    if gas_price is None:
        return None
    limit = settings.order_execute_gas_limit if gas_limit is None else gas_limit
    return gas_price * limit


def max_input_amount(
    balance: Optional[int],
    currency: Optional[str],
    decimals: Optional[int],
    chain_id: Optional[int],
    reserve: Optional[Decimal] = None,
) -> Optional[str]:
    """Largest input worth typing: the whole balance, minus a gas reserve for the native asset."""
    if balance is None or decimals is None:
        return None
    amount = balance
    if currency == NATIVE_TOKEN_TICKER.get(chain_id):
        reserve_text = str(settings.native_balance_reserve if reserve is None else reserve)
        reserve_amount = try_parse_units(reserve_text, decimals) or 0
        amount = balance - reserve_amount
    if amount <= 0:
        return None
    return amount_formatter(amount, decimals, decimals, False)


def _is_zero_text(text: str) -> bool:
    value = parse_number(text)
    return value is not None and value == 0


def derive(
    state: SwapState,
    ctx: DerivationContext,
    last_input_value: Optional[int] = None,
) -> DerivedQuantities:
    """Run one derivation pass.

    ``last_input_value`` is the ``input_value`` of the previous pass; it
    stands in for the input amount while OUTPUT or RATE is being edited.
    """
    derived = DerivedQuantities()
    invert = is_inverted(state)

    input_decimals = resolve_decimals(ctx.input_token)
    output_decimals = resolve_decimals(ctx.output_token)
    derived.input_decimals = input_decimals
    derived.output_decimals = output_decimals

    field = state.independent_field
    independent_decimals = input_decimals if field in (Field.INPUT, Field.RATE) else output_decimals
    dependent_decimals = input_decimals if field == Field.OUTPUT else output_decimals

    parsed, error = parse_independent(state.independent_value, independent_decimals)
    derived.independent_value_parsed = parsed
    derived.independent_error = error

    # Input amount: typed directly, or carried over from the previous pass
    input_value_parsed = parsed if field == Field.INPUT else last_input_value
    derived.input_value_parsed = input_value_parsed
    if ctx.best_trade is not None:
        derived.input_value = ctx.best_trade.input_amount
    elif field == Field.INPUT and state.independent_value:
        derived.input_value = try_parse_units(state.independent_value, input_decimals)
    else:
        derived.input_value = last_input_value

    if field == Field.INPUT:
        derived.input_value_formatted = state.independent_value
    else:
        derived.input_value_formatted = (
            amount_formatter(input_value_parsed, input_decimals, input_decimals or 0, False) or ""
        )

    rate: Optional[int] = None
    if field == Field.OUTPUT:
        derived.output_value_parsed = parsed
        derived.output_value_formatted = state.independent_value
        rate = get_exchange_rate(input_value_parsed, input_decimals, parsed, output_decimals, invert)
    elif field == Field.RATE:
        if not state.input_rate_value or _is_zero_text(state.input_rate_value):
            derived.output_value_parsed = None
            derived.output_value_formatted = ""
        else:
            rate = safe_parse_units(state.input_rate_value, RATE_DECIMALS)
            output = apply_exchange_rate(input_value_parsed, rate, input_decimals, output_decimals, invert)
            derived.output_value_parsed = output
            derived.output_value_formatted = (
                amount_formatter(
                    output,
                    dependent_decimals,
                    min(DISPLAY_DECIMALS, dependent_decimals) if dependent_decimals is not None else 0,
                    False,
                )
                or ""
            )
    else:
        trade = ctx.best_trade
        derived.output_value_parsed = trade.output_amount if trade is not None else None
        if trade is not None:
            derived.output_value_formatted = to_significant(trade.output_amount, dependent_decimals) or ""
        rate = get_exchange_rate(
            input_value_parsed, input_decimals, derived.output_value_parsed, output_decimals, invert
        )

    derived.rate = rate
    if field == Field.RATE:
        derived.rate_formatted = state.input_rate_value
    else:
        derived.rate_formatted = amount_formatter(rate, RATE_DECIMALS, DISPLAY_DECIMALS, False) or ""
    derived.inverse_rate = flip_rate(rate)
    derived.inverse_rate_formatted = amount_formatter(derived.inverse_rate, RATE_DECIMALS, DISPLAY_DECIMALS, False)

    market_output = ctx.best_trade.output_amount if ctx.best_trade is not None else None
    derived.market_rate = get_exchange_rate(
        input_value_parsed, input_decimals, market_output, output_decimals, invert
    )
    derived.market_rate_inverted = flip_rate(derived.market_rate)
    derived.market_rate_formatted = amount_formatter(derived.market_rate, RATE_DECIMALS, DISPLAY_DECIMALS, False)
    derived.market_rate_inverted_formatted = amount_formatter(
        derived.market_rate_inverted, RATE_DECIMALS, DISPLAY_DECIMALS, False
    )

    # Balance check against whatever input amount this pass settled on
    if ctx.input_balance is not None and input_value_parsed:
        if ctx.input_balance < input_value_parsed:
            derived.input_error = ValidationError.INSUFFICIENT_BALANCE
    if ctx.input_balance is not None and input_decimals is not None:
        derived.input_balance_formatted = amount_formatter(
            ctx.input_balance, input_decimals, min(DISPLAY_DECIMALS, input_decimals)
        ) or ""
    if ctx.output_balance is not None and output_decimals is not None:
        derived.output_balance_formatted = amount_formatter(
            ctx.output_balance, output_decimals, min(DISPLAY_DECIMALS, output_decimals)
        ) or ""

    return assess_risk(state, ctx, derived, dependent_decimals)
