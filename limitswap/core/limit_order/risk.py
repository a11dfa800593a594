"""
Risk Assessment

Gas-adjusted execution rate, deviation checks and the final placement
gates for a limit order.
"""

from __future__ import annotations

from typing import Optional

from ...config import settings
from .constants import (
    ADVICE_MARGIN,
    DELTA_DISPLAY_DECIMALS,
    DISPLAY_DECIMALS,
    GWEI_DECIMALS,
    NATIVE_TOKEN_TICKER,
    NATIVE_WRAPPED_TOKEN_ADDRESS,
    RATE_DECIMALS,
    WAD,
)
from .fixed_point import amount_formatter, div, exchange_rate_diff, get_exchange_rate, to_wad
from .models import DerivationContext, DerivedQuantities, RateOp, SwapState


def is_native_wrapped_pair(
    chain_id: Optional[int],
    input_currency: Optional[str],
    output_currency: Optional[str],
) -> bool:
    """True for native <-> wrapped-native, a pair a limit order can never fill profitably."""
    native = NATIVE_TOKEN_TICKER.get(chain_id)
    wrapped = NATIVE_WRAPPED_TOKEN_ADDRESS.get(chain_id)
    if native is None or wrapped is None:
        return False
    if output_currency and input_currency == native and output_currency.lower() == wrapped.lower():
        return True
    if input_currency and output_currency == native and input_currency.lower() == wrapped.lower():
        return True
    return False


def gas_cost_in_input(
    ctx: DerivationContext,
    input_currency: Optional[str],
    gas_required: Optional[int],
) -> Optional[int]:
    """Gas cost expressed in input-asset base units, when it can be known."""
    if input_currency is not None and input_currency == NATIVE_TOKEN_TICKER.get(ctx.chain_id):
        return gas_required
    if ctx.gas_in_input_tokens is not None:
        return ctx.gas_in_input_tokens.output_amount
    return None


def advice_amount(
    output_value: Optional[int],
    dependent_decimals: Optional[int],
    execution_rate: Optional[int],
    execution_rate_delta: Optional[int],
    limit_execution: int,
) -> Optional[int]:
    """Input amount suggested when the execution rate drifts past the threshold.

    ``wad(output) / (execution_rate / (delta / limit)) * 1.1``, every step
    an 18-decimal fixed-point division.
    """
    if output_value is None or dependent_decimals is None:
        return None
    if execution_rate is None or execution_rate_delta is None or not limit_execution:
        return None
    delta_ratio = div(execution_rate_delta * WAD, limit_execution)
    if delta_ratio is None:
        return None
    scaled_rate = div(execution_rate * WAD, delta_ratio)
    if scaled_rate is None:
        return None
    needed = div(to_wad(output_value, dependent_decimals) * WAD, scaled_rate)
    if needed is None:
        return None
    return div(needed * ADVICE_MARGIN, WAD)


def assess_risk(
    state: SwapState,
    ctx: DerivationContext,
    derived: DerivedQuantities,
    dependent_decimals: Optional[int],
) -> DerivedQuantities:
    """Fill the gas, deviation and eligibility fields of ``derived``."""
    invert = state.rate_op == RateOp.DIVIDE
    limit_execution = (
        settings.execution_warning_threshold if ctx.execution_threshold is None else ctx.execution_threshold
    )
    limit_slippage = (
        settings.slippage_warning_threshold if ctx.slippage_threshold is None else ctx.slippage_threshold
    )
    gas_limit = settings.order_execute_gas_limit if ctx.gas_limit is None else ctx.gas_limit

    # Execution rate: what the order yields once gas is paid out of the input
    derived.required_gas = ctx.gas_price * gas_limit if ctx.gas_price is not None else None
    derived.gas_price_formatted = amount_formatter(ctx.gas_price, GWEI_DECIMALS, 0, False)
    derived.used_input = gas_cost_in_input(ctx, state.input_currency, derived.required_gas)
    if derived.used_input is not None and derived.input_value_parsed is not None:
        derived.real_input_value = derived.input_value_parsed - derived.used_input
        derived.execution_rate = get_exchange_rate(
            derived.real_input_value,
            derived.input_decimals,
            derived.output_value_parsed,
            derived.output_decimals,
            invert,
        )
    derived.execution_rate_formatted = amount_formatter(
        derived.execution_rate, RATE_DECIMALS, DISPLAY_DECIMALS, False
    )
    derived.execution_rate_delta = exchange_rate_diff(derived.execution_rate, derived.rate)
    derived.execution_rate_negative = derived.execution_rate is not None and derived.execution_rate < 0
    exceeds_execution_limit = (
        derived.execution_rate_delta is not None and abs(derived.execution_rate_delta) > limit_execution
    )
    derived.execution_rate_warning = derived.execution_rate_negative or exceeds_execution_limit

    if exceeds_execution_limit:
        derived.advice_amount = amount_formatter(
            advice_amount(
                derived.output_value_parsed,
                dependent_decimals,
                derived.execution_rate,
                derived.execution_rate_delta,
                limit_execution,
            ),
            RATE_DECIMALS,
            DISPLAY_DECIMALS,
            False,
        )
    else:
        derived.advice_amount = derived.input_value_formatted or None

    # Slippage: the user's rate against the market rate, in the entered orientation
    if invert:
        derived.rate_delta = exchange_rate_diff(derived.inverse_rate, derived.market_rate_inverted)
    else:
        derived.rate_delta = exchange_rate_diff(derived.rate, derived.market_rate)
    derived.rate_delta_formatted = amount_formatter(derived.rate_delta, DELTA_DISPLAY_DECIMALS, 2, True)
    derived.high_slippage_warning = derived.rate_delta is not None and derived.rate_delta < -limit_slippage

    derived.is_native_wrapped_pair = is_native_wrapped_pair(
        ctx.chain_id, state.input_currency, state.output_currency
    )

    if derived.execution_rate is not None and ctx.native_balance is not None:
        enough = ctx.native_balance > 0
        if enough and derived.required_gas is not None:
            enough = ctx.native_balance >= derived.required_gas
        derived.has_enough_funds_to_pay_tx = enough
    else:
        derived.has_enough_funds_to_pay_tx = True

    derived.has_output = derived.output_value_parsed is not None
    derived.blocked_by = placement_blockers(state, ctx, derived)
    derived.is_valid = not derived.blocked_by
    return derived


def placement_blockers(state: SwapState, ctx: DerivationContext, derived: DerivedQuantities) -> list:
    """Names of every gate that currently stops the order from being placed."""
    blockers = []
    if not derived.has_output:
        blockers.append("missing_output")
    if derived.input_value_parsed is None or derived.input_value_parsed <= 0:
        blockers.append("missing_input")
    if derived.rate is None:
        blockers.append("missing_rate")
    if derived.independent_error is not None:
        blockers.append(derived.independent_error.value)
    if derived.input_error is not None:
        blockers.append(derived.input_error.value)
    if not ctx.account:
        blockers.append("wallet_not_connected")
    if not state.input_currency or not state.output_currency or state.input_currency == state.output_currency:
        blockers.append("same_or_missing_asset")
    if derived.is_native_wrapped_pair:
        blockers.append("native_wrapped_pair")
    if derived.rate_delta is not None and derived.rate_delta <= 0:
        blockers.append("rate_not_above_market")
    if derived.execution_rate_negative:
        blockers.append("execution_rate_negative")
    if not derived.has_enough_funds_to_pay_tx:
        blockers.append("insufficient_gas_funds")
    return blockers
