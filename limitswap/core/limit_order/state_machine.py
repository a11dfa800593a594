"""
Swap State Machine

Holds the user-editable limit-order state and applies discrete actions to
it. Every transition is a pure ``SwapState -> SwapState`` function; the only
arithmetic here is the rate inversion performed when the rate operator flips.
"""

import logging
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Type

from ...config import settings
from .constants import NATIVE_TOKEN_TICKER, RATE_DECIMALS
from .fixed_point import amount_formatter, flip_rate, parse_number, safe_parse_units
from .models import (
    Field,
    FlipIndependent,
    FlipRateOp,
    RateOp,
    Reset,
    SelectCurrency,
    SwapAction,
    SwapState,
    UpdateDependent,
    UpdateIndependent,
)


def initial_state(chain_id: Optional[int] = None, output_currency: Optional[str] = None) -> SwapState:
    """Fresh state with the chain's native asset as input."""
    chain = chain_id if chain_id is not None else settings.default_chain_id
    return SwapState(
        independent_field=Field.INPUT,
        prev_independent_field=Field.OUTPUT,
        input_currency=NATIVE_TOKEN_TICKER.get(chain),
        output_currency=output_currency or None,
        rate_op=RateOp.MULTIPLY,
    )


def _flip_independent(state: SwapState, action: FlipIndependent) -> SwapState:
    return replace(
        state,
        dependent_value="",
        independent_field=Field.INPUT,
        independent_value="",
        input_rate_value="",
        input_currency=state.output_currency,
        output_currency=state.input_currency,
    )


def _flip_rate_op(state: SwapState, action: FlipRateOp) -> SwapState:
    rate = safe_parse_units(state.input_rate_value, RATE_DECIMALS) if state.input_rate_value else None
    flipped = amount_formatter(flip_rate(rate), RATE_DECIMALS, RATE_DECIMALS, False) if rate else None
    return replace(
        state,
        input_rate_value=flipped or "",
        rate_op=RateOp.MULTIPLY if state.rate_op == RateOp.DIVIDE else RateOp.DIVIDE,
    )


def _select_currency(state: SwapState, action: SelectCurrency) -> SwapState:
    new_input = action.currency if action.field == Field.INPUT else state.input_currency
    new_output = action.currency if action.field == Field.OUTPUT else state.output_currency

    if new_input == new_output:
        # Keep the user's pick and drop the side it collides with
        return replace(
            state,
            input_currency=action.currency if action.field == Field.INPUT else None,
            output_currency=action.currency if action.field == Field.OUTPUT else None,
        )
    return replace(state, input_currency=new_input, output_currency=new_output)


def _numerically_equal(a: str, b: str) -> bool:
    left, right = parse_number(a), parse_number(b)
    return left is not None and right is not None and left == right


def _update_independent(state: SwapState, action: UpdateIndependent) -> SwapState:
    field, value = action.field, action.value
    return replace(
        state,
        independent_value=value if field != Field.RATE else state.independent_value,
        dependent_value=state.dependent_value if _numerically_equal(value, state.independent_value) else "",
        independent_field=field,
        input_rate_value=value if field == Field.RATE else state.input_rate_value,
        prev_independent_field=(
            state.prev_independent_field if state.independent_field == field else state.independent_field
        ),
    )


def _update_dependent(state: SwapState, action: UpdateDependent) -> SwapState:
    return replace(
        state,
        dependent_value=action.last_input if action.value is None else action.value,
    )


def _reset(state: SwapState, action: Reset) -> SwapState:
    return initial_state(action.chain_id, action.output_currency)


REDUCERS: Dict[Type, Callable[[SwapState, SwapAction], SwapState]] = {
    FlipIndependent: _flip_independent,
    FlipRateOp: _flip_rate_op,
    SelectCurrency: _select_currency,
    UpdateIndependent: _update_independent,
    UpdateDependent: _update_dependent,
    Reset: _reset,
}


def reduce(state: SwapState, action: SwapAction) -> SwapState:
    """Apply one action. Unknown actions reset to the initial state."""
    reducer = REDUCERS.get(type(action))
    if reducer is None:
        return initial_state()
    return reducer(state, action)


class SwapStateMachine:
    """
    Owns the current SwapState and linearizes actions against it.

    Concurrent edits from the host are reduced one at a time, in the order
    they are dispatched.
    """

    def __init__(
        self,
        state: Optional[SwapState] = None,
        *,
        chain_id: Optional[int] = None,
        output_currency: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.state = state or initial_state(chain_id, output_currency)
        self.logger = logger or logging.getLogger(__name__)
        self._listeners: List[Callable[[SwapState, SwapState, SwapAction], None]] = []

    def subscribe(self, listener: Callable[[SwapState, SwapState, SwapAction], None]) -> None:
        """Register a callback invoked with (previous, current, action) after each dispatch."""
        self._listeners.append(listener)

    def dispatch(self, action: SwapAction) -> SwapState:
        previous = self.state
        self.state = reduce(previous, action)
        self.logger.debug("Applied %s: independent=%s", type(action).__name__, self.state.independent_field.value)
        for listener in list(self._listeners):
            listener(previous, self.state, action)
        return self.state
