"""
Limit Order Session

Wires the swap state machine and the derivation engine to their
asynchronous collaborators. Every dependency change bumps a generation
counter; results computed for an older generation are discarded instead of
applied. Order submission is single-flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Optional, Tuple

from ...logging_config import bind_order_context
from .constants import ETH_ADDRESS, LIMIT_ORDER_MODULE_ADDRESSES, NATIVE_TOKEN_TICKER
from .engine import derive, max_input_amount, required_gas, resolve_decimals, swap_type, trade_request_amount
from .errors import LimitOrderError, OrderNotPlaceableError, SubmissionError, SubmissionPendingError
from .models import (
    DerivationContext,
    DerivedQuantities,
    Field,
    FlipIndependent,
    FlipRateOp,
    Order,
    OrderStatus,
    Reset,
    SelectCurrency,
    SwapAction,
    SwapState,
    SwapType,
    TokenDetails,
    Trade,
    UpdateDependent,
    UpdateIndependent,
)
from .persistence import OrderStore
from .state_machine import SwapStateMachine

if TYPE_CHECKING:
    from ...providers.base import (
        BalanceProvider,
        GasPriceProvider,
        OrderSubmitter,
        QuoteProvider,
        TokenMetadataProvider,
        TransactionSender,
    )

TransactionCallback = Callable[[str, Order], None]


def order_assets(chain_id: Optional[int], state: SwapState) -> Tuple[str, str]:
    """On-chain (from, to) addresses; the native side becomes ETH_ADDRESS."""
    kind = swap_type(chain_id, state.input_currency, state.output_currency)
    if kind == SwapType.ETH_TO_TOKEN:
        return ETH_ADDRESS, state.output_currency
    if kind == SwapType.TOKEN_TO_ETH:
        return state.input_currency, ETH_ADDRESS
    return state.input_currency, state.output_currency


class LimitOrderSession:
    """One user's limit-order form: state, derived view and placement."""

    def __init__(
        self,
        *,
        chain_id: Optional[int],
        account: Optional[str],
        tokens: TokenMetadataProvider,
        balances: BalanceProvider,
        quotes: QuoteProvider,
        gas: GasPriceProvider,
        submitter: OrderSubmitter,
        sender: TransactionSender,
        store: Optional[OrderStore] = None,
        output_currency: Optional[str] = None,
        on_transaction: Optional[TransactionCallback] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.chain_id = chain_id
        self.account = account
        self.tokens = tokens
        self.balances = balances
        self.quotes = quotes
        self.gas = gas
        self.submitter = submitter
        self.sender = sender
        self.store = store or OrderStore()
        self.on_transaction = on_transaction
        self.logger = logger or logging.getLogger(__name__)

        self.machine = SwapStateMachine(chain_id=chain_id, output_currency=output_currency, logger=self.logger)
        self.machine.subscribe(self._on_transition)

        self._generation = 0
        self._derived = DerivedQuantities()
        self._derived_generation = 0
        self._last_input_value: Optional[int] = None
        self._latest_block: Optional[int] = None
        self._confirmation_pending = False
        bind_order_context(chain_id, account)

    @property
    def state(self) -> SwapState:
        return self.machine.state

    @property
    def derived(self) -> DerivedQuantities:
        return self._derived

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def confirmation_pending(self) -> bool:
        return self._confirmation_pending

    @property
    def is_current(self) -> bool:
        """True when the derived view was computed for the latest inputs."""
        return self._derived_generation == self._generation

    @property
    def can_place(self) -> bool:
        return self._derived.is_valid and self.is_current and not self._confirmation_pending

    # ---------------------------
    # Actions
    # ---------------------------
    def dispatch(self, action: SwapAction) -> SwapState:
        self._generation += 1
        return self.machine.dispatch(action)

    def _on_transition(self, previous: SwapState, current: SwapState, action: SwapAction) -> None:
        # Leaving OUTPUT or RATE restores the dependent field from the last input
        if isinstance(action, UpdateDependent):
            return
        if previous.independent_field in (Field.OUTPUT, Field.RATE) and (
            current.independent_field != previous.independent_field
        ):
            self.machine.dispatch(UpdateDependent(None, self._derived.input_value_formatted))

    def connect(self, account: Optional[str], chain_id: Optional[int]) -> None:
        self.account = account
        self.chain_id = chain_id
        self._generation += 1
        bind_order_context(chain_id, account)

    def select_currency(self, field: Field, currency: Optional[str]) -> SwapState:
        self.dispatch(SelectCurrency(field, currency))
        if field == Field.OUTPUT:
            self.dispatch(UpdateIndependent(Field.INPUT, self._derived.input_value_formatted))
        return self.state

    def update_independent(self, field: Field, value: str) -> SwapState:
        return self.dispatch(UpdateIndependent(field, value))

    def flip_rate_op(self) -> SwapState:
        return self.dispatch(FlipRateOp())

    def flip_independent(self) -> SwapState:
        return self.dispatch(FlipIndependent())

    def reset(self) -> SwapState:
        self._last_input_value = None
        return self.dispatch(Reset(self.chain_id))

    async def use_max_input(self) -> SwapState:
        """Type the whole input balance (less a native reserve) into the input field."""
        currency = self.state.input_currency
        if not self.account or not currency:
            return self.state
        balance = await self._balance(currency)
        token = await self._token(currency)
        value = max_input_amount(balance, currency, resolve_decimals(token), self.chain_id)
        if value is None:
            return self.state
        return self.dispatch(UpdateIndependent(Field.INPUT, value))

    # ---------------------------
    # Collaborator lookups
    # ---------------------------
    async def _token(self, asset_id: Optional[str]) -> Optional[TokenDetails]:
        if not asset_id:
            return None
        try:
            return await self.tokens.get_token_details(asset_id)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Token lookup for %s failed: %s", asset_id, exc)
            return None

    async def _balance(self, asset_id: Optional[str]) -> Optional[int]:
        if not self.account or not asset_id:
            return None
        try:
            return await self.balances.get_balance(self.account, asset_id)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Balance lookup for %s failed: %s", asset_id, exc)
            return None

    async def _quote(self, input_asset: Optional[str], amount: Optional[int], output_asset: Optional[str]) -> Optional[Trade]:
        if not input_asset or not output_asset or input_asset == output_asset:
            return None
        if amount is None or amount <= 0:
            return None
        try:
            return await self.quotes.best_trade_exact_in(input_asset, amount, output_asset)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Quote %s -> %s failed: %s", input_asset, output_asset, exc)
            return None

    async def _gather(self, state: SwapState) -> DerivationContext:
        native = NATIVE_TOKEN_TICKER.get(self.chain_id)
        input_token, output_token, input_balance, output_balance, native_balance = await asyncio.gather(
            self._token(state.input_currency),
            self._token(state.output_currency),
            self._balance(state.input_currency),
            self._balance(state.output_currency),
            self._balance(native),
        )

        amount = trade_request_amount(state, resolve_decimals(input_token), self._last_input_value)
        gas_price = self.gas.current()
        gas_required = required_gas(gas_price)
        best_trade, gas_in_input = await asyncio.gather(
            self._quote(state.input_currency, amount, state.output_currency),
            self._quote(native, gas_required, state.input_currency),
        )

        return DerivationContext(
            chain_id=self.chain_id,
            account=self.account,
            input_token=input_token,
            output_token=output_token,
            input_balance=input_balance,
            output_balance=output_balance,
            native_balance=native_balance,
            best_trade=best_trade,
            gas_price=gas_price,
            gas_in_input_tokens=gas_in_input,
        )

    # ---------------------------
    # Recompute
    # ---------------------------
    async def refresh(self) -> DerivedQuantities:
        """Recompute the derived view for the current generation."""
        generation = self._generation
        state = self.state
        ctx = await self._gather(state)
        if generation != self._generation:
            self.logger.debug("Discarding derivation for superseded generation %d", generation)
            return self._derived
        derived = derive(state, ctx, self._last_input_value)
        self._derived = derived
        self._derived_generation = generation
        self._last_input_value = derived.input_value
        return derived

    async def apply(self, action: SwapAction) -> DerivedQuantities:
        self.dispatch(action)
        return await self.refresh()

    async def on_new_block(self, block_number: int) -> DerivedQuantities:
        """Refresh gas for a new block; an older block never overwrites a newer one."""
        if self._latest_block is not None and block_number <= self._latest_block:
            return self._derived
        self._latest_block = block_number
        self._generation += 1
        try:
            await self.gas.refresh(block_number)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Gas price refresh failed at block %d: %s", block_number, exc)
        if block_number != self._latest_block:
            self.logger.debug("Gas price for block %d superseded by block %d", block_number, self._latest_block)
            return self._derived
        return await self.refresh()

    # ---------------------------
    # Placement
    # ---------------------------
    async def place_order(self, raise_errors: bool = False) -> Optional[Order]:
        """
        Submit the current order.

        Builds the payload, sends the transaction and, only once it is
        broadcast, persists the order. Returns None when placement is
        refused or fails; the pending flag is always cleared afterwards.
        """
        if self._confirmation_pending:
            return self._refuse(SubmissionPendingError(), raise_errors)

        if not self.is_current:
            return self._refuse(OrderNotPlaceableError(["stale_derivation"]), raise_errors)
        derived = self._derived
        if not derived.is_valid:
            return self._refuse(OrderNotPlaceableError(derived.blocked_by), raise_errors)
        module = LIMIT_ORDER_MODULE_ADDRESSES.get(self.chain_id)
        if module is None:
            return self._refuse(OrderNotPlaceableError(["unsupported_chain"]), raise_errors)

        from_asset, to_asset = order_assets(self.chain_id, self.state)
        input_amount = derived.input_value_parsed
        minimum_return = derived.output_value_parsed
        owner = self.account.lower()

        self._confirmation_pending = True
        self.logger.info("Placing order %s -> %s for %s", from_asset, to_asset, owner)
        try:
            payload = await self.submitter.build_order_payload(
                self.chain_id, from_asset, to_asset, input_amount, minimum_return, owner
            )
            order = Order(
                input_token=from_asset.lower(),
                output_token=to_asset.lower(),
                input_amount=str(input_amount),
                creation_amount=str(input_amount),
                min_return=str(minimum_return),
                module=module.lower(),
                owner=owner,
                secret=payload.secret,
                witness=payload.witness.lower(),
                status=OrderStatus.OPEN,
            )
            tx_hash = await self.sender.send_transaction(payload.tx_data, self.gas.current())
            if not tx_hash:
                raise SubmissionError("Transaction was not broadcast")
            self.store.save(self.account, order, self.chain_id)
            if self.on_transaction is not None:
                try:
                    self.on_transaction(tx_hash, order)
                except Exception as callback_exc:  # noqa: BLE001
                    self.logger.warning("Transaction callback failed for %s: %s", tx_hash, callback_exc)
            self.logger.info("Order placed in transaction %s", tx_hash)
            return order
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Error on place order: %s", exc, exc_info=True)
            if raise_errors:
                if isinstance(exc, LimitOrderError):
                    raise
                raise SubmissionError(str(exc)) from exc
            return None
        finally:
            self._confirmation_pending = False

    def _refuse(self, error: LimitOrderError, raise_errors: bool) -> None:
        self.logger.warning("Order placement refused: %s", error.message)
        if raise_errors:
            raise error
        return None
