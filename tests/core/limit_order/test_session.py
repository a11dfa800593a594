"""
Tests for LimitOrderSession: async refresh, block updates and order placement.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from limitswap.core.limit_order.constants import ETH_ADDRESS
from limitswap.core.limit_order.errors import (
    OrderNotPlaceableError,
    SubmissionError,
    SubmissionPendingError,
)
from limitswap.core.limit_order.models import Field, OrderPayload, TokenDetails, Trade
from limitswap.core.limit_order.persistence import OrderStore
from limitswap.core.limit_order.session import LimitOrderSession
from limitswap.logging_config import clear_order_context

TOKEN = "0x" + "a" * 40
OTHER = "0x" + "b" * 40

TOKENS = {
    "ETH": TokenDetails(symbol="ETH", decimals=18),
    TOKEN: TokenDetails(symbol="USD", decimals=6),
    OTHER: TokenDetails(symbol="DAI", decimals=18),
}
BALANCES = {"ETH": 10 * 10 ** 18, TOKEN: 0, OTHER: 0}


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def collaborators():
    tokens = MagicMock()
    tokens.get_token_details = AsyncMock(side_effect=lambda asset: TOKENS.get(asset))

    balances = MagicMock()
    balances.get_balance = AsyncMock(side_effect=lambda account, asset: BALANCES.get(asset))

    quotes = MagicMock()
    quotes.best_trade_exact_in = AsyncMock(
        side_effect=lambda input_asset, amount, output_asset: Trade(amount, amount * 2000 // 10 ** 12)
    )

    gas = MagicMock()
    gas.current.return_value = None
    gas.refresh = AsyncMock(return_value=None)

    submitter = MagicMock()
    submitter.build_order_payload = AsyncMock(
        return_value=OrderPayload(secret="0xsecret", witness="0xWITNESS", tx_data={"to": "0xmodule"})
    )

    sender = MagicMock()
    sender.send_transaction = AsyncMock(return_value="0xhash")

    return {
        "tokens": tokens,
        "balances": balances,
        "quotes": quotes,
        "gas": gas,
        "submitter": submitter,
        "sender": sender,
    }


@pytest.fixture
def on_transaction():
    return MagicMock()


@pytest.fixture
def session(collaborators, on_transaction):
    return LimitOrderSession(
        chain_id=1,
        account="0xUser",
        store=OrderStore(path=""),
        output_currency=TOKEN,
        on_transaction=on_transaction,
        **collaborators,
    )


async def _prime(session, rate="2500"):
    session.update_independent(Field.INPUT, "1")
    await session.refresh()
    session.update_independent(Field.RATE, rate)
    return await session.refresh()


# =============================================================================
# Refresh
# =============================================================================

class TestRefresh:
    @pytest.mark.asyncio
    async def test_input_flow_quotes_best_trade(self, session, collaborators):
        session.update_independent(Field.INPUT, "1")
        derived = await session.refresh()

        collaborators["quotes"].best_trade_exact_in.assert_awaited_once_with("ETH", 10 ** 18, TOKEN)
        assert derived.output_value_formatted == "2000.00"
        assert derived.input_value == 10 ** 18

    @pytest.mark.asyncio
    async def test_rate_flow_reuses_last_input(self, session):
        derived = await _prime(session)

        assert derived.input_value_parsed == 10 ** 18
        assert derived.output_value_parsed == 2500 * 10 ** 6
        assert derived.is_valid is True
        assert session.can_place is True

    @pytest.mark.asyncio
    async def test_stale_result_is_discarded(self, session, collaborators):
        release = asyncio.Event()

        async def slow_quote(input_asset, amount, output_asset):
            await release.wait()
            return Trade(amount, 2000 * 10 ** 6)

        collaborators["quotes"].best_trade_exact_in.side_effect = slow_quote
        session.update_independent(Field.INPUT, "1")
        before = session.derived

        task = asyncio.create_task(session.refresh())
        await asyncio.sleep(0)
        session.update_independent(Field.INPUT, "2")
        release.set()
        result = await task

        assert result is before
        assert session.derived is before
        assert session.derived.output_value_parsed is None

    @pytest.mark.asyncio
    async def test_failing_lookup_degrades_to_absent(self, session, collaborators):
        collaborators["tokens"].get_token_details.side_effect = RuntimeError("metadata down")
        session.update_independent(Field.INPUT, "1")
        derived = await session.refresh()

        assert derived.output_value_parsed is None
        assert derived.is_valid is False

    @pytest.mark.asyncio
    async def test_leaving_rate_restores_dependent_value(self, session):
        await _prime(session)
        session.update_independent(Field.INPUT, "1")

        assert session.state.independent_field == Field.INPUT
        assert session.state.dependent_value == "1"

    @pytest.mark.asyncio
    async def test_selecting_output_reanchors_input(self, session):
        await _prime(session)
        session.select_currency(Field.OUTPUT, OTHER)

        assert session.state.output_currency == OTHER
        assert session.state.independent_field == Field.INPUT
        assert session.state.independent_value == "1"

    @pytest.mark.asyncio
    async def test_use_max_input_keeps_gas_reserve(self, session):
        state = await session.use_max_input()
        assert state.independent_field == Field.INPUT
        assert state.independent_value == "9.9"

    @pytest.mark.asyncio
    async def test_use_max_input_without_account(self, session, collaborators):
        session.connect(None, 1)
        state = await session.use_max_input()
        assert state.independent_value == ""
        collaborators["balances"].get_balance.assert_not_awaited()


# =============================================================================
# New blocks
# =============================================================================

class TestNewBlock:
    @pytest.mark.asyncio
    async def test_older_blocks_are_ignored(self, session, collaborators):
        await session.on_new_block(10)
        await session.on_new_block(9)
        await session.on_new_block(10)

        collaborators["gas"].refresh.assert_awaited_once_with(10)

    @pytest.mark.asyncio
    async def test_newer_block_supersedes_pending_refresh(self, session, collaborators):
        release = asyncio.Event()

        async def refresh_gas(block_number):
            if block_number == 11:
                await release.wait()
            return None

        collaborators["gas"].refresh.side_effect = refresh_gas
        session.update_independent(Field.INPUT, "1")

        task = asyncio.create_task(session.on_new_block(11))
        await asyncio.sleep(0)
        latest = await session.on_new_block(12)
        quotes_after_latest = collaborators["quotes"].best_trade_exact_in.await_count

        release.set()
        result = await task

        assert result is latest
        assert collaborators["quotes"].best_trade_exact_in.await_count == quotes_after_latest

    @pytest.mark.asyncio
    async def test_gas_refresh_failure_keeps_session_usable(self, session, collaborators):
        collaborators["gas"].refresh.side_effect = RuntimeError("gas oracle down")
        session.update_independent(Field.INPUT, "1")
        derived = await session.on_new_block(5)

        assert derived.output_value_formatted == "2000.00"


# =============================================================================
# Placement
# =============================================================================

class TestPlaceOrder:
    @pytest.mark.asyncio
    async def test_successful_placement_persists_and_notifies(self, session, collaborators, on_transaction):
        await _prime(session)
        order = await session.place_order()

        collaborators["submitter"].build_order_payload.assert_awaited_once_with(
            1, ETH_ADDRESS, TOKEN, 10 ** 18, 2500 * 10 ** 6, "0xuser"
        )
        collaborators["sender"].send_transaction.assert_awaited_once_with({"to": "0xmodule"}, None)
        assert order.input_token == ETH_ADDRESS
        assert order.output_token == TOKEN
        assert order.input_amount == str(10 ** 18)
        assert order.creation_amount == str(10 ** 18)
        assert order.min_return == str(2500 * 10 ** 6)
        assert order.owner == "0xuser"
        assert order.witness == "0xwitness"
        assert session.store.get_orders("0xUser", 1) == [order]
        on_transaction.assert_called_once_with("0xhash", order)
        assert session.confirmation_pending is False

    @pytest.mark.asyncio
    async def test_invalid_order_is_refused(self, session, collaborators):
        assert await session.place_order() is None
        with pytest.raises(OrderNotPlaceableError):
            await session.place_order(raise_errors=True)
        collaborators["submitter"].build_order_payload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_send_persists_nothing(self, session, collaborators, on_transaction):
        await _prime(session)
        collaborators["sender"].send_transaction.side_effect = RuntimeError("user rejected")

        assert await session.place_order() is None
        assert session.confirmation_pending is False
        assert session.store.get_orders("0xUser", 1) == []
        on_transaction.assert_not_called()

        with pytest.raises(SubmissionError):
            await session.place_order(raise_errors=True)
        assert session.confirmation_pending is False

    @pytest.mark.asyncio
    async def test_missing_transaction_hash_is_a_failure(self, session, collaborators):
        await _prime(session)
        collaborators["sender"].send_transaction.return_value = ""

        with pytest.raises(SubmissionError):
            await session.place_order(raise_errors=True)
        assert session.store.get_orders("0xUser", 1) == []

    @pytest.mark.asyncio
    async def test_submission_is_single_flight(self, session, collaborators):
        await _prime(session)
        release = asyncio.Event()
        payload = OrderPayload(secret="0xsecret", witness="0xwitness", tx_data={})

        async def slow_build(*args):
            await release.wait()
            return payload

        collaborators["submitter"].build_order_payload.side_effect = slow_build

        first = asyncio.create_task(session.place_order())
        await asyncio.sleep(0)
        assert session.confirmation_pending is True
        assert session.can_place is False

        assert await session.place_order() is None
        with pytest.raises(SubmissionPendingError):
            await session.place_order(raise_errors=True)

        release.set()
        order = await first

        assert order is not None
        assert collaborators["submitter"].build_order_payload.await_count == 1
        assert session.confirmation_pending is False

    @pytest.mark.asyncio
    async def test_callback_failure_does_not_undo_placement(self, session, on_transaction):
        await _prime(session)
        on_transaction.side_effect = RuntimeError("ui gone")

        order = await session.place_order()

        assert order is not None
        assert session.store.get_orders("0xUser", 1) == [order]

    @pytest.mark.asyncio
    async def test_output_without_input_amount_is_refused(self, session, collaborators):
        session.update_independent(Field.OUTPUT, "3000")
        derived = await session.refresh()

        assert derived.input_value_parsed is None
        assert derived.rate is None
        assert derived.is_valid is False
        assert await session.place_order() is None
        with pytest.raises(OrderNotPlaceableError) as exc_info:
            await session.place_order(raise_errors=True)

        assert "missing_input" in exc_info.value.reasons
        collaborators["submitter"].build_order_payload.assert_not_awaited()
        assert session.store.get_orders("0xUser", 1) == []

    @pytest.mark.asyncio
    async def test_edit_after_refresh_blocks_placement_until_rederived(self, session, collaborators):
        await _prime(session)
        session.select_currency(Field.OUTPUT, OTHER)

        assert session.is_current is False
        assert session.can_place is False
        with pytest.raises(OrderNotPlaceableError) as exc_info:
            await session.place_order(raise_errors=True)
        assert exc_info.value.reasons == ["stale_derivation"]
        collaborators["submitter"].build_order_payload.assert_not_awaited()

        await session.refresh()
        assert session.is_current is True
        assert session.derived.output_decimals == 18


class TestLogContext:
    def test_session_binds_chain_and_account(self, session):
        assert structlog.contextvars.get_contextvars()["chain_id"] == 1
        assert structlog.contextvars.get_contextvars()["account"] == "0xuser"

        session.connect("0xOther", 137)
        assert structlog.contextvars.get_contextvars()["chain_id"] == 137
        assert structlog.contextvars.get_contextvars()["account"] == "0xother"
        clear_order_context()
