"""Best exact-in trade quotes from Relay's public API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..core.limit_order.constants import NATIVE_PLACEHOLDER, NATIVE_TOKEN_TICKER
from ..core.limit_order.errors import QuoteUnavailableError
from ..core.limit_order.models import Trade
from .base import Provider, QuoteProvider

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.relay.link"


class RelayQuoteProvider(QuoteProvider, Provider):
    """Thin wrapper around https://api.relay.link ``/quote`` for same-chain swaps."""

    name = "relay"

    def __init__(
        self,
        chain_id: int,
        *,
        user: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.relay_base_url or DEFAULT_BASE_URL).rstrip("/")
        self.chain_id = chain_id
        self.user = user or settings.relay_quote_user
        self.timeout_s = timeout_s or settings.quote_timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json, text/plain, */*",
            "content-type": "application/json",
            "user-agent": "LimitSwapRelayClient/2026-10",
            "origin": "https://relay.link",
        }

    async def ready(self) -> bool:
        return bool(self.base_url)

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy" if await self.ready() else "unavailable", "base_url": self.base_url}

    def _currency(self, asset_id: str) -> str:
        if asset_id == NATIVE_TOKEN_TICKER.get(self.chain_id):
            return NATIVE_PLACEHOLDER
        return asset_id.lower()

    async def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout_s, transport=self._transport
        ) as client:
            response = await client.post(path, json=payload, headers=self._headers())
            response.raise_for_status()
            return response

    def _parse_trade(self, response: httpx.Response, amount: int) -> Trade:
        try:
            body = response.json()
        except ValueError as exc:
            raise QuoteUnavailableError("Relay quote returned a non-JSON body") from exc
        details = (body.get("details") if isinstance(body, dict) else None) or {}
        currency_in = details.get("currencyIn") or {}
        currency_out = details.get("currencyOut") or {}
        try:
            return Trade(
                input_amount=int(currency_in.get("amount") or amount),
                output_amount=int(currency_out["amount"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise QuoteUnavailableError("Relay quote is missing the output amount") from exc

    async def best_trade_exact_in(self, input_asset: str, amount: int, output_asset: str) -> Optional[Trade]:
        if amount is None or amount <= 0:
            return None
        payload = {
            "user": self.user,
            "originChainId": self.chain_id,
            "destinationChainId": self.chain_id,
            "originCurrency": self._currency(input_asset),
            "destinationCurrency": self._currency(output_asset),
            "recipient": self.user,
            "tradeType": "EXACT_INPUT",
            "amount": str(amount),
            "referrer": "limitswap",
            "useExternalLiquidity": True,
            "useDepositAddress": False,
            "topupGas": False,
        }
        try:
            response = await self._post("/quote", payload)
            return self._parse_trade(response, amount)
        except httpx.HTTPStatusError as exc:
            logger.warning("Relay quote error %s: %s", exc.response.status_code, (exc.response.text or "").strip())
        except httpx.RequestError as exc:
            logger.warning("Relay quote network error: %s", exc)
        except QuoteUnavailableError as exc:
            logger.warning("%s for %s -> %s", exc.message, input_asset, output_asset)
        return None
