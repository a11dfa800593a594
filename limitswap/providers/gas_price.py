"""Gas price feed polled once per block."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..core.limit_order.errors import GasPriceUnavailableError
from .base import GasPriceProvider, Provider

logger = logging.getLogger(__name__)


class GasNowProvider(GasPriceProvider, Provider):
    """Reads ``data.<speed>`` (wei) from a gasnow-style JSON endpoint."""

    name = "gasnow"

    def __init__(
        self,
        *,
        url: Optional[str] = None,
        speed: Optional[str] = None,
        timeout_s: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url or settings.gas_price_api_url
        self.speed = speed or settings.gas_price_speed
        self.timeout_s = timeout_s or settings.gas_price_timeout_seconds
        self._transport = transport
        self._gas_price: Optional[int] = None
        self._block_number: Optional[int] = None

    async def ready(self) -> bool:
        return bool(self.url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "No gas price URL configured"}
        try:
            price = await self._fetch()
        except GasPriceUnavailableError as e:
            return {"status": "error", "reason": e.message}
        return {"status": "healthy", "gas_price": price}

    def current(self) -> Optional[int]:
        return self._gas_price

    async def _fetch(self) -> int:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                response = await client.get(self.url, params={"utm_source": "limitswap"})
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            raise GasPriceUnavailableError(f"Gas price request failed: {exc}") from exc
        except ValueError as exc:
            raise GasPriceUnavailableError("Gas price response was not JSON") from exc
        try:
            return int(payload["data"][self.speed])
        except (KeyError, TypeError, ValueError) as exc:
            raise GasPriceUnavailableError(f"Gas price response had no {self.speed} price") from exc

    async def refresh(self, block_number: int) -> Optional[int]:
        """Fetch the price for a new block; failures keep the previous price."""
        if self._block_number is not None and block_number <= self._block_number:
            return self._gas_price
        self._block_number = block_number
        try:
            price = await self._fetch()
        except GasPriceUnavailableError as exc:
            logger.warning("Gas price refresh failed at block %s: %s", block_number, exc.message)
            return self._gas_price
        if block_number != self._block_number:
            logger.debug("Gas price for block %s superseded by block %s", block_number, self._block_number)
            return self._gas_price
        self._gas_price = price
        return price
