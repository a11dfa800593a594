from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..core.limit_order.models import OrderPayload, TokenDetails, Trade


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: int = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class TokenMetadataProvider(ABC):
    """Symbol and decimals for an asset id (native ticker or contract address)"""

    @abstractmethod
    async def get_token_details(self, asset_id: str) -> Optional[TokenDetails]:
        pass


class BalanceProvider(ABC):
    """On-chain balances in base units"""

    @abstractmethod
    async def get_balance(self, account: str, asset_id: str) -> Optional[int]:
        pass


class QuoteProvider(ABC):
    """Best exact-in trade between two assets; advisory and possibly stale"""

    @abstractmethod
    async def best_trade_exact_in(self, input_asset: str, amount: int, output_asset: str) -> Optional[Trade]:
        pass


class GasPriceProvider(ABC):
    """Current gas price in wei, refreshed per block"""

    @abstractmethod
    def current(self) -> Optional[int]:
        pass

    @abstractmethod
    async def refresh(self, block_number: int) -> Optional[int]:
        pass


class OrderSubmitter(ABC):
    """Builds the limit-order payload (secret, witness, transaction data)"""

    @abstractmethod
    async def build_order_payload(
        self,
        chain_id: int,
        from_asset: str,
        to_asset: str,
        input_amount: int,
        minimum_return: int,
        owner: str,
    ) -> OrderPayload:
        pass


class TransactionSender(ABC):
    """Signs and broadcasts a transaction, returning its hash"""

    @abstractmethod
    async def send_transaction(self, tx_data: Dict[str, Any], gas_price: Optional[int]) -> str:
        pass
