"""
Order Persistence

Append-only store of placed orders keyed per (account, chain). Saving the
same record twice is a no-op. Optionally mirrored to a JSON file so orders
survive restarts.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...config import settings
from .models import Order

ORDERS_KEY_PREFIX = "orders_"


def store_key(account: str, chain_id: int) -> str:
    return f"{ORDERS_KEY_PREFIX}{account}{chain_id}"


class OrderStore:
    """Local persistence for placed limit orders."""

    def __init__(
        self,
        path: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        configured = settings.order_store_path if path is None else path
        self.path = Path(configured) if configured else None
        self.logger = logger or logging.getLogger(__name__)
        self._orders: Dict[str, List[Dict[str, Any]]] = self._load()

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            self.logger.warning("Could not read order store %s: %s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {key: list(value) for key, value in raw.items() if isinstance(value, list)}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._orders, indent=2, sort_keys=True), encoding="utf-8")

    def save(self, account: Optional[str], order: Order, chain_id: int) -> bool:
        """
        Append ``order`` to the account's list for ``chain_id``.

        Returns True when the record was added, False when there is no
        account or an identical record is already stored.
        """
        if not account:
            return False
        key = store_key(account, chain_id)
        record = order.model_dump(mode="json")
        existing = self._orders.setdefault(key, [])
        if record in existing:
            return False
        existing.append(record)
        self._flush()
        self.logger.info("Saved order for %s on chain %s (%d stored)", account, chain_id, len(existing))
        return True

    def get_orders(self, account: str, chain_id: int) -> List[Order]:
        return [Order.model_validate(record) for record in self._orders.get(store_key(account, chain_id), [])]
