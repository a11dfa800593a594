"""
Tests for the local order store.
"""

import json

import pytest

from limitswap.core.limit_order.models import Order, OrderStatus
from limitswap.core.limit_order.persistence import OrderStore, store_key


@pytest.fixture
def order():
    return Order(
        input_token="0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee",
        output_token="0x" + "a" * 40,
        input_amount="1000000000000000000",
        creation_amount="1000000000000000000",
        min_return="2500000000",
        module="0x037fc8e71445910e1e0bbb2a0896d5e9a7485318",
        owner="0xuser",
        secret="0xsecret",
        witness="0xwitness",
    )


class TestOrderStore:
    def test_store_key(self):
        assert store_key("0xuser", 1) == "orders_0xuser1"

    def test_save_and_list(self, order):
        store = OrderStore(path="")
        assert store.save("0xuser", order, 1) is True
        assert store.get_orders("0xuser", 1) == [order]
        assert store.get_orders("0xuser", 137) == []

    def test_duplicate_is_ignored(self, order):
        store = OrderStore(path="")
        store.save("0xuser", order, 1)
        assert store.save("0xuser", order, 1) is False
        assert len(store.get_orders("0xuser", 1)) == 1

    def test_distinct_orders_append(self, order):
        store = OrderStore(path="")
        store.save("0xuser", order, 1)
        store.save("0xuser", order.model_copy(update={"secret": "0xother"}), 1)
        assert [o.secret for o in store.get_orders("0xuser", 1)] == ["0xsecret", "0xother"]

    def test_no_account_is_a_noop(self, order):
        store = OrderStore(path="")
        assert store.save(None, order, 1) is False
        assert store.save("", order, 1) is False

    def test_orders_survive_reload(self, tmp_path, order):
        path = tmp_path / "orders.json"
        OrderStore(path=str(path)).save("0xuser", order, 1)

        raw = json.loads(path.read_text())
        assert raw["orders_0xuser1"][0]["status"] == OrderStatus.OPEN.value

        reloaded = OrderStore(path=str(path))
        assert reloaded.get_orders("0xuser", 1) == [order]

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "orders.json"
        path.write_text("not json")
        assert OrderStore(path=str(path)).get_orders("0xuser", 1) == []
