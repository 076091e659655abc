import pytest

from marcha.services.idempotency import IdempotencyGuard
from marcha.services.parser import parse_notification
from tests.fakes import InMemoryOrderStore


def settlement(order_id="ORD-1", amount=50000):
    return parse_notification({
        "order_id": order_id,
        "transaction_status": "settlement",
        "payment_type": "gopay",
        "gross_amount": amount,
        "transaction_id": "txn-1",
    })


class TestIdempotencyGuard:

    @pytest.mark.unit
    def test_first_settlement_is_granted_and_recorded(self):
        store = InMemoryOrderStore()
        guard = IdempotencyGuard()

        granted = store.run_transaction(lambda txn: guard.should_credit(txn, settlement(), "user-1"))

        assert granted is True
        record = store.settlements["ORD-1"]
        assert record["orderId"] == "ORD-1"
        assert record["customerId"] == "user-1"
        assert record["grossAmount"] == 50000
        assert record["transactionStatus"] == "settlement"
        assert record["transactionId"] == "txn-1"
        assert "creditedAt" in record

    @pytest.mark.unit
    def test_second_settlement_is_refused(self):
        store = InMemoryOrderStore()
        guard = IdempotencyGuard()

        store.run_transaction(lambda txn: guard.should_credit(txn, settlement(), "user-1"))
        again = store.run_transaction(lambda txn: guard.should_credit(txn, settlement(), "user-1"))

        assert again is False
        assert len(store.settlements) == 1

    @pytest.mark.unit
    def test_orders_are_guarded_independently(self):
        store = InMemoryOrderStore()
        guard = IdempotencyGuard()

        first = store.run_transaction(lambda txn: guard.should_credit(txn, settlement("ORD-1"), "user-1"))
        second = store.run_transaction(lambda txn: guard.should_credit(txn, settlement("ORD-2"), "user-1"))

        assert first is True and second is True
        assert set(store.settlements) == {"ORD-1", "ORD-2"}

    @pytest.mark.unit
    def test_failed_commit_leaves_no_mark(self):
        store = InMemoryOrderStore()
        store.fail_commits = 1
        guard = IdempotencyGuard()

        with pytest.raises(Exception):
            store.run_transaction(lambda txn: guard.should_credit(txn, settlement(), "user-1"))

        assert store.settlements == {}
        assert store.run_transaction(lambda txn: guard.should_credit(txn, settlement(), "user-1")) is True
