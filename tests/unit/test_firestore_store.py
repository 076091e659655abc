from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import Aborted, ServiceUnavailable

from marcha.services import store as store_module
from marcha.services.errors import StoreUnavailable
from marcha.services.store import FirestoreLedgerTransaction, FirestoreOrderStore, settlement_key


@pytest.fixture
def db():
    db = MagicMock(name="firestore_client")
    collections = {}
    db.collection.side_effect = lambda name: collections.setdefault(name, MagicMock(name=name))
    db.collections = collections
    return db


@pytest.fixture
def firestore_store(db):
    return FirestoreOrderStore(db, timeout=7.5, max_attempts=3)


@pytest.fixture
def txn(firestore_store):
    transaction = MagicMock(name="transaction")
    return FirestoreLedgerTransaction(firestore_store, transaction), transaction


def snapshot(doc_id, data, exists=True):
    snap = MagicMock()
    snap.id = doc_id
    snap.exists = exists
    snap.to_dict.return_value = data
    return snap


class TestFirestoreLedgerTransaction:

    @pytest.mark.unit
    def test_find_orders_queries_by_business_id_inside_transaction(self, db, txn):
        ledger, transaction = txn
        orders = db.collections["orders"]
        query = orders.where.return_value.limit.return_value
        query.stream.return_value = [snapshot("doc-1", {"orderId": "ORD-1", "customerId": "user-1"})]

        found = ledger.find_orders("ORD-1", limit=2)

        field_filter = orders.where.call_args.kwargs["filter"]
        assert (field_filter.field_path, field_filter.op_string, field_filter.value) == ("orderId", "==", "ORD-1")
        orders.where.return_value.limit.assert_called_once_with(2)
        query.stream.assert_called_once_with(transaction=transaction, timeout=7.5)
        assert found[0].doc_id == "doc-1"
        assert found[0].data["customerId"] == "user-1"

    @pytest.mark.unit
    def test_settlement_lookup_reads_in_transaction(self, db, txn):
        ledger, transaction = txn
        settlements = db.collections["settlements"]
        settlements.document.return_value.get.return_value = snapshot("ORD-1", None, exists=False)

        assert ledger.settlement_exists("ORD-1") is False
        settlements.document.assert_called_once_with("ORD-1")
        settlements.document.return_value.get.assert_called_once_with(transaction=transaction, timeout=7.5)

    @pytest.mark.unit
    def test_customer_exists_ignores_stored_balance(self, db, txn):
        ledger, transaction = txn
        users = db.collections["users"]
        # A hand-edited balance must not block reconciliation
        users.document.return_value.get.return_value = snapshot("user-1", {"balance": -10.5, "name": "A"})

        assert ledger.customer_exists("user-1") is True
        users.document.assert_called_once_with("user-1")
        users.document.return_value.get.assert_called_once_with(transaction=transaction, timeout=7.5)

    @pytest.mark.unit
    def test_missing_customer(self, db, txn):
        ledger, _ = txn
        db.collections["users"].document.return_value.get.return_value = snapshot("x", None, exists=False)
        assert ledger.customer_exists("x") is False

    @pytest.mark.unit
    def test_writes_go_through_transaction(self, db, txn):
        ledger, transaction = txn

        ledger.update_order("doc-1", {"status": "settlement"})
        ledger.record_settlement("ORD-1", {"orderId": "ORD-1"})
        ledger.increment_balance("user-1", 50000)

        transaction.update.assert_any_call(db.collections["orders"].document.return_value, {"status": "settlement"})
        transaction.create.assert_called_once_with(
            db.collections["settlements"].document.return_value, {"orderId": "ORD-1"}
        )
        balance_call = transaction.update.call_args_list[-1]
        assert balance_call.args[0] is db.collections["users"].document.return_value
        assert balance_call.args[1]["balance"].value == 50000

    @pytest.mark.unit
    def test_settlement_key_escapes_path_separator(self):
        assert settlement_key("order-id-a/b") == "order-id-a%2Fb"
        assert settlement_key("ORD-1") == "ORD-1"


class TestFirestoreOrderStore:

    @pytest.mark.unit
    def test_run_transaction_wraps_ledger(self, firestore_store, db, monkeypatch):
        monkeypatch.setattr(store_module.firestore, "transactional", lambda fn: fn)

        result = firestore_store.run_transaction(lambda ledger: ledger)

        assert isinstance(result, FirestoreLedgerTransaction)
        db.transaction.assert_called_once_with(max_attempts=3)

    @pytest.mark.unit
    def test_api_errors_become_store_unavailable(self, firestore_store, db):
        db.transaction.side_effect = ServiceUnavailable("firestore down")

        with pytest.raises(StoreUnavailable) as exc:
            firestore_store.run_transaction(lambda ledger: None)
        assert exc.value.retryable is True

    @pytest.mark.unit
    def test_exhausted_contention_becomes_store_unavailable(self, firestore_store, monkeypatch):
        def transactional(fn):
            def run(transaction):
                raise ValueError("Failed to commit transaction in 3 attempts.") from Aborted("contention")
            return run

        monkeypatch.setattr(store_module.firestore, "transactional", transactional)

        with pytest.raises(StoreUnavailable):
            firestore_store.run_transaction(lambda ledger: None)

    @pytest.mark.unit
    def test_other_value_errors_propagate(self, firestore_store, monkeypatch):
        monkeypatch.setattr(store_module.firestore, "transactional", lambda fn: fn)

        def boom(ledger):
            raise ValueError("bug")

        with pytest.raises(ValueError, match="bug"):
            firestore_store.run_transaction(boom)
