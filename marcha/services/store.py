# services/store.py
import logging
from typing import Any, Callable, Dict, List, NamedTuple, Protocol, TypeVar

from google.api_core.exceptions import GoogleAPICallError, RetryError
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from marcha.core.config import Settings
from marcha.services.errors import StoreUnavailable

logger = logging.getLogger("marcha.reconcile")

T = TypeVar("T")


class OrderSnapshot(NamedTuple):
    doc_id: str
    data: Dict[str, Any]


class LedgerTransaction(Protocol):
    """One atomic unit against the order/ledger store. All reads must precede writes."""

    def find_orders(self, order_id: str, limit: int = 2) -> List[OrderSnapshot]: ...

    def settlement_exists(self, order_id: str) -> bool: ...

    def customer_exists(self, customer_id: str) -> bool: ...

    def update_order(self, doc_id: str, delta: Dict[str, Any]) -> None: ...

    def record_settlement(self, order_id: str, record: Dict[str, Any]) -> None: ...

    def increment_balance(self, customer_id: str, amount: int) -> None: ...


class OrderLedgerStore(Protocol):
    def run_transaction(self, fn: Callable[[LedgerTransaction], T]) -> T: ...

    def ping(self) -> None: ...


def settlement_key(order_id: str) -> str:
    # Firestore treats "/" as a path separator
    return order_id.replace("/", "%2F")


class FirestoreLedgerTransaction:
    def __init__(self, store: "FirestoreOrderStore", transaction):
        self._store = store
        self._transaction = transaction

    def find_orders(self, order_id: str, limit: int = 2) -> List[OrderSnapshot]:
        query = (
            self._store.orders
            .where(filter=FieldFilter("orderId", "==", order_id))
            .limit(limit)
        )
        docs = query.stream(transaction=self._transaction, timeout=self._store.timeout)
        return [OrderSnapshot(doc.id, doc.to_dict() or {}) for doc in docs]

    def settlement_exists(self, order_id: str) -> bool:
        ref = self._store.settlements.document(settlement_key(order_id))
        return ref.get(transaction=self._transaction, timeout=self._store.timeout).exists

    def customer_exists(self, customer_id: str) -> bool:
        # Balance is only ever incremented server-side; its stored value is not read
        snap = self._store.users.document(customer_id).get(
            transaction=self._transaction, timeout=self._store.timeout
        )
        return snap.exists

    def update_order(self, doc_id: str, delta: Dict[str, Any]) -> None:
        self._transaction.update(self._store.orders.document(doc_id), delta)

    def record_settlement(self, order_id: str, record: Dict[str, Any]) -> None:
        # create() fails the commit if another instance recorded it first
        self._transaction.create(self._store.settlements.document(settlement_key(order_id)), record)

    def increment_balance(self, customer_id: str, amount: int) -> None:
        self._transaction.update(
            self._store.users.document(customer_id),
            {"balance": firestore.Increment(amount)},
        )


class FirestoreOrderStore:
    """Order/ledger store backed by Firestore multi-document transactions."""

    def __init__(
        self,
        db,
        orders_collection: str = "orders",
        users_collection: str = "users",
        settlements_collection: str = "settlements",
        timeout: float = 10.0,
        max_attempts: int = 5,
    ):
        self.db = db
        self.orders = db.collection(orders_collection)
        self.users = db.collection(users_collection)
        self.settlements = db.collection(settlements_collection)
        self.timeout = timeout
        self.max_attempts = max_attempts

    @classmethod
    def from_settings(cls, db, settings: Settings) -> "FirestoreOrderStore":
        return cls(
            db,
            orders_collection=settings.ORDERS_COLLECTION,
            users_collection=settings.USERS_COLLECTION,
            settlements_collection=settings.SETTLEMENTS_COLLECTION,
            timeout=settings.FIRESTORE_TIMEOUT,
            max_attempts=settings.FIRESTORE_MAX_ATTEMPTS,
        )

    def run_transaction(self, fn: Callable[[LedgerTransaction], T]) -> T:
        @firestore.transactional
        def unit(transaction):
            return fn(FirestoreLedgerTransaction(self, transaction))

        try:
            return unit(self.db.transaction(max_attempts=self.max_attempts))
        except (GoogleAPICallError, RetryError) as e:
            logger.error(f"❌ Firestore transaction failed: {e}")
            raise StoreUnavailable(f"Order store unavailable: {e}") from e
        except ValueError as e:
            # Exhausted commit attempts under contention
            if not isinstance(e.__cause__, GoogleAPICallError):
                raise
            logger.error(f"❌ Firestore transaction gave up after {self.max_attempts} attempts")
            raise StoreUnavailable(f"Order store contention: {e}") from e

    def ping(self) -> None:
        self.db.collection("system").document("healthcheck").set(
            {"ping": firestore.SERVER_TIMESTAMP}, merge=True, timeout=self.timeout
        )
