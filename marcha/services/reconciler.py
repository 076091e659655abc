# services/reconciler.py
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel

from marcha.models.order_model import Order
from marcha.models.payment_model import CREDIT_STATUSES, OrderPhase, PaymentEvent, phase_for
from marcha.services.classifier import PaymentMethod
from marcha.services.errors import CustomerNotFound, OrderNotFound, StoreUnavailable
from marcha.services.idempotency import IdempotencyGuard
from marcha.services.store import LedgerTransaction, OrderLedgerStore

logger = logging.getLogger("marcha.reconcile")


class ReconciliationResult(BaseModel):
    event: PaymentEvent
    order_doc_id: str
    method_payment: str
    token: Optional[str] = None
    phase: OrderPhase
    credited: bool = False
    already_credited: bool = False

    def acknowledgment(self) -> Dict[str, Any]:
        """Gateway payload plus what was applied, returned to Midtrans with the 200."""
        return {
            **self.event.raw,
            "methodPayment": self.method_payment,
            "token": self.token,
            "phase": self.phase.value,
            "credited": self.credited,
            "alreadyCredited": self.already_credited,
        }


def build_delta(event: PaymentEvent, method: PaymentMethod) -> Dict[str, Any]:
    delta = {
        "methodPayment": method.label,
        "status": event.transaction_status.value,
    }
    # e-wallets carry no settlement token; leave any stored one untouched
    if method.token is not None:
        delta["token"] = method.token
    return delta


class OrderReconciler:
    """
    Applies a classified notification to its order and, for settled payments,
    credits the customer's balance. Both writes commit in one transaction.
    """

    def __init__(self, store: OrderLedgerStore, guard: Optional[IdempotencyGuard] = None):
        self.store = store
        self.guard = guard or IdempotencyGuard()

    def _apply(self, txn: LedgerTransaction, event: PaymentEvent, method: PaymentMethod) -> ReconciliationResult:
        matches = txn.find_orders(event.order_id, limit=2)
        if len(matches) != 1:
            raise OrderNotFound(event.order_id, matches=len(matches))

        snapshot = matches[0]
        order = Order.model_validate({**snapshot.data, "_id": snapshot.doc_id})

        credit = False
        already_credited = False
        phase = phase_for(event.transaction_status)
        if event.transaction_status in CREDIT_STATUSES:
            if not order.customer_id or not txn.customer_exists(order.customer_id):
                raise CustomerNotFound(event.order_id, order.customer_id)
            credit = self.guard.should_credit(txn, event, order.customer_id)
            already_credited = not credit
        elif txn.settlement_exists(event.order_id):
            # Credited is terminal; later statuses are recorded for auditing only
            phase = OrderPhase.CREDITED

        txn.update_order(order.id, build_delta(event, method))
        if credit:
            txn.increment_balance(order.customer_id, event.gross_amount)

        return ReconciliationResult(
            event=event,
            order_doc_id=order.id,
            method_payment=method.label,
            token=method.token,
            phase=phase,
            credited=credit,
            already_credited=already_credited,
        )

    def reconcile(self, event: PaymentEvent, method: PaymentMethod) -> ReconciliationResult:
        try:
            result = self.store.run_transaction(lambda txn: self._apply(txn, event, method))
        except StoreUnavailable as e:
            e.order_id = e.order_id or event.order_id
            raise

        if result.credited:
            logger.info(f"💰 Credited {event.gross_amount} for {event.order_id} via {method.label}")
        logger.debug(
            f"Order {event.order_id} ({result.order_doc_id}) → status={event.transaction_status.value} "
            f"method={method.label} phase={result.phase.value}"
        )
        return result
