# services/orchestrator.py
import logging
from typing import Any, Optional

from marcha.services.classifier import classify
from marcha.services.errors import (
    CustomerNotFound,
    MalformedPayload,
    OrderNotFound,
    StoreUnavailable,
    UnknownPaymentType,
)
from marcha.services.idempotency import IdempotencyGuard
from marcha.services.parser import parse_notification
from marcha.services.reconciler import OrderReconciler, ReconciliationResult
from marcha.services.store import OrderLedgerStore

logger = logging.getLogger("marcha.reconcile")


class ReconciliationOrchestrator:
    """
    Entry point for one gateway delivery: parse → classify → guard/reconcile.

    Order state is driven only by notifications:
    pending → settlement|capture → credited, pending → deny|cancel|expire → closed,
    pending → refund → refunded. Later notifications still update status and
    token for auditing, but a credited order is never credited again.
    """

    def __init__(self, store: OrderLedgerStore, guard: Optional[IdempotencyGuard] = None):
        self.store = store
        self.reconciler = OrderReconciler(store, guard=guard)

    def handle_notification(self, raw_payload: Any) -> ReconciliationResult:
        try:
            event = parse_notification(raw_payload)
            method = classify(event)
            result = self.reconciler.reconcile(event, method)
        except (MalformedPayload, UnknownPaymentType) as e:
            logger.warning(f"🚫 Rejected notification {e.order_id or '<unknown>'}: {e.message}")
            raise
        except (OrderNotFound, CustomerNotFound) as e:
            logger.warning(f"🔎 {e.message}")
            raise
        except StoreUnavailable as e:
            logger.error(f"❌ Store failure for {e.order_id or '<unknown>'}: {e.message}")
            raise

        if result.already_credited:
            logger.info(f"♻️ Duplicate settlement for {event.order_id} acknowledged without credit")
        logger.info(
            f"✅ Notification {event.order_id} reconciled | {event.transaction_status.value} | "
            f"{method.label} | credited={result.credited}"
        )
        return result
