# services/idempotency.py
import logging

from marcha.models.order_model import SettlementRecord
from marcha.models.payment_model import PaymentEvent
from marcha.services.store import LedgerTransaction

logger = logging.getLogger("marcha.reconcile")


class IdempotencyGuard:
    """
    Grants the balance credit for an order at most once.

    The check and the mark run inside the caller's transaction, so two
    concurrent settlements for one order serialize on the settlement record:
    the loser re-runs, sees the record and is refused.
    """

    def should_credit(self, txn: LedgerTransaction, event: PaymentEvent, customer_id: str) -> bool:
        if txn.settlement_exists(event.order_id):
            logger.info(f"♻️ Already credited: {event.order_id} ({event.transaction_status.value})")
            return False

        record = SettlementRecord(
            order_id=event.order_id,
            customer_id=customer_id,
            gross_amount=event.gross_amount,
            transaction_status=event.transaction_status.value,
            transaction_id=event.transaction_id,
        )
        txn.record_settlement(event.order_id, record.model_dump(by_alias=True))
        return True
