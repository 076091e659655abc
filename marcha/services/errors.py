# services/errors.py
from typing import Optional


class ReconciliationError(Exception):
    """Base class for failures reported back to the gateway."""
    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str, order_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.order_id = order_id


class MalformedPayload(ReconciliationError):
    status_code = 400


class UnknownPaymentType(ReconciliationError):
    status_code = 422

    def __init__(self, payment_type: str, order_id: Optional[str] = None):
        super().__init__(f"Unsupported payment_type: {payment_type}", order_id=order_id)
        self.payment_type = payment_type


class OrderNotFound(ReconciliationError):
    status_code = 404

    def __init__(self, order_id: str, matches: int = 0):
        if matches:
            message = f"Order {order_id} is ambiguous ({matches} matching records)"
        else:
            message = f"Order {order_id} not found"
        super().__init__(message, order_id=order_id)
        self.matches = matches


class CustomerNotFound(ReconciliationError):
    status_code = 404

    def __init__(self, order_id: str, customer_id: Optional[str]):
        super().__init__(f"Customer {customer_id} for order {order_id} not found", order_id=order_id)
        self.customer_id = customer_id


class StoreUnavailable(ReconciliationError):
    status_code = 503
    retryable = True
