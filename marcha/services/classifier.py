# services/classifier.py
from typing import NamedTuple, Optional

from marcha.models.payment_model import E_WALLET_TYPES, PaymentEvent, PaymentType
from marcha.services.errors import MalformedPayload, UnknownPaymentType


class PaymentMethod(NamedTuple):
    label: str
    token: Optional[str]


def classify(event: PaymentEvent) -> PaymentMethod:
    """
    Map a notification to the `methodPayment` label and settlement token stored on the order.

    | payment_type  | label                | token                |
    |---------------|----------------------|----------------------|
    | cstore        | event.store          | payment_code         |
    | e-wallets     | payment_type         | none                 |
    | bank_transfer | "permata"            | permata_va_number    |
    | bank_transfer | va_numbers[0].bank   | va_numbers[0].va_number |
    """
    try:
        payment_type = PaymentType(event.payment_type)
    except ValueError:
        raise UnknownPaymentType(event.payment_type, order_id=event.order_id)

    if payment_type == PaymentType.CSTORE:
        if not event.store or not event.payment_code:
            raise MalformedPayload("cstore notification without store/payment_code", order_id=event.order_id)
        return PaymentMethod(event.store, event.payment_code)

    if payment_type in E_WALLET_TYPES:
        return PaymentMethod(payment_type.value, None)

    # bank_transfer: a Permata number wins over the generic VA list
    if event.permata_va_number:
        return PaymentMethod("permata", event.permata_va_number)
    if event.va_numbers:
        first = event.va_numbers[0]
        return PaymentMethod(first.bank, first.va_number)

    raise MalformedPayload("bank_transfer notification without a virtual account number", order_id=event.order_id)
