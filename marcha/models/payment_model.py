# models/payment_model.py
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class TransactionStatus(str, Enum):
    PENDING = "pending"
    SETTLEMENT = "settlement"
    CAPTURE = "capture"
    DENY = "deny"
    CANCEL = "cancel"
    EXPIRE = "expire"
    REFUND = "refund"


class PaymentType(str, Enum):
    CSTORE = "cstore"
    GOPAY = "gopay"
    QRIS = "qris"
    SHOPEEPAY = "shopeepay"
    BANK_TRANSFER = "bank_transfer"


class OrderPhase(str, Enum):
    PENDING = "pending"
    CREDITED = "credited"
    CLOSED = "closed"
    REFUNDED = "refunded"


# Statuses that move money into the customer's balance
CREDIT_STATUSES = frozenset({TransactionStatus.SETTLEMENT, TransactionStatus.CAPTURE})
CLOSED_STATUSES = frozenset({TransactionStatus.DENY, TransactionStatus.CANCEL, TransactionStatus.EXPIRE})

E_WALLET_TYPES = frozenset({PaymentType.GOPAY, PaymentType.QRIS, PaymentType.SHOPEEPAY})


def phase_for(status: TransactionStatus) -> OrderPhase:
    if status in CREDIT_STATUSES:
        return OrderPhase.CREDITED
    if status in CLOSED_STATUSES:
        return OrderPhase.CLOSED
    if status == TransactionStatus.REFUND:
        return OrderPhase.REFUNDED
    return OrderPhase.PENDING


class VaNumber(BaseModel):
    bank: str = Field(..., min_length=1)
    va_number: str = Field(..., min_length=1)


class PaymentEvent(BaseModel):
    """Canonical form of one Midtrans notification."""
    order_id: str = Field(..., min_length=1)
    transaction_status: TransactionStatus
    # Kept as a plain string: unsupported types are rejected by the classifier
    payment_type: str = Field(..., min_length=1)
    gross_amount: int

    transaction_id: Optional[str] = None
    status_code: Optional[str] = None
    fraud_status: Optional[str] = None

    # Method specific settlement tokens
    store: Optional[str] = None
    payment_code: Optional[str] = None
    permata_va_number: Optional[str] = None
    va_numbers: List[VaNumber] = Field(default_factory=list)

    # Untouched gateway payload, echoed back on acknowledgment
    raw: Dict[str, Any] = Field(default_factory=dict, exclude=True)

    model_config = {
        "extra": "ignore",
        "frozen": True,
    }

    @field_validator("gross_amount", mode="before")
    @classmethod
    def _integral_minor_units(cls, value: Any) -> int:
        # Midtrans sends "50000.00"; fractions are refused rather than truncated
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ValueError("gross_amount must be a number or numeric string")
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"gross_amount is not numeric: {value!r}")

        if not amount.is_finite():
            raise ValueError("gross_amount must be finite")
        if amount < 0:
            raise ValueError("gross_amount must not be negative")
        if amount != amount.to_integral_value():
            raise ValueError(f"gross_amount has fractional minor units: {value!r}")
        return int(amount)
