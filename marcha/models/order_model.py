# models/order_model.py
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class Order(BaseModel):
    """Order document in Firestore, created by the checkout flow."""
    id: str = Field(..., alias="_id")
    order_id: str = Field(..., alias="orderId")
    customer_id: Optional[str] = Field(default=None, alias="customerId")
    status: Optional[str] = "pending"
    method_payment: Optional[str] = Field(default=None, alias="methodPayment")
    token: Optional[str] = None

    model_config = {
        "from_attributes": True,
        "populate_by_name": True,
        "extra": "ignore",
    }


class SettlementRecord(BaseModel):
    """Marks an order whose settlement has been credited to the customer's balance."""
    order_id: str = Field(..., alias="orderId")
    customer_id: str = Field(..., alias="customerId")
    gross_amount: int = Field(..., alias="grossAmount", ge=0)
    transaction_status: str = Field(..., alias="transactionStatus")
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")
    credited_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="creditedAt"
    )

    model_config = {
        "populate_by_name": True,
    }
