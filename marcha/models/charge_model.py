# models/charge_model.py
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class CustomerDetails(BaseModel):
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None


class ItemDetail(BaseModel):
    id: str
    price: int = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    name: str


class ChargeRequest(BaseModel):
    """Checkout request from the mobile app."""
    customers: CustomerDetails
    items: List[ItemDetail] = Field(..., min_length=1)
    url: Optional[str] = None
    order_id: str = Field(..., min_length=1)

    @property
    def gross_amount(self) -> int:
        return sum(item.price * item.quantity for item in self.items)
