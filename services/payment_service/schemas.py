from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from .models import PaymentMethod, PaymentStatus


class PaymentCreate(BaseModel):
    order_id: int
    amount: Decimal
    payment_method: PaymentMethod


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus


class PaymentResponse(BaseModel):
    id: int
    order_id: int
    order_number: str
    amount: Decimal
    payment_method: PaymentMethod
    status: PaymentStatus
    transaction_id: str
    payment_date: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
