from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from models.payment import PaymentMethod
from schemas.order import AdminOrderResponse, OrderResponse


class PaymentCreate(BaseModel):
    payment_method: PaymentMethod
    transaction_id: Optional[str] = Field(None, max_length=100)
    # Reference returned by the upload storage
    proof_image: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class PaymentOut(BaseModel):
    id: int
    order_id: int
    payment_method: str
    payment_status: str
    transaction_id: Optional[str] = None
    proof_image: Optional[str] = None
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentWithOrder(PaymentOut):
    order: OrderResponse


class AdminPaymentOut(PaymentOut):
    order: AdminOrderResponse


# Order with its payment, which is null until paid
class PaymentShow(BaseModel):
    order: OrderResponse
    payment: Optional[PaymentOut] = None


class PaymentsPage(BaseModel):
    items: List[AdminPaymentOut]
    total: int
    page: int
    per_page: int


class PaymentSettingsOut(BaseModel):
    qris_title: str
    qris_image: Optional[str] = None
    qris_active: bool
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None
    bank_active: bool
    active: bool

    class Config:
        from_attributes = True


class PaymentSettingsUpdate(BaseModel):
    qris_title: Optional[str] = Field(None, min_length=1, max_length=100)
    qris_image: Optional[str] = None
    qris_active: Optional[bool] = None
    bank_name: Optional[str] = Field(None, max_length=100)
    account_number: Optional[str] = Field(None, max_length=50)
    account_name: Optional[str] = Field(None, max_length=100)
    bank_active: Optional[bool] = None
    active: Optional[bool] = None


class PaymentMethodsOut(BaseModel):
    methods: List[Dict[str, Any]]
