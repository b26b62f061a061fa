from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from schemas.catalog import MenuOut, RestaurantOut


# Output schema for an individual order line item
class OrderItemOut(BaseModel):
    id: int
    menu_id: int
    quantity: int
    price: int
    subtotal: int
    notes: Optional[str] = None
    is_checked: bool = False
    menu: Optional[MenuOut] = None

    class Config:
        from_attributes = True


class OrderPaymentOut(BaseModel):
    id: int
    payment_method: str
    payment_status: str
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderUserOut(BaseModel):
    id: int
    name: str
    email: str
    divisi: Optional[str] = None

    class Config:
        from_attributes = True


# Output schema representing the full order details
class OrderResponse(BaseModel):
    id: int
    order_code: str
    restaurant_id: int
    total_price: int
    status: str
    order_status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    items: List[OrderItemOut]
    restaurant: Optional[RestaurantOut] = None
    payment: Optional[OrderPaymentOut] = None

    class Config:
        from_attributes = True


# Staff view also shows who ordered
class AdminOrderResponse(OrderResponse):
    user: Optional[OrderUserOut] = None


# Schema for paginated order lists
class OrdersPage(BaseModel):
    items: List[AdminOrderResponse]
    total: int
    page: int
    per_page: int


# Input schema for checkout
class CheckoutPayload(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)
    restaurant_id: Optional[int] = None


class NotesPatch(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)


# Schema for updating the fulfillment status
class OrderStatusPatch(BaseModel):
    order_status: str


class ItemCheckPatch(BaseModel):
    is_checked: bool
