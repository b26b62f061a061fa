from pydantic import BaseModel, Field
from typing import List, Optional

from schemas.catalog import MenuOut, RestaurantOut

# Request schema for adding an item to the cart
class CartAddItem(BaseModel):
    restaurant_id: int
    menu_id: int
    quantity: int = Field(1, ge=1)
    notes: Optional[str] = Field(None, max_length=200)

# Request schema for a partial cart line update
class CartUpdateItem(BaseModel):
    quantity: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = Field(None, max_length=200)

# Response schema for a single cart line item
class CartItemOut(BaseModel):
    id: int
    menu_id: int
    quantity: int
    price: int
    notes: Optional[str] = None
    subtotal: int
    menu: Optional[MenuOut] = None

    class Config:
        from_attributes = True

# One cart per restaurant
class CartOut(BaseModel):
    id: int
    restaurant_id: int
    restaurant: Optional[RestaurantOut] = None
    items: List[CartItemOut]
    total: int

    class Config:
        from_attributes = True

# Response schema for all of the user's carts
class CartsOut(BaseModel):
    carts: List[CartOut]
    total: int
