from pydantic import BaseModel
from typing import List, Optional


class AreaOut(BaseModel):
    id: int
    name: str
    slug: str

    class Config:
        from_attributes = True


class MenuOut(BaseModel):
    id: int
    restaurant_id: int
    name: str
    price: int
    image: Optional[str] = None
    is_available: bool

    class Config:
        from_attributes = True


class RestaurantOut(BaseModel):
    id: int
    area_id: Optional[int] = None
    name: str
    description: Optional[str] = None
    address: Optional[str] = None
    is_open: bool

    class Config:
        from_attributes = True


# Restaurant with its menu card
class RestaurantMenus(BaseModel):
    restaurant: RestaurantOut
    menus: List[MenuOut]
