# backend/routes/catalog.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.catalog import Menu, Restaurant
from schemas.catalog import RestaurantOut, RestaurantMenus
from services.errors import NotFound
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/restaurants", tags=["Catalog"], dependencies=[Depends(get_current_user)])


# List restaurants, optionally within one area
@router.get("", response_model=List[RestaurantOut])
def list_restaurants(
    area_id: Optional[int] = Query(None),
    open_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    query = db.query(Restaurant)
    if area_id is not None:
        query = query.filter(Restaurant.area_id == area_id)
    if open_only:
        query = query.filter(Restaurant.is_open.is_(True))
    return query.order_by(Restaurant.name).all()


# Menu card of one restaurant
@router.get("/{restaurant_id}/menus", response_model=RestaurantMenus)
def list_menus(
    restaurant_id: int,
    available_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    restaurant = db.get(Restaurant, restaurant_id)
    if not restaurant:
        raise NotFound("Restaurant not found")

    query = db.query(Menu).filter(Menu.restaurant_id == restaurant.id)
    if available_only:
        query = query.filter(Menu.is_available.is_(True))
    return {"restaurant": restaurant, "menus": query.order_by(Menu.name).all()}
