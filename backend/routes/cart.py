# backend/routes/cart.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log, client_ip
from models.users import User
from schemas.cart import CartAddItem, CartUpdateItem, CartItemOut, CartsOut
from services import cart as cart_service

router = APIRouter(prefix="/cart", tags=["Cart"])


# Retrieve all of the user's carts, one per restaurant
@router.get("", response_model=CartsOut)
def get_cart(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    carts = cart_service.list_carts(db, current_user.id)
    return {"carts": carts, "total": sum(c.total for c in carts)}


# Add a menu to the cart for its restaurant
@router.post("/items", response_model=CartItemOut)
def add_item(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    item = cart_service.add_item(
        db,
        current_user.id,
        restaurant_id=payload.restaurant_id,
        menu_id=payload.menu_id,
        quantity=payload.quantity,
        notes=payload.notes,
    )
    write_log(db, user_id=current_user.id, action="CART_ADD", resource="cart", ip=client_ip(request),
              meta={"menu_id": payload.menu_id, "quantity": payload.quantity})
    db.refresh(item)
    return item


# Change quantity and/or notes of a cart line
@router.put("/items/{item_id}", response_model=CartItemOut)
def update_item(
    item_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    changes = payload.model_dump(exclude_unset=True)
    item = cart_service.update_item(db, current_user.id, item_id, **changes)
    write_log(db, user_id=current_user.id, action="CART_UPDATE", resource="cart", ip=client_ip(request),
              meta={"item_id": item_id, **changes})
    db.refresh(item)
    return item


# Remove a line; an emptied cart disappears with it
@router.delete("/items/{item_id}")
def remove_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    cart_deleted = cart_service.remove_item(db, current_user.id, item_id)
    write_log(db, user_id=current_user.id, action="CART_REMOVE", resource="cart", ip=client_ip(request),
              meta={"item_id": item_id})
    return {"success": True, "message": "Item removed", "cart_deleted": cart_deleted}


@router.delete("")
def clear_cart(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    cart_service.clear(db, current_user.id)
    write_log(db, user_id=current_user.id, action="CART_CLEAR", resource="cart", ip=client_ip(request))
    return {"success": True, "message": "Cart cleared"}
