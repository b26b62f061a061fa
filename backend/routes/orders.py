# backend/routes/orders.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Request, status

from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log, client_ip
from models.users import User
from schemas.order import OrderResponse, OrderItemOut, CheckoutPayload, NotesPatch
from services import orders as order_service
from services.checkout import checkout as run_checkout

router = APIRouter(prefix="/orders", tags=["Orders"])


# List the caller's orders, newest first
@router.get("", response_model=List[OrderResponse])
def list_orders(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return order_service.list_for_user(db, current_user.id)


# Turn a cart into a pending order
@router.post("/checkout", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def checkout(
    request: Request,
    payload: Optional[CheckoutPayload] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    payload = payload or CheckoutPayload()
    order = run_checkout(db, current_user.id, notes=payload.notes, restaurant_id=payload.restaurant_id)
    order_id, order_code, total = order.id, order.order_code, order.total_price

    write_log(db, user_id=current_user.id, action="CHECKOUT", resource="orders", ip=client_ip(request),
              meta={"order_id": order_id, "order_code": order_code, "total_price": total})
    return order_service.show(db, current_user.id, order_id)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return order_service.show(db, current_user.id, order_id)


# Edit order notes while the order is pending
@router.patch("/{order_id}/notes", response_model=OrderResponse)
def update_notes(
    order_id: int,
    payload: NotesPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order_service.update_notes(db, current_user.id, order_id, payload.notes)
    write_log(db, user_id=current_user.id, action="ORDER_NOTES", resource="orders", ip=client_ip(request),
              meta={"order_id": order_id})
    return order_service.show(db, current_user.id, order_id)


@router.patch("/{order_id}/items/{item_id}/notes", response_model=OrderItemOut)
def update_item_notes(
    order_id: int,
    item_id: int,
    payload: NotesPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    item = order_service.update_item_notes(db, current_user.id, order_id, item_id, payload.notes)
    write_log(db, user_id=current_user.id, action="ORDER_ITEM_NOTES", resource="orders", ip=client_ip(request),
              meta={"order_id": order_id, "item_id": item_id})
    db.refresh(item)
    return item


# Cancel a pending order; the order and its items are removed
@router.delete("/{order_id}")
def cancel_order(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order_code = order_service.cancel(db, current_user.id, order_id)
    write_log(db, user_id=current_user.id, action="ORDER_CANCEL", resource="orders", ip=client_ip(request),
              meta={"order_id": order_id, "order_code": order_code})
    return {"success": True, "message": f"Order {order_code} cancelled"}
