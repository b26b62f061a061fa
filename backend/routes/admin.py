# backend/routes/admin.py
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.order import OrderStatus, FulfillmentStatus
from models.payment import PaymentStatus
from models.types import AccessToken
from models.users import Role
from schemas.order import AdminOrderResponse, OrdersPage, OrderItemOut, OrderStatusPatch, ItemCheckPatch
from schemas.payment import AdminPaymentOut, PaymentsPage
from schemas.user import UsersPage
from services import orders as order_service
from services import payments as payment_service
from services import users as user_service
from services.access import Principal
from services.errors import ValidationFailed
from utils.audit import write_log, client_ip
from utils.tokenJWT import staff_required

# Staff views; every listing is narrowed to the caller's division scope
router = APIRouter(prefix="/admin", tags=["Admin"])


def _page_size(per_page: Optional[int]) -> int:
    return per_page or settings.DEFAULT_PAGE_SIZE


@router.get("/orders", response_model=OrdersPage)
def list_orders(
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=100),
    status: Optional[OrderStatus] = Query(None, description="Filter by payment status"),
    search: Optional[str] = Query(None, description="Order code, user name or email"),
    division: Optional[AccessToken] = Query(None, description="Narrow to one division"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(staff_required),
):
    per_page = _page_size(per_page)
    rows, total = order_service.list_all(
        db, principal, page=page, per_page=per_page, status=status, search=search, division=division
    )
    return {"items": rows, "total": total, "page": page, "per_page": per_page}


@router.get("/orders/{order_id}", response_model=AdminOrderResponse)
def get_order(order_id: int, db: Session = Depends(get_db), principal: Principal = Depends(staff_required)):
    return order_service.show_any(db, principal, order_id)


# Move a paid order forward through waiting -> processing -> completed
@router.patch("/orders/{order_id}/status", response_model=AdminOrderResponse)
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(staff_required),
):
    try:
        new_status = FulfillmentStatus(payload.order_status)
    except ValueError:
        raise ValidationFailed.field("order_status", f"Unknown status {payload.order_status}")

    order_service.update_fulfillment(db, principal, order_id, new_status)
    write_log(db, user_id=principal.id, action="ORDER_STATUS", resource="orders", ip=client_ip(request),
              meta={"order_id": order_id, "order_status": new_status.value})
    return order_service.show_any(db, principal, order_id)


@router.patch("/orders/{order_id}/items/{item_id}/check", response_model=OrderItemOut)
def check_item(
    order_id: int,
    item_id: int,
    payload: ItemCheckPatch,
    db: Session = Depends(get_db),
    principal: Principal = Depends(staff_required),
):
    return order_service.set_item_checked(db, principal, order_id, item_id, payload.is_checked)


@router.get("/payments", response_model=PaymentsPage)
def list_payments(
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=100),
    status: Optional[PaymentStatus] = Query(None),
    division: Optional[AccessToken] = Query(None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(staff_required),
):
    per_page = _page_size(per_page)
    rows, total = payment_service.get_all_payments(
        db, principal, page=page, per_page=per_page, status=status, division=division
    )
    return {"items": rows, "total": total, "page": page, "per_page": per_page}


@router.get("/orders/{order_id}/payment", response_model=AdminPaymentOut)
def get_order_payment(order_id: int, db: Session = Depends(get_db), principal: Principal = Depends(staff_required)):
    return payment_service.get_payment_by_order(db, principal, order_id)


# Users within the caller's division scope
@router.get("/users", response_model=UsersPage)
def list_users(
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=100),
    role: Optional[Role] = Query(None),
    q: Optional[str] = Query(None, description="Name or email"),
    division: Optional[AccessToken] = Query(None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(staff_required),
):
    per_page = _page_size(per_page)
    rows, total = user_service.list_users(
        db, principal, page=page, per_page=per_page, role=role, search=q, division=division
    )
    return {"items": rows, "total": total, "page": page, "per_page": per_page}
