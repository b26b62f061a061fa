"""
Order lifecycle.

Payment side: ``pending`` -> ``paid`` (driven by the payment processor).
A pending order may instead be cancelled, which removes it together with
its items. Nothing leaves ``paid``. Notes are editable only while pending.

Fulfillment side (staff, paid orders only): ``waiting`` -> ``processing``
-> ``completed``, forward-only.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from models.order import Order, OrderItem, OrderStatus, FulfillmentStatus
from models.types import AccessToken
from models.users import User
from services.access import Principal, apply_access_filter, narrow_scope, require_staff, resolve_scope
from services.errors import NotFound, InvalidState, TransactionFailed

logger = logging.getLogger(__name__)


def _with_details(query, include_user: bool = False):
    options = [
        selectinload(Order.items).selectinload(OrderItem.menu),
        selectinload(Order.restaurant),
        selectinload(Order.payment),
    ]
    if include_user:
        options.append(selectinload(Order.user))
    return query.options(*options)


def load_order(db: Session, order_id: int) -> Order:
    return _with_details(db.query(Order), include_user=True).filter(Order.id == order_id).one()


def _owned_order(db: Session, user_id: int, order_id: int) -> Order:
    order = _with_details(db.query(Order)).filter(Order.id == order_id, Order.user_id == user_id).first()
    if not order:
        raise NotFound("Order not found")
    return order


def _ensure_pending(order: Order, action: str) -> None:
    if not order.is_pending:
        raise InvalidState(f"Can only {action} pending orders (order is {order.status})")


def list_for_user(db: Session, user_id: int) -> List[Order]:
    return (
        _with_details(db.query(Order))
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def show(db: Session, user_id: int, order_id: int) -> Order:
    return _owned_order(db, user_id, order_id)


def update_notes(db: Session, user_id: int, order_id: int, notes: Optional[str]) -> Order:
    order = _owned_order(db, user_id, order_id)
    _ensure_pending(order, "edit notes of")
    order.notes = (notes or "").strip() or None
    db.commit()
    return _owned_order(db, user_id, order_id)


def update_item_notes(db: Session, user_id: int, order_id: int, item_id: int, notes: Optional[str]) -> OrderItem:
    order = _owned_order(db, user_id, order_id)
    _ensure_pending(order, "edit notes of")

    item = next((it for it in order.items if it.id == item_id), None)
    if item is None:
        raise NotFound("Order item not found")

    item.notes = (notes or "").strip() or None
    db.commit()
    db.refresh(item)
    return item


def cancel(db: Session, user_id: int, order_id: int) -> str:
    """
    Cancel a pending order by deleting it and its items.

    Returns the code of the removed order.
    """
    order = _owned_order(db, user_id, order_id)
    _ensure_pending(order, "cancel")
    order_code = order.order_code

    try:
        db.query(OrderItem).filter(OrderItem.order_id == order.id).delete(synchronize_session=False)
        db.query(Order).filter(Order.id == order.id).delete(synchronize_session=False)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.exception("Cancelling order %s failed", order_id)
        raise TransactionFailed("Failed to cancel order", cause=exc) from exc

    db.expire_all()
    logger.info("Order %s cancelled by user %s", order_code, user_id)
    return order_code


# --- Staff views ---

def list_all(
    db: Session,
    principal: Principal,
    *,
    page: int = 1,
    per_page: int = 15,
    status: Optional[OrderStatus] = None,
    search: Optional[str] = None,
    division: Optional[AccessToken] = None,
) -> Tuple[List[Order], int]:
    require_staff(principal)
    scope = narrow_scope(principal, division)

    query = apply_access_filter(db.query(Order), scope, Order.user)
    if status:
        query = query.filter(Order.status == status.value)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Order.order_code.ilike(like),
                Order.user.has(or_(User.name.ilike(like), User.email.ilike(like))),
            )
        )

    total = query.count()
    rows = (
        _with_details(query, include_user=True)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return rows, total


def show_any(db: Session, principal: Principal, order_id: int) -> Order:
    require_staff(principal)
    query = apply_access_filter(db.query(Order), resolve_scope(principal), Order.user)
    order = _with_details(query, include_user=True).filter(Order.id == order_id).first()
    if not order:
        raise NotFound("Order not found")
    return order


def update_fulfillment(db: Session, principal: Principal, order_id: int, new_status: FulfillmentStatus) -> Order:
    order = show_any(db, principal, order_id)
    if order.status != OrderStatus.PAID.value:
        raise InvalidState("Only paid orders can be fulfilled")

    current = FulfillmentStatus(order.order_status)
    if new_status.rank <= current.rank:
        raise InvalidState(f"Cannot move order from {current.value} to {new_status.value}")

    order.order_status = new_status.value
    db.commit()
    return show_any(db, principal, order_id)


def set_item_checked(db: Session, principal: Principal, order_id: int, item_id: int, checked: bool) -> OrderItem:
    order = show_any(db, principal, order_id)
    if order.status != OrderStatus.PAID.value:
        raise InvalidState("Only paid orders can be checked off")

    item = next((it for it in order.items if it.id == item_id), None)
    if item is None:
        raise NotFound("Order item not found")

    item.is_checked = checked
    db.commit()
    db.refresh(item)
    return item
