"""
Checkout: converts one cart into an immutable order.

Everything happens in one transaction: the order and its items are
inserted, then the cart lines that were read are deleted, and the cart with
them once no other line is left. The cart row stays locked until the
commit. Any failure rolls it all back and surfaces as ``CheckoutFailed``.
"""
import logging
import secrets
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from config import settings
from models.cart import Cart, CartItem
from models.order import Order, OrderItem, OrderStatus, FulfillmentStatus
from services.cart import delete_if_empty
from services.errors import EmptyCart, CheckoutFailed
from services.orders import load_order

logger = logging.getLogger(__name__)

ORDER_CODE_ATTEMPTS = 5


def generate_order_code(now: Optional[datetime] = None) -> str:
    # Second-level timestamp plus a random suffix for same-second checkouts
    now = now or datetime.now()
    return f"{settings.ORDER_CODE_PREFIX}-{now.strftime('%Y%m%d%H%M%S')}-{secrets.token_hex(2).upper()}"


def _unique_order_code(db: Session) -> str:
    for _ in range(ORDER_CODE_ATTEMPTS):
        code = generate_order_code()
        taken = db.query(Order.id).filter(Order.order_code == code).first()
        if taken is None:
            return code
    # The unique constraint still guards the insert
    raise RuntimeError("Could not generate a unique order code")


def cart_total(cart: Cart) -> int:
    return sum(item.price * item.quantity for item in cart.items)


def _build_order_item(cart_item: CartItem) -> OrderItem:
    return OrderItem(
        menu_id=cart_item.menu_id,
        quantity=cart_item.quantity,
        price=cart_item.price,
        notes=cart_item.notes,
    )


def _load_cart(db: Session, user_id: int, restaurant_id: Optional[int]) -> Optional[Cart]:
    query = (
        db.query(Cart)
        .options(selectinload(Cart.items))
        .filter(Cart.user_id == user_id)
    )
    if restaurant_id is not None:
        query = query.filter(Cart.restaurant_id == restaurant_id)
    return query.order_by(Cart.id).with_for_update().first()


def checkout(
    db: Session,
    user_id: int,
    notes: Optional[str] = None,
    restaurant_id: Optional[int] = None,
) -> Order:
    """
    Turn the user's cart into a pending order.

    Totals come from the price snapshots on the cart lines, never from the
    live menu price. Raises ``EmptyCart`` without touching the database when
    there is nothing to check out.
    """
    cart = _load_cart(db, user_id, restaurant_id)
    if not cart or not cart.items:
        raise EmptyCart("Cart is empty")

    cart_id = cart.id
    total = cart_total(cart)
    try:
        order = Order(
            order_code=_unique_order_code(db),
            user_id=user_id,
            restaurant_id=cart.restaurant_id,
            total_price=total,
            status=OrderStatus.PENDING.value,
            order_status=FulfillmentStatus.WAITING.value,
            notes=(notes or "").strip() or None,
        )
        db.add(order)
        for cart_item in cart.items:
            order.items.append(_build_order_item(cart_item))
        db.flush()

        # Lines added after the read stay in the cart for a later checkout
        for cart_item in list(cart.items):
            db.delete(cart_item)
        db.flush()
        delete_if_empty(db, cart_id)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.exception("Checkout failed for user %s (cart %s)", user_id, cart_id)
        raise CheckoutFailed("Failed to create order", cause=exc) from exc

    logger.info("Order %s created for user %s, total %s", order.order_code, user_id, total)
    return load_order(db, order.id)
