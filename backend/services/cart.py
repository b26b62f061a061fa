"""
Cart store: per-user, per-restaurant collections of cart lines.

A cart is created on the first add and deleted as soon as it holds no
items. Lines are deduplicated on (cart, menu, notes).
"""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from models.cart import Cart, CartItem
from models.catalog import Menu, Restaurant
from services.errors import NotFound, ValidationFailed, TransactionFailed

logger = logging.getLogger(__name__)

# Marks an argument the caller did not supply
UNSET = object()


def clean_notes(notes: Optional[str]) -> Optional[str]:
    if notes is None:
        return None
    notes = notes.strip()
    return notes or None


def _notes_match(notes: Optional[str]):
    if notes is None:
        return CartItem.notes.is_(None)
    return CartItem.notes == notes


def _validate_quantity(quantity) -> None:
    if quantity is None or int(quantity) < 1:
        raise ValidationFailed.field("quantity", "Quantity must be at least 1")


def _owned_item(db: Session, user_id: int, item_id: int) -> CartItem:
    item = (
        db.query(CartItem)
        .join(Cart, CartItem.cart_id == Cart.id)
        .filter(CartItem.id == item_id, Cart.user_id == user_id)
        .first()
    )
    if not item:
        raise NotFound("Cart item not found")
    return item


def delete_if_empty(db: Session, cart_id: int) -> bool:
    remaining = db.query(CartItem.id).filter(CartItem.cart_id == cart_id).first()
    if remaining is None:
        db.query(Cart).filter(Cart.id == cart_id).delete(synchronize_session=False)
        return True
    return False


def _find_or_create_cart(db: Session, user_id: int, restaurant_id: int) -> Cart:
    cart = db.query(Cart).filter(Cart.user_id == user_id, Cart.restaurant_id == restaurant_id).first()
    if not cart:
        cart = Cart(user_id=user_id, restaurant_id=restaurant_id)
        db.add(cart)
        db.flush()
    return cart


def add_item(
    db: Session,
    user_id: int,
    *,
    restaurant_id: int,
    menu_id: int,
    quantity: int,
    notes: Optional[str] = None,
) -> CartItem:
    """Add a menu to the user's cart for ``restaurant_id``, merging identical lines."""
    _validate_quantity(quantity)

    restaurant = db.get(Restaurant, restaurant_id)
    if not restaurant:
        raise NotFound("Restaurant not found")
    menu = db.get(Menu, menu_id)
    if not menu:
        raise NotFound("Menu not found")

    if menu.restaurant_id != restaurant.id:
        raise ValidationFailed.field("menu_id", "Menu does not belong to this restaurant")
    if not menu.is_available:
        raise ValidationFailed.field("menu_id", "Menu is not available")
    if not restaurant.is_open:
        raise ValidationFailed.field("restaurant_id", "Restaurant is closed")

    notes = clean_notes(notes)
    try:
        cart = _find_or_create_cart(db, user_id, restaurant.id)
        item = (
            db.query(CartItem)
            .filter(CartItem.cart_id == cart.id, CartItem.menu_id == menu.id, _notes_match(notes))
            .with_for_update()
            .first()
        )
        if item:
            # Increment in SQL so concurrent adds do not lose updates
            item.quantity = CartItem.quantity + quantity
        else:
            item = CartItem(
                cart_id=cart.id,
                menu_id=menu.id,
                quantity=quantity,
                price=menu.price,
                notes=notes,
            )
            db.add(item)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.exception("Adding menu %s to cart of user %s failed", menu_id, user_id)
        raise TransactionFailed("Failed to add item to cart", cause=exc) from exc

    db.refresh(item)
    return item


def update_item(
    db: Session,
    user_id: int,
    item_id: int,
    *,
    quantity: Optional[int] = None,
    notes=UNSET,
) -> CartItem:
    """Partial update; only the supplied fields change."""
    item = _owned_item(db, user_id, item_id)

    if quantity is not None:
        _validate_quantity(quantity)
        item.quantity = quantity
    if notes is not UNSET:
        item.notes = clean_notes(notes)

    db.commit()
    db.refresh(item)
    return item


def remove_item(db: Session, user_id: int, item_id: int) -> bool:
    """Remove a line. Returns True when its cart became empty and was deleted."""
    item = _owned_item(db, user_id, item_id)
    cart_id = item.cart_id

    try:
        db.delete(item)
        db.flush()
        cart_deleted = delete_if_empty(db, cart_id)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.exception("Removing cart item %s failed", item_id)
        raise TransactionFailed("Failed to remove cart item", cause=exc) from exc

    db.expire_all()
    return cart_deleted


def purge_empty_carts(db: Session, user_id: int) -> int:
    empty_ids = [
        cart_id
        for (cart_id,) in db.query(Cart.id).filter(Cart.user_id == user_id, ~Cart.items.any()).all()
    ]
    if empty_ids:
        db.query(Cart).filter(Cart.id.in_(empty_ids)).delete(synchronize_session=False)
    return len(empty_ids)


def list_carts(db: Session, user_id: int) -> List[Cart]:
    """All non-empty carts of the user, with items, menus and restaurant loaded."""
    purged = purge_empty_carts(db, user_id)
    if purged:
        db.commit()
        logger.debug("Purged %s empty cart(s) of user %s", purged, user_id)

    return (
        db.query(Cart)
        .options(
            selectinload(Cart.items).selectinload(CartItem.menu),
            selectinload(Cart.restaurant),
        )
        .filter(Cart.user_id == user_id)
        .order_by(Cart.id)
        .all()
    )


def clear(db: Session, user_id: int) -> None:
    owned = select(Cart.id).where(Cart.user_id == user_id)
    db.query(CartItem).filter(CartItem.cart_id.in_(owned)).delete(synchronize_session=False)
    db.query(Cart).filter(Cart.user_id == user_id).delete(synchronize_session=False)
    db.commit()
    db.expire_all()
