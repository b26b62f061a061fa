"""
Payment processing and payment settings.

Settlement is synchronous: a payment is recorded as pending, completed on
the spot, and the order is marked paid, all in one transaction. The unique
``payments.order_id`` constraint backs the one-payment-per-order rule when
two requests race past the existence check.
"""
import logging
import time
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from models.order import Order, OrderItem, OrderStatus
from models.payment import Payment, PaymentMethod, PaymentSettings, PaymentStatus
from models.types import AccessToken
from services.access import Principal, apply_access_filter, narrow_scope, require_settings_admin, require_staff, resolve_scope
from services.errors import AlreadyExists, Forbidden, InvalidState, NotFound, TransactionFailed, ValidationFailed

logger = logging.getLogger(__name__)


def _with_order(query):
    return query.options(
        selectinload(Payment.order).selectinload(Order.items).selectinload(OrderItem.menu),
        selectinload(Payment.order).selectinload(Order.user),
    )


def _owned_order(db: Session, user_id: int, order_id: int) -> Order:
    order = db.query(Order).filter(Order.id == order_id, Order.user_id == user_id).first()
    if not order:
        raise NotFound("Order not found")
    return order


def process(
    db: Session,
    user_id: int,
    order_id: int,
    method: PaymentMethod,
    transaction_id: Optional[str] = None,
    proof_image: Optional[str] = None,
    notes: Optional[str] = None,
) -> Payment:
    order = _owned_order(db, user_id, order_id)

    # A repeated payment reports the duplicate rather than the paid status
    existing = db.query(Payment.id).filter(Payment.order_id == order.id).first()
    if existing is not None:
        raise AlreadyExists("Payment already exists for this order")
    if order.status != OrderStatus.PENDING.value:
        raise InvalidState(f"Order is already {order.status}")

    if not get_payment_settings(db).is_available(method):
        raise ValidationFailed.field("payment_method", f"Payment method {method.value} is not available")

    try:
        payment = Payment(
            order_id=order.id,
            payment_method=method.value,
            payment_status=PaymentStatus.PENDING.value,
            transaction_id=transaction_id or f"TXN-{order.id}-{int(time.time())}",
            proof_image=proof_image,
            notes=(notes or "").strip() or None,
        )
        db.add(payment)
        db.flush()

        # Simulated settlement, no gateway callback to wait for
        payment.payment_status = PaymentStatus.COMPLETED.value
        payment.paid_at = datetime.now(timezone.utc)
        order.status = OrderStatus.PAID.value
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Concurrent payment for order %s rejected: %s", order_id, exc)
        raise AlreadyExists("Payment already exists for this order") from exc
    except Exception as exc:
        db.rollback()
        logger.exception("Payment for order %s failed", order_id)
        raise TransactionFailed("Failed to process payment", cause=exc) from exc

    logger.info("Order %s paid via %s", order_id, method.value)
    return _with_order(db.query(Payment)).filter(Payment.id == payment.id).one()


def show(db: Session, user_id: int, order_id: int) -> Tuple[Order, Optional[Payment]]:
    """The caller's order and its payment; the payment is None until one is made."""
    order = (
        db.query(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.menu))
        .filter(Order.id == order_id, Order.user_id == user_id)
        .first()
    )
    if not order:
        raise NotFound("Order not found")
    payment = db.query(Payment).filter(Payment.order_id == order.id).first()
    return order, payment


def history(db: Session, user_id: int) -> List[Payment]:
    return (
        _with_order(db.query(Payment))
        .filter(Payment.order.has(Order.user_id == user_id))
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )


# --- Staff views ---

def get_all_payments(
    db: Session,
    principal: Principal,
    *,
    page: int = 1,
    per_page: int = 15,
    status: Optional[PaymentStatus] = None,
    division: Optional[AccessToken] = None,
) -> Tuple[List[Payment], int]:
    require_staff(principal)
    scope = narrow_scope(principal, division)

    query = apply_access_filter(db.query(Payment), scope, Payment.order, Order.user)
    if status:
        query = query.filter(Payment.payment_status == status.value)

    total = query.count()
    rows = (
        _with_order(query)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return rows, total


def get_payment_by_order(db: Session, principal: Principal, order_id: int) -> Payment:
    require_staff(principal)
    payment = _with_order(db.query(Payment)).filter(Payment.order_id == order_id).first()
    if not payment:
        raise NotFound("Payment not found for this order")

    if not resolve_scope(principal).allows_division(payment.order.user.divisi):
        raise Forbidden("No access to this payment")
    return payment


# --- Settings ---

def get_payment_settings(db: Session) -> PaymentSettings:
    """The stored settings row, or an unsaved record with the defaults."""
    settings_row = db.query(PaymentSettings).order_by(PaymentSettings.id).first()
    return settings_row or PaymentSettings.defaults()


def ensure_payment_settings(db: Session) -> PaymentSettings:
    """Create the settings row with its defaults if it does not exist yet."""
    settings_row = db.query(PaymentSettings).order_by(PaymentSettings.id).first()
    if settings_row is None:
        settings_row = PaymentSettings.defaults()
        db.add(settings_row)
        db.commit()
        db.refresh(settings_row)
        logger.info("Payment settings initialized with defaults")
    return settings_row


SETTINGS_FIELDS = (
    "qris_title",
    "qris_image",
    "qris_active",
    "bank_name",
    "account_number",
    "account_name",
    "bank_active",
    "active",
)

REQUIRED_SETTINGS = ("qris_title", "qris_active", "bank_active", "active")


def update_payment_settings(db: Session, principal: Principal, **changes) -> PaymentSettings:
    require_settings_admin(principal)

    unknown = set(changes) - set(SETTINGS_FIELDS)
    if unknown:
        raise ValidationFailed(
            "Unknown payment settings fields",
            errors={name: ["Unknown field"] for name in sorted(unknown)},
        )

    required = [name for name in REQUIRED_SETTINGS if name in changes and changes[name] is None]
    if required:
        raise ValidationFailed(
            "Payment settings fields cannot be empty",
            errors={name: ["This field cannot be null"] for name in required},
        )

    settings_row = ensure_payment_settings(db)
    for name, value in changes.items():
        setattr(settings_row, name, value)
    db.commit()
    db.refresh(settings_row)
    return settings_row
