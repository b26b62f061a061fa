import enum
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship
from database import Base


# Payment side of an order; there is no state after PAID
class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


# Kitchen side of a paid order, forward-only
class FulfillmentStatus(str, enum.Enum):
    WAITING = "waiting"
    PROCESSING = "processing"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return list(FulfillmentStatus).index(self)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_code = Column(String(40), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)

    # Sum of item price snapshots, fixed at checkout
    total_price = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)
    order_status = Column(String(20), nullable=False, default=FulfillmentStatus.WAITING.value)
    notes = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")
    user = relationship("User", back_populates="orders")
    restaurant = relationship("Restaurant")
    payment = relationship("Payment", back_populates="order", uselist=False)

    @property
    def is_pending(self) -> bool:
        return self.status == OrderStatus.PENDING.value


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    menu_id = Column(Integer, ForeignKey("menus.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False) # Copied from the cart line, never from the live menu
    notes = Column(String(200), nullable=True)
    is_checked = Column(Boolean, nullable=False, default=False)

    order = relationship("Order", back_populates="items")
    menu = relationship("Menu")

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity
