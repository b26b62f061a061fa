from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# A user's pending selection at one restaurant
class Cart(Base):
    __tablename__ = "carts" # Table name

    id = Column(Integer, primary_key=True, index=True) # Primary key
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now()) # Creation timestamp
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # One-to-many relationship with cart items
    items = relationship("CartItem", back_populates="cart", cascade="all, delete-orphan", order_by="CartItem.id")
    user = relationship("User", back_populates="carts")
    restaurant = relationship("Restaurant")

    __table_args__ = (
        # One cart per (user, restaurant)
        UniqueConstraint("user_id", "restaurant_id", name="uq_cart_user_restaurant"),
    )

    @property
    def total(self) -> int:
        return sum(item.subtotal for item in self.items)


# A single line (menu + quantity + notes) within a cart
class CartItem(Base):
    __tablename__ = "cart_items" # Table name

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), index=True, nullable=False)
    menu_id = Column(Integer, ForeignKey("menus.id"), index=True, nullable=False)
    quantity = Column(Integer, CheckConstraint("quantity >= 1"), nullable=False, default=1)
    price = Column(Integer, nullable=False) # Menu price at the moment of addition
    notes = Column(String(200), nullable=True)

    cart = relationship("Cart", back_populates="items") # Relationship back to Cart
    menu = relationship("Menu")

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity
