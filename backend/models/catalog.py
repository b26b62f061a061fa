# backend/models/catalog.py
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base


# Groups restaurants by location (food court, building, ...)
class Area(Base):
    __tablename__ = "areas"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(120), unique=True, nullable=False, index=True)
    description = Column(String, nullable=True)

    restaurants = relationship("Restaurant", back_populates="area")


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True)
    area_id = Column(Integer, ForeignKey("areas.id"), nullable=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(String, nullable=True)
    address = Column(String, nullable=True)
    is_open = Column(Boolean, nullable=False, default=True)

    area = relationship("Area", back_populates="restaurants")
    menus = relationship("Menu", back_populates="restaurant")


# Live catalog price; carts and orders keep their own snapshot
class Menu(Base):
    __tablename__ = "menus"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Integer, CheckConstraint("price >= 0"), nullable=False)
    image = Column(String, nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)

    restaurant = relationship("Restaurant", back_populates="menus")
