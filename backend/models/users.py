# backend/models/users.py
import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from database import Base
from models.types import DataAccessType


# Closed set of roles; capabilities are answered here instead of comparing strings
class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"

    @property
    def is_staff(self) -> bool:
        return self in (Role.ADMIN, Role.SUPERADMIN)

    @property
    def is_superadmin(self) -> bool:
        return self is Role.SUPERADMIN

    @property
    def can_manage_users(self) -> bool:
        return self is Role.SUPERADMIN

    @property
    def can_manage_settings(self) -> bool:
        return self is Role.SUPERADMIN

    @property
    def uses_data_access(self) -> bool:
        # Only admins carry an explicit data-access set
        return self is Role.ADMIN

    def satisfies(self, required: "Role") -> bool:
        # Superadmin passes every role gate
        return self is Role.SUPERADMIN or self is required


# Represents a user account with authentication details, role and division
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    phone = Column(String(30), nullable=True)
    role = Column(String(20), nullable=False, default=Role.USER.value, index=True)

    # Organizational division, e.g. "CRSD 1"
    divisi = Column(String(50), nullable=True, index=True)
    unit_kerja = Column(String(100), nullable=True)

    # Explicit partition tokens granted to admins
    data_access = Column(DataAccessType, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    carts = relationship("Cart", back_populates="user", cascade="all, delete-orphan")
    # Orders are never removed together with their owner
    orders = relationship("Order", back_populates="user", passive_deletes="all")

    @property
    def role_enum(self) -> Role:
        return Role(self.role)
