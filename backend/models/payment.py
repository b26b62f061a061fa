from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, func
from sqlalchemy.orm import relationship
from database import Base
import enum

# Enum for payment record states
class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class PaymentMethod(str, enum.Enum):
    QRIS = "qris"
    BANK_TRANSFER = "bank_transfer"


# Exactly one payment per order, enforced by the unique order_id
class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False, index=True)
    payment_method = Column(String(20), nullable=False)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    transaction_id = Column(String(100), nullable=True)

    # Opaque reference handed over by the file storage
    proof_image = Column(String, nullable=True)
    notes = Column(String(500), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    order = relationship("Order", back_populates="payment")


DEFAULT_QRIS_TITLE = "QRIS Pembayaran"


# Process-wide payment configuration, a single row
class PaymentSettings(Base):
    __tablename__ = "payment_settings"

    id = Column(Integer, primary_key=True, index=True)
    qris_title = Column(String(100), nullable=False, default=DEFAULT_QRIS_TITLE)
    qris_image = Column(String, nullable=True)
    qris_active = Column(Boolean, nullable=False, default=True)

    bank_name = Column(String(100), nullable=True)
    account_number = Column(String(50), nullable=True)
    account_name = Column(String(100), nullable=True)
    bank_active = Column(Boolean, nullable=False, default=True)

    # Master switch for every method
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @classmethod
    def defaults(cls) -> "PaymentSettings":
        """Unsaved record holding the documented defaults."""
        return cls(
            qris_title=DEFAULT_QRIS_TITLE,
            qris_active=True,
            bank_active=True,
            active=True,
        )

    def _switched_on(self, method: PaymentMethod) -> bool:
        if not self.active:
            return False
        if method is PaymentMethod.QRIS:
            return bool(self.qris_active)
        return bool(self.bank_active)

    def qris_available(self) -> bool:
        return self._switched_on(PaymentMethod.QRIS) and bool(self.qris_image)

    def bank_transfer_available(self) -> bool:
        return (
            self._switched_on(PaymentMethod.BANK_TRANSFER)
            and bool(self.bank_name)
            and bool(self.account_number)
            and bool(self.account_name)
        )

    def is_available(self, method: PaymentMethod) -> bool:
        """Whether a customer can pay with ``method``: switched on and fully configured."""
        if method is PaymentMethod.QRIS:
            return self.qris_available()
        return self.bank_transfer_available()

    def available_methods(self) -> list:
        # Methods a customer can actually pay with right now
        methods = []
        if self.is_available(PaymentMethod.QRIS):
            methods.append({
                "id": PaymentMethod.QRIS.value,
                "title": self.qris_title,
                "image": self.qris_image,
            })
        if self.is_available(PaymentMethod.BANK_TRANSFER):
            methods.append({
                "id": PaymentMethod.BANK_TRANSFER.value,
                "bank_name": self.bank_name,
                "account_number": self.account_number,
                "account_name": self.account_name,
            })
        return methods
