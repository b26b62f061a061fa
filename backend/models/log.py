from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, func
from database import Base

AUDIT_SUCCESS = "SUCCESS"
AUDIT_FAIL = "FAIL"


class Log(Base):
    """
    One audit entry, written by the routers after the service call settled.

    ``action`` is an upper-case verb such as ``CHECKOUT``, ``PAYMENT`` or
    ``ROLE_CHANGE``; ``resource`` names the area it touched (``cart``,
    ``orders``, ``payments``, ``users``, ``auth``). Entries outlive the
    account that produced them, so ``user_id`` is only a loose reference and
    the superadmin listing reads the columns without joining users.
    """

    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, index=True)
    ts = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(50), nullable=False, index=True)
    resource = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=AUDIT_SUCCESS, index=True)
    ip = Column(String(64), nullable=True)

    # Ids, amounts and changed fields of the action
    meta = Column(JSON, nullable=True)
