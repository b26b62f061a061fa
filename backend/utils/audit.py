# utils/audit.py
import logging
from sqlalchemy.orm import Session
from models.log import AUDIT_SUCCESS, Log

logger = logging.getLogger(__name__)


# Audit entries are committed on their own, after the change they describe
def write_log(db: Session, *, user_id, action, resource, status=AUDIT_SUCCESS, ip=None, meta=None):
    entry = Log(user_id=user_id, action=action, resource=resource, status=status, ip=ip, meta=meta or {})
    db.add(entry)
    db.commit()
    logger.debug("audit %s %s %s user=%s", action, resource, status, user_id)


def client_ip(request):
    return request.client.host if request and request.client else None
