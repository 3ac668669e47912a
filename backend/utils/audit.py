# backend/utils/audit.py
import logging
from sqlalchemy.orm import Session
from models.log import Log

logger = logging.getLogger(__name__)

# Append an audit row; call after the business transaction has been committed
def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", ip=None, meta=None):
    entry = Log(user_id=user_id, action=action, resource=resource, status=status, ip=ip, meta=meta or {})
    db.add(entry)
    db.commit()
    logger.info("%s %s %s user=%s meta=%s", resource, action, status, user_id, meta or {})
