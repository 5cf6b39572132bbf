import json
import logging

from app.extensions import db
from app.models.user import ApiLog

logger = logging.getLogger(__name__)


def log_event(event_type, status, details, ip_address=None):
    """Central helper that writes an entry to the ApiLog audit trail."""
    try:
        log_entry = ApiLog(
            event_type=event_type,
            status=status,
            details=json.dumps(details, ensure_ascii=False, default=str),
            ip_address=ip_address
        )
        db.session.add(log_entry)
        db.session.commit()
    except Exception as e:
        logger.error('Failed to save audit log %r: %s', event_type, e)
        db.session.rollback()
