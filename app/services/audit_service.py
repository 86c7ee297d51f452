# Best-effort audit trail for admin and system actions
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from app.extensions import db
from app.models import SystemAuditLog


def log_action(actor, message):
    """
    Record an audit entry.

    Called after the business transaction committed, so a failure here is
    logged and swallowed: it must never undo the change being audited.
    ``actor`` is a CurrentUser, or None for system-initiated actions.
    """
    admin_id = getattr(actor, "user_id", None)
    try:
        db.session.add(SystemAuditLog(admin_id=admin_id, action=message[:255]))
        db.session.commit()
        return True
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Audit Log Error: {e}")
        return False


def describe_actor(actor):
    if actor is None:
        return "System"
    return f"{actor.role.value.title()} #{actor.user_id}"
