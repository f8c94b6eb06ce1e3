"""
Activity Logger Utility
Helper functions to record user actions and status changes in the audit tables
"""
from flask import request, has_request_context
from datetime import datetime
from mobility_pkg.models import db, ActivityLog, StatusHistory
from mobility_pkg.formatting import titleize
from logger_config import app_logger


def _client_ip():
    if not has_request_context():
        return None
    # Check for proxy headers (X-Forwarded-For, X-Real-IP) for accurate client IP
    if request.headers.get('X-Forwarded-For'):
        # X-Forwarded-For can contain multiple IPs, take the first one
        return request.headers.get('X-Forwarded-For').split(',')[0].strip()
    if request.headers.get('X-Real-IP'):
        return request.headers.get('X-Real-IP').strip()
    return request.remote_addr


def log_activity(
    user_id,
    user_type,
    action,
    action_type,
    entity_type=None,
    entity_id=None,
    details=None,
    ip_address=None,
    user_name=None
):
    """
    Log an activity performed by any user type

    Args:
        user_id: ID of the user performing the action
        user_type: Role of the user ('admin', 'service_provider', ...)
        action: Human-readable action description
        action_type: Type of action ('checkout', 'settlement', 'user_toggle', etc.)
        entity_type: Type of entity the action was performed on
        entity_id: ID of the entity
        details: Additional context or notes
        ip_address: IP address of the user (taken from the request if not provided)
        user_name: Display name; falls back to "<user_type> #<id>"

    Returns:
        ActivityLog: The created activity log entry, or None if it could not be stored
    """
    try:
        activity_log = ActivityLog(
            user_id=str(user_id) if user_id is not None else None,
            user_type=user_type,
            user_name=user_name or f"{user_type} #{user_id}",
            action=action,
            action_type=action_type,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            details=details,
            ip_address=ip_address or _client_ip(),
            timestamp=datetime.utcnow()
        )

        db.session.add(activity_log)
        db.session.commit()

        return activity_log

    except Exception as e:
        # Log error but don't fail the main operation
        app_logger.exception(f"Failed to log activity: {e}")
        db.session.rollback()
        return None


def log_activity_for_user(user, action, action_type, entity_type=None, entity_id=None, details=None):
    """Convenience wrapper taking the authenticated user dict"""
    user = user or {}
    return log_activity(
        user_id=user.get('id'),
        user_type=user.get('user_type') or 'unknown',
        action=action,
        action_type=action_type,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        user_name=user.get('full_name') or user.get('email')
    )


def record_status_change(entity_type, entity_id, from_status, to_status, action, actor, notes=None):
    """
    Write one StatusHistory row for an applied transition

    Returns:
        StatusHistory: The stored row, or None if it could not be stored
    """
    actor = actor or {}
    try:
        history = StatusHistory(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action,
            from_status=from_status,
            to_status=to_status,
            status_label=titleize(to_status),
            changed_by_type=actor.get('user_type') or 'system',
            changed_by_id=str(actor['id']) if actor.get('id') is not None else None,
            notes=notes
        )
        db.session.add(history)
        db.session.commit()
        return history
    except Exception as e:
        app_logger.exception(f"Failed to record status change for {entity_type} {entity_id}: {e}")
        db.session.rollback()
        return None
