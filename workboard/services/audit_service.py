"""Audit helper — one AuditEvent row per structural action.

Flushes but does NOT commit — the caller commits.
"""

from workboard.extensions import db
from workboard.models.audit import AuditEvent


def record_event(project_id, actor_user_id, action, **metadata):
    """Add an AuditEvent to the current transaction and return it."""
    event = AuditEvent(
        project_id=project_id,
        actor_user_id=actor_user_id,
        action=action,
        metadata_=metadata,
    )
    db.session.add(event)
    db.session.flush()
    return event


def list_events(project_id, action=None, limit=50):
    """Most recent audit events for a project, newest first."""
    query = AuditEvent.query.filter_by(project_id=project_id)
    if action:
        query = query.filter_by(action=action)
    return query.order_by(AuditEvent.created_at.desc()).limit(limit).all()
