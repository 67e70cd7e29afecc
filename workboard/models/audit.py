"""Audit event model.

Logs structural actions (boards created, columns merged, statuses
reordered or deleted, sprint transitions, plan imports) per project.
"""

import uuid

from workboard.extensions import db


class AuditEvent(db.Model):
    __tablename__ = "audit_events"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id"), nullable=True, index=True
    )
    actor_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )
    action = db.Column(db.String(255), nullable=False)  # e.g. "board.created"
    metadata_ = db.Column(
        "metadata", db.JSON, default=dict
    )  # extra context, named metadata_ to avoid Python builtin clash
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    project = db.relationship("Project", back_populates="audit_events")
    actor = db.relationship("User", back_populates="audit_events")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "actor_user_id": self.actor_user_id,
            "action": self.action,
            "metadata": self.metadata_ or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<AuditEvent {self.action}>"
