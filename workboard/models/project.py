"""Project models.

- Project: the tenant container for boards, tasks and sprints.
- ProjectMember: join table linking users to projects with a role.
- ProjectSequence: per-project counter behind human-readable task keys.
"""

import uuid

from workboard.extensions import db


class Project(db.Model):
    __tablename__ = "projects"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(50), unique=True, nullable=False)  # key prefix
    created_by = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    members = db.relationship(
        "ProjectMember",
        back_populates="project",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    sequence = db.relationship(
        "ProjectSequence",
        back_populates="project",
        uselist=False,
        cascade="all, delete-orphan",
    )
    boards = db.relationship(
        "Board", back_populates="project", lazy="dynamic"
    )
    audit_events = db.relationship(
        "AuditEvent", back_populates="project", lazy="dynamic"
    )

    def __repr__(self):
        return f"<Project {self.slug}>"


class ProjectMember(db.Model):
    __tablename__ = "project_members"

    # -- Valid roles, most privileged first --
    ROLES = ["admin", "tech_lead", "developer", "viewer"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id"), nullable=False
    )
    role = db.Column(db.String(50), default="developer", nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "project_id", name="uq_user_project"
        ),
    )

    # --- Relationships ---
    user = db.relationship("User", back_populates="project_memberships")
    project = db.relationship("Project", back_populates="members")

    def __repr__(self):
        return f"<ProjectMember user={self.user_id} project={self.project_id} ({self.role})>"


class ProjectSequence(db.Model):
    """Monotonic counter; only ever incremented through sequence_service."""

    __tablename__ = "project_sequences"

    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        primary_key=True,
    )
    last_sequence = db.Column(db.Integer, nullable=False, default=0)

    project = db.relationship("Project", back_populates="sequence")

    def __repr__(self):
        return f"<ProjectSequence project={self.project_id} last={self.last_sequence}>"
