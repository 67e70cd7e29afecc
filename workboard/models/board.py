"""Board and workflow models.

- Board: a KANBAN or SCRUM board inside a project.
- Workflow: the board's column graph (one default workflow per board).
- WorkflowStatus: a column. Position is dense and zero-based; the
  initial/final flags are fixed when the status is created.
- WorkflowTransition: advisory directed edge between two statuses.
"""

import uuid
from datetime import datetime, timezone

from workboard.extensions import db


def _utcnow():
    return datetime.now(timezone.utc)


class Board(db.Model):
    __tablename__ = "boards"

    TYPES = ["KANBAN", "SCRUM"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id"), nullable=False, index=True
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(20), default="KANBAN", nullable=False)
    created_by = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=_utcnow,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    project = db.relationship("Project", back_populates="boards")
    workflows = db.relationship(
        "Workflow",
        back_populates="board",
        cascade="all, delete-orphan",
    )
    tarefas = db.relationship(
        "Tarefa",
        back_populates="board",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Board {self.name} ({self.type})>"


class Workflow(db.Model):
    __tablename__ = "workflows"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    board_id = db.Column(
        db.String(36),
        db.ForeignKey("boards.id", ondelete="CASCADE"),
        nullable=False,
    )
    name = db.Column(db.String(255), nullable=False, default="Default Workflow")
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    __table_args__ = (
        # At most one default workflow per board
        db.Index(
            "uq_workflows_board_default",
            "board_id",
            unique=True,
            postgresql_where=db.text("is_default"),
            sqlite_where=db.text("is_default = 1"),
        ),
    )

    # --- Relationships ---
    board = db.relationship("Board", back_populates="workflows")
    statuses = db.relationship(
        "WorkflowStatus",
        back_populates="workflow",
        cascade="all, delete-orphan",
        order_by="WorkflowStatus.position",
    )
    transitions = db.relationship(
        "WorkflowTransition",
        back_populates="workflow",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "board_id": self.board_id,
            "name": self.name,
            "is_default": self.is_default,
        }

    def __repr__(self):
        return f"<Workflow {self.name} board={self.board_id}>"


class WorkflowStatus(db.Model):
    __tablename__ = "workflow_statuses"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    workflow_id = db.Column(
        db.String(36),
        db.ForeignKey("workflows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(100), nullable=False)
    name_key = db.Column(db.String(100), nullable=False)  # normalized name
    color = db.Column(db.String(7), nullable=False, default="#6B7280")
    position = db.Column(db.Integer, nullable=False, default=0)
    is_initial = db.Column(db.Boolean, nullable=False, default=False)
    is_final = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    __table_args__ = (
        db.UniqueConstraint(
            "workflow_id", "name_key", name="uq_workflow_status_name"
        ),
    )

    # --- Relationships ---
    workflow = db.relationship("Workflow", back_populates="statuses")

    def to_dict(self):
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "name": self.name,
            "color": self.color,
            "position": self.position,
            "is_initial": self.is_initial,
            "is_final": self.is_final,
        }

    def __repr__(self):
        return f"<WorkflowStatus {self.name} @{self.position}>"


class WorkflowTransition(db.Model):
    __tablename__ = "workflow_transitions"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    workflow_id = db.Column(
        db.String(36),
        db.ForeignKey("workflows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_status_id = db.Column(
        db.String(36),
        db.ForeignKey("workflow_statuses.id", ondelete="CASCADE"),
        nullable=False,
    )
    to_status_id = db.Column(
        db.String(36),
        db.ForeignKey("workflow_statuses.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    __table_args__ = (
        db.UniqueConstraint(
            "workflow_id", "from_status_id", "to_status_id",
            name="uq_workflow_transition_edge",
        ),
    )

    # --- Relationships ---
    workflow = db.relationship("Workflow", back_populates="transitions")
    from_status = db.relationship("WorkflowStatus", foreign_keys=[from_status_id])
    to_status = db.relationship("WorkflowStatus", foreign_keys=[to_status_id])

    def to_dict(self):
        return {
            "from_status_id": self.from_status_id,
            "to_status_id": self.to_status_id,
        }

    def __repr__(self):
        return f"<WorkflowTransition {self.from_status_id} -> {self.to_status_id}>"
