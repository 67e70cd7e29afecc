"""Task models.

- Tarefa: a work item (epic, story, task, subtask or bug) with an
  immutable SLUG-N key.
- TarefaActivity: per-task activity log (created, field changes, comments).
- TarefaComment: discussion thread on a task.
"""

import uuid

from workboard.extensions import db


class Tarefa(db.Model):
    __tablename__ = "tarefas"

    # -- Valid types and priorities (coerced in tarefa_service) --
    TYPES = ["EPIC", "TASK", "SUBTASK", "BUG", "STORY"]
    PRIORITIES = ["LOWEST", "LOW", "MEDIUM", "HIGH", "HIGHEST"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id"), nullable=False
    )
    board_id = db.Column(
        db.String(36),
        db.ForeignKey("boards.id", ondelete="CASCADE"),
        nullable=True,
    )
    key = db.Column(db.String(60), nullable=False)
    type = db.Column(db.String(20), default="TASK", nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status_id = db.Column(
        db.String(36), db.ForeignKey("workflow_statuses.id"), nullable=True
    )
    priority = db.Column(db.String(20), default="MEDIUM", nullable=False)
    assignee_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )
    reporter_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )
    epic_id = db.Column(
        db.String(36),
        db.ForeignKey("tarefas.id", ondelete="SET NULL"),
        nullable=True,
    )
    sprint_id = db.Column(
        db.String(36),
        db.ForeignKey("sprints.id", ondelete="SET NULL"),
        nullable=True,
    )
    labels = db.Column(db.JSON, default=list)
    backlog_order = db.Column(db.Integer, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __table_args__ = (
        db.UniqueConstraint("project_id", "key", name="uq_tarefa_project_key"),
        db.Index("ix_tarefas_project_sprint", "project_id", "sprint_id"),
        db.Index("ix_tarefas_status_id", "status_id"),
    )

    # --- Relationships ---
    board = db.relationship("Board", back_populates="tarefas")
    status = db.relationship("WorkflowStatus")
    sprint = db.relationship("Sprint", back_populates="tarefas")
    epic = db.relationship("Tarefa", remote_side=[id])
    activity = db.relationship(
        "TarefaActivity",
        back_populates="tarefa",
        lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="TarefaActivity.created_at",
    )
    comments = db.relationship(
        "TarefaComment",
        back_populates="tarefa",
        lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="TarefaComment.created_at",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "board_id": self.board_id,
            "key": self.key,
            "type": self.type,
            "title": self.title,
            "description": self.description or "",
            "status_id": self.status_id,
            "priority": self.priority,
            "assignee_id": self.assignee_id,
            "reporter_id": self.reporter_id,
            "epic_id": self.epic_id,
            "sprint_id": self.sprint_id,
            "labels": list(self.labels or []),
            "backlog_order": self.backlog_order,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Tarefa {self.key} {self.title[:30]}>"


class TarefaActivity(db.Model):
    __tablename__ = "tarefa_activity_log"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    tarefa_id = db.Column(
        db.String(36),
        db.ForeignKey("tarefas.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )
    action = db.Column(db.String(50), nullable=False)  # created | updated | commented | ...
    field_name = db.Column(db.String(50), nullable=True)
    old_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)
    metadata_ = db.Column(
        "metadata", db.JSON, default=dict
    )  # named metadata_ to avoid the declarative attribute clash
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    tarefa = db.relationship("Tarefa", back_populates="activity")

    def to_dict(self):
        return {
            "id": self.id,
            "tarefa_id": self.tarefa_id,
            "user_id": self.user_id,
            "action": self.action,
            "field_name": self.field_name,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "metadata": self.metadata_ or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<TarefaActivity {self.action} {self.field_name or ''}>"


class TarefaComment(db.Model):
    __tablename__ = "tarefa_comments"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    tarefa_id = db.Column(
        db.String(36),
        db.ForeignKey("tarefas.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    tarefa = db.relationship("Tarefa", back_populates="comments")
    author = db.relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "tarefa_id": self.tarefa_id,
            "author_user_id": self.author_user_id,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<TarefaComment tarefa={self.tarefa_id}>"
