"""Sprint model.

Lifecycle is strictly forward: PLANNED -> ACTIVE -> COMPLETED.
Transitions are enforced in sprint_service.
"""

import uuid

from workboard.extensions import db


class Sprint(db.Model):
    __tablename__ = "sprints"

    # -- Valid states --
    STATES = ["PLANNED", "ACTIVE", "COMPLETED"]

    # -- Valid state transitions (enforced in sprint_service) --
    VALID_TRANSITIONS = {
        "PLANNED": ["ACTIVE"],
        "ACTIVE": ["COMPLETED"],
    }

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id"), nullable=False, index=True
    )
    board_id = db.Column(
        db.String(36),
        db.ForeignKey("boards.id", ondelete="SET NULL"),
        nullable=True,
    )
    name = db.Column(db.String(255), nullable=False)
    goal = db.Column(db.Text, nullable=True)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    state = db.Column(
        db.String(20), default="PLANNED", nullable=False
    )  # PLANNED | ACTIVE | COMPLETED
    created_by = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __table_args__ = (
        # At most one ACTIVE sprint per board
        db.Index(
            "uq_sprints_board_active",
            "board_id",
            unique=True,
            postgresql_where=db.text("state = 'ACTIVE'"),
            sqlite_where=db.text("state = 'ACTIVE'"),
        ),
    )

    # --- Relationships ---
    tarefas = db.relationship(
        "Tarefa", back_populates="sprint", lazy="dynamic"
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "board_id": self.board_id,
            "name": self.name,
            "goal": self.goal,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "state": self.state,
        }

    def __repr__(self):
        return f"<Sprint {self.name} ({self.state})>"
