"""Tarefa service — task CRUD, free-form moves, comments, activity log.

Title, description and comment text are sanitized with bleach.clean() to
strip HTML tags. Moves are free-form: any status of the task's board's
default workflow is a valid target, with or without a transition edge.

Functions flush but do NOT commit — the caller commits.
"""

import html
import logging

import bleach

from workboard.errors import InvalidInput, InvalidOperation, NotFound
from workboard.extensions import db
from workboard.models.board import Board, WorkflowStatus
from workboard.models.project import Project
from workboard.models.sprint import Sprint
from workboard.models.tarefa import Tarefa, TarefaActivity, TarefaComment
from workboard.services import sequence_service, workflow_service

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 180

UPDATABLE_FIELDS = (
    "title",
    "description",
    "type",
    "priority",
    "assignee_id",
    "epic_id",
    "sprint_id",
    "labels",
    "status_id",
)


def sanitize(text):
    """Strip all HTML tags from user input, keeping plain text as typed."""
    if text is None:
        return text
    cleaned = bleach.clean(str(text), tags=[], strip=True)
    return html.unescape(cleaned).strip()


def coerce_type(value):
    """Upper-cased task type, or TASK when absent/unknown."""
    candidate = str(value or "").strip().upper()
    return candidate if candidate in Tarefa.TYPES else "TASK"


def coerce_priority(value):
    """Upper-cased priority, or MEDIUM when absent/unknown."""
    candidate = str(value or "").strip().upper()
    return candidate if candidate in Tarefa.PRIORITIES else "MEDIUM"


def clean_labels(labels):
    """Unique, trimmed string labels in first-seen order."""
    if not isinstance(labels, (list, tuple, set)):
        return []
    result = []
    for label in labels:
        if not isinstance(label, str):
            continue
        label = sanitize(label)
        if label and label not in result:
            result.append(label)
    return result


def _clean_title(title):
    title = sanitize(title)
    if not title:
        raise InvalidInput("Title is required.")
    return title[:MAX_TITLE_LENGTH]


def log_activity(tarefa_id, user_id, action, field_name=None,
                  old_value=None, new_value=None, metadata=None):
    entry = TarefaActivity(
        tarefa_id=tarefa_id,
        user_id=user_id,
        action=action,
        field_name=field_name,
        old_value=None if old_value is None else str(old_value),
        new_value=None if new_value is None else str(new_value),
        metadata_=metadata or {},
    )
    db.session.add(entry)
    return entry


# ─── Validation helpers ──────────────────────────────────────────

def _check_epic(project_id, epic_id, tarefa_id=None):
    if epic_id is None:
        return None
    epic = db.session.get(Tarefa, epic_id)
    if epic is None or epic.project_id != project_id:
        raise NotFound(f"Epic {epic_id} not found.")
    if epic.type != "EPIC":
        raise InvalidOperation(f"{epic.key} is not an epic.")
    if tarefa_id is not None and epic.id == tarefa_id:
        raise InvalidOperation("A task cannot be its own epic.")
    return epic


def _check_sprint(project_id, sprint_id):
    if sprint_id is None:
        return None
    sprint = db.session.get(Sprint, sprint_id)
    if sprint is None or sprint.project_id != project_id:
        raise NotFound(f"Sprint {sprint_id} not found.")
    if sprint.state == "COMPLETED":
        raise InvalidOperation(f"Sprint '{sprint.name}' is already completed.")
    return sprint


def _check_status(tarefa_board_id, status_id):
    """Resolve a status of the board's default workflow or refuse the move."""
    if tarefa_board_id is None:
        raise InvalidOperation("Task is not on a board; it has no columns to move to.")
    status = workflow_service.get_board_status(tarefa_board_id, status_id)
    if status is None:
        raise InvalidOperation(
            f"Status {status_id} is not part of this board's workflow."
        )
    return status


# ─── CRUD ────────────────────────────────────────────────────────

def get_tarefa(tarefa_id):
    tarefa = db.session.get(Tarefa, tarefa_id)
    if tarefa is None:
        raise NotFound(f"Tarefa {tarefa_id} not found.")
    return tarefa


def create_tarefa(project_id, actor_id, title, board_id=None, tarefa_type=None,
                  description=None, priority=None, status_id=None,
                  assignee_id=None, epic_id=None, sprint_id=None, labels=None):
    """Create a task with the next project key.

    Args:
        project_id: Owning project UUID string.
        actor_id: Reporter / user creating the task.
        title: Task title (sanitized, required, truncated to 180 chars).
        board_id: Optional board; tasks without a board live only in the backlog.
        tarefa_type: One of Tarefa.TYPES, anything else becomes TASK.
        description: Optional description (sanitized).
        priority: One of Tarefa.PRIORITIES, anything else becomes MEDIUM.
        status_id: Target column; defaults to the board's initial status.
        assignee_id, epic_id, sprint_id: Optional references.
        labels: Iterable of strings (deduplicated).

    Returns:
        The created Tarefa.

    Raises:
        NotFound: If the project, board, epic or sprint is missing.
        InvalidInput: If the title is empty.
        InvalidOperation: If status_id is not a column of the board.
    """
    if db.session.get(Project, project_id) is None:
        raise NotFound(f"Project {project_id} not found.")

    title = _clean_title(title)
    description = sanitize(description) or None

    status = None
    if board_id is not None:
        board = db.session.get(Board, board_id)
        if board is None or board.project_id != project_id:
            raise NotFound(f"Board {board_id} not found.")
        if status_id is not None:
            status = _check_status(board.id, status_id)
        else:
            data = workflow_service.ensure_workflow_and_statuses(board.id)
            status = workflow_service.get_initial_status(data["statuses"])
    elif status_id is not None:
        raise InvalidOperation("A status requires a board.")

    _check_epic(project_id, epic_id)
    _check_sprint(project_id, sprint_id)

    key = sequence_service.next_key(project_id)

    tarefa = Tarefa(
        project_id=project_id,
        board_id=board_id,
        key=key,
        type=coerce_type(tarefa_type),
        title=title,
        description=description,
        status_id=status.id if status else None,
        priority=coerce_priority(priority),
        assignee_id=assignee_id,
        reporter_id=actor_id,
        epic_id=epic_id,
        sprint_id=sprint_id,
        labels=clean_labels(labels),
    )
    db.session.add(tarefa)
    db.session.flush()

    log_activity(tarefa.id, actor_id, "created", new_value=title)
    db.session.flush()

    logger.info(f"Created tarefa {tarefa.key} in project {project_id}")
    return tarefa


def move_tarefa(tarefa_id, to_status_id, actor_id=None):
    """Put the task in any column of its board's workflow.

    No transition edge is required. Moving to the current column is a
    no-op, so retries are harmless.

    Raises:
        NotFound: If the task is missing.
        InvalidOperation: If the status is outside the board's workflow.
    """
    tarefa = get_tarefa(tarefa_id)
    status = _check_status(tarefa.board_id, to_status_id)

    if tarefa.status_id == status.id:
        return tarefa

    old_status = db.session.get(WorkflowStatus, tarefa.status_id) if tarefa.status_id else None
    tarefa.status_id = status.id
    db.session.flush()

    log_activity(
        tarefa.id,
        actor_id,
        "updated",
        field_name="status",
        old_value=old_status.name if old_status else None,
        new_value=status.name,
    )
    db.session.flush()
    return tarefa


def update_tarefa(tarefa_id, changes, actor_id=None):
    """Patch task fields; one activity entry per field that actually changed.

    Args:
        tarefa_id: Task UUID string.
        changes: dict restricted to UPDATABLE_FIELDS.
        actor_id: User performing the change.

    Returns:
        The updated Tarefa.

    Raises:
        InvalidInput: On unknown fields or an empty title.
        NotFound / InvalidOperation: On bad epic, sprint or status references.
    """
    if not isinstance(changes, dict):
        raise InvalidInput("Expected an object of fields to update.")
    unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
    if unknown:
        raise InvalidInput(f"Cannot update field(s): {', '.join(unknown)}")

    tarefa = get_tarefa(tarefa_id)

    if "status_id" in changes:
        move_tarefa(tarefa.id, changes["status_id"], actor_id)

    new_values = {}
    if "title" in changes:
        new_values["title"] = _clean_title(changes["title"])
    if "description" in changes:
        new_values["description"] = sanitize(changes["description"]) or None
    if "type" in changes:
        new_values["type"] = coerce_type(changes["type"])
    if "priority" in changes:
        new_values["priority"] = coerce_priority(changes["priority"])
    if "assignee_id" in changes:
        new_values["assignee_id"] = changes["assignee_id"] or None
    if "epic_id" in changes:
        epic_id = changes["epic_id"] or None
        _check_epic(tarefa.project_id, epic_id, tarefa_id=tarefa.id)
        new_values["epic_id"] = epic_id
    if "sprint_id" in changes:
        sprint_id = changes["sprint_id"] or None
        _check_sprint(tarefa.project_id, sprint_id)
        new_values["sprint_id"] = sprint_id
    if "labels" in changes:
        new_values["labels"] = clean_labels(changes["labels"])

    for field, new_value in new_values.items():
        old_value = getattr(tarefa, field)
        if old_value == new_value:
            continue
        setattr(tarefa, field, new_value)
        log_activity(
            tarefa.id,
            actor_id,
            "updated",
            field_name=field,
            old_value=", ".join(old_value or []) if field == "labels" else old_value,
            new_value=", ".join(new_value) if field == "labels" else new_value,
        )

    db.session.flush()
    return tarefa


def delete_tarefa(tarefa_id, actor_id=None):
    """Delete a task. Its key is never reissued."""
    tarefa = get_tarefa(tarefa_id)
    key = tarefa.key

    # Epic links are weak references
    Tarefa.query.filter_by(epic_id=tarefa.id).update({"epic_id": None})
    db.session.delete(tarefa)
    db.session.flush()

    logger.info(f"Deleted tarefa {key} (by {actor_id})")


def list_tarefas(project_id, board_id=None):
    """Tasks of a project (optionally one board), backlog order first."""
    query = Tarefa.query.filter_by(project_id=project_id)
    if board_id:
        query = query.filter_by(board_id=board_id)
    return query.order_by(
        Tarefa.backlog_order.is_(None),
        Tarefa.backlog_order,
        Tarefa.created_at.desc(),
    ).all()


# ─── Comments & activity ─────────────────────────────────────────

def add_comment(tarefa_id, user_id, content):
    """Add a sanitized comment and log a 'commented' activity entry."""
    text = sanitize(content)
    if not text:
        raise InvalidInput("Comment cannot be empty.")

    tarefa = get_tarefa(tarefa_id)
    comment = TarefaComment(
        tarefa_id=tarefa.id,
        author_user_id=user_id,
        content=text,
    )
    db.session.add(comment)
    log_activity(tarefa.id, user_id, "commented")
    db.session.flush()
    return comment


def list_comments(tarefa_id):
    tarefa = get_tarefa(tarefa_id)
    return tarefa.comments.order_by(TarefaComment.created_at.asc()).all()


def list_activity(tarefa_id):
    """Activity log for a task, newest first."""
    tarefa = get_tarefa(tarefa_id)
    return tarefa.activity.order_by(None).order_by(TarefaActivity.created_at.desc()).all()
