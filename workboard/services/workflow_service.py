"""Workflow service — boards, columns (statuses) and the transition chain.

Column names are matched case/whitespace-insensitively through
normalize_label(). Transitions are additive: any operation that makes two
statuses adjacent adds the missing edge between them, and no operation
removes an edge except deleting one of its statuses.

The initial/final flags are set once, when a board is created, and are
not recomputed by later reorders or merges.

Functions flush but do NOT commit — the caller commits.
"""

import logging
import re

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from workboard.errors import Conflict, InvalidInput, InvalidOperation, NotFound
from workboard.extensions import db
from workboard.models.board import (
    Board,
    Workflow,
    WorkflowStatus,
    WorkflowTransition,
)
from workboard.models.project import Project
from workboard.models.sprint import Sprint
from workboard.models.tarefa import Tarefa
from workboard.services.audit_service import record_event

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = ["To Do", "In Progress", "Done"]
STATUS_PALETTE = ["#6B7280", "#3B82F6", "#A855F7", "#F59E0B", "#10B981", "#EF4444"]
MAX_STATUS_NAME = 100

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def normalize_label(value):
    """Comparison key for column and board names: trimmed, lowercased."""
    return (value or "").strip().lower()


def dedupe_columns(names):
    """Trim names, drop empties and non-strings, keep the first spelling seen."""
    result = []
    seen = set()
    for name in names or []:
        if not isinstance(name, str):
            continue
        trimmed = name.strip()[:MAX_STATUS_NAME]
        key = normalize_label(trimmed)
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(trimmed)
    return result


def palette_color(position):
    return STATUS_PALETTE[position % len(STATUS_PALETTE)]


# ─── Lookups ─────────────────────────────────────────────────────

def get_board(board_id):
    board = db.session.get(Board, board_id)
    if board is None:
        raise NotFound(f"Board {board_id} not found.")
    return board


def list_boards(project_id):
    """Boards of a project, most recently created first (ties broken by id)."""
    return (
        Board.query
        .filter_by(project_id=project_id)
        .order_by(Board.created_at.desc(), Board.id.desc())
        .all()
    )


def get_workflow(workflow_id):
    workflow = db.session.get(Workflow, workflow_id)
    if workflow is None:
        raise NotFound(f"Workflow {workflow_id} not found.")
    return workflow


def get_default_workflow(board_id):
    """The board's default workflow, or None."""
    return Workflow.query.filter_by(board_id=board_id, is_default=True).first()


def ordered_statuses(workflow_id):
    return (
        WorkflowStatus.query
        .filter_by(workflow_id=workflow_id)
        .order_by(WorkflowStatus.position, WorkflowStatus.created_at)
        .all()
    )


def list_transitions(workflow_id):
    return WorkflowTransition.query.filter_by(workflow_id=workflow_id).all()


def get_initial_status(statuses):
    """The status flagged initial, else the leftmost one, else None."""
    for status in statuses:
        if status.is_initial:
            return status
    return min(statuses, key=lambda s: s.position) if statuses else None


def get_board_status(board_id, status_id):
    """Return the status if it belongs to the board's default workflow, else None."""
    workflow = get_default_workflow(board_id)
    if workflow is None or status_id is None:
        return None
    return WorkflowStatus.query.filter_by(
        id=status_id, workflow_id=workflow.id
    ).first()


def _get_status(workflow_id, status_id):
    status = WorkflowStatus.query.filter_by(
        id=status_id, workflow_id=workflow_id
    ).first()
    if status is None:
        raise NotFound(f"Status {status_id} not found in workflow {workflow_id}.")
    return status


def _lock_workflow(workflow_id):
    """Load the workflow row FOR UPDATE, serializing structural edits on it.

    SQLite ignores the lock clause; its database-level write lock already
    serializes writers.
    """
    workflow = (
        Workflow.query
        .filter_by(id=workflow_id)
        .with_for_update()
        .first()
    )
    if workflow is None:
        raise NotFound(f"Workflow {workflow_id} not found.")
    return workflow


def _project_id_for(workflow):
    return workflow.board.project_id if workflow.board else None


# ─── Transition chain ────────────────────────────────────────────

def extend_transition_chain(workflow_id, statuses=None):
    """Add missing edges between consecutive statuses. Never removes edges.

    Returns the list of WorkflowTransition rows that were added.
    """
    if statuses is None:
        statuses = ordered_statuses(workflow_id)

    existing = {
        (t.from_status_id, t.to_status_id) for t in list_transitions(workflow_id)
    }
    added = []
    for current, following in zip(statuses, statuses[1:]):
        edge = (current.id, following.id)
        if edge in existing:
            continue
        transition = WorkflowTransition(
            workflow_id=workflow_id,
            from_status_id=current.id,
            to_status_id=following.id,
        )
        db.session.add(transition)
        existing.add(edge)
        added.append(transition)

    if added:
        db.session.flush()
    return added


# ─── Boards ──────────────────────────────────────────────────────

def create_board_with_workflow(project_id, name, board_type=None, column_names=None,
                               actor_id=None, description=None):
    """Create a board, its default workflow, statuses and linear chain.

    Args:
        project_id: Owning project UUID string.
        name: Board name (required).
        board_type: "KANBAN" or "SCRUM"; anything else becomes "KANBAN".
        column_names: Ordered column names; empty/None means DEFAULT_COLUMNS.
        actor_id: User creating the board.
        description: Optional board description.

    Returns:
        dict with "board", "workflow" and the position-ordered "statuses".

    Raises:
        NotFound: If the project does not exist.
        InvalidInput: If the name is empty.
    """
    if db.session.get(Project, project_id) is None:
        raise NotFound(f"Project {project_id} not found.")

    name = (name or "").strip()
    if not name:
        raise InvalidInput("Board name is required.")

    board_type = (board_type or "").upper()
    if board_type not in Board.TYPES:
        board_type = "KANBAN"

    columns = dedupe_columns(column_names) or list(DEFAULT_COLUMNS)

    board = Board(
        project_id=project_id,
        name=name[:255],
        description=description,
        type=board_type,
        created_by=actor_id,
    )
    db.session.add(board)
    db.session.flush()

    workflow = Workflow(board_id=board.id, name="Default Workflow", is_default=True)
    db.session.add(workflow)
    db.session.flush()

    last = len(columns) - 1
    statuses = []
    for index, column in enumerate(columns):
        status = WorkflowStatus(
            workflow_id=workflow.id,
            name=column,
            name_key=normalize_label(column),
            color=palette_color(index),
            position=index,
            is_initial=index == 0,
            is_final=index == last,
        )
        db.session.add(status)
        statuses.append(status)
    db.session.flush()

    extend_transition_chain(workflow.id, statuses)

    record_event(
        project_id,
        actor_id,
        "board.created",
        board_id=board.id,
        board_name=board.name,
        columns=columns,
    )
    logger.info(
        f"Created board {board.id} ({board.name}) with {len(statuses)} columns "
        f"for project {project_id}"
    )
    return {"board": board, "workflow": workflow, "statuses": statuses}


def update_board(board_id, name=None, board_type=None, description=None):
    """Partial update of a board's name, type or description."""
    board = get_board(board_id)

    if name is not None:
        name = name.strip()
        if not name:
            raise InvalidInput("Board name cannot be empty.")
        board.name = name[:255]
    if board_type is not None:
        board_type = board_type.upper()
        if board_type not in Board.TYPES:
            raise InvalidInput(
                f"Invalid board type '{board_type}'. Must be one of: {', '.join(Board.TYPES)}"
            )
        board.type = board_type
    if description is not None:
        board.description = description

    db.session.flush()
    return board


def delete_board(board_id, actor_id=None):
    """Delete a board together with its workflow, statuses and tasks."""
    board = get_board(board_id)
    project_id = board.project_id
    name = board.name

    # Sprints outlive their board and fall back to the project level
    Sprint.query.filter_by(board_id=board_id).update({"board_id": None})
    db.session.delete(board)
    db.session.flush()

    record_event(project_id, actor_id, "board.deleted", board_id=board_id, board_name=name)
    logger.info(f"Deleted board {board_id} ({name})")


# ─── Workflows ───────────────────────────────────────────────────

def ensure_workflow_and_statuses(board_id):
    """Return the board's default workflow and its ordered statuses.

    Never creates a workflow for a board that lacks one.

    Raises:
        NotFound: If the board or its default workflow is missing.
    """
    get_board(board_id)
    workflow = get_default_workflow(board_id)
    if workflow is None:
        raise NotFound(f"Board {board_id}: workflow missing.")
    return {"workflow": workflow, "statuses": ordered_statuses(workflow.id)}


def merge_columns(workflow_id, desired_names, actor_id=None):
    """Append every desired column that does not exist yet.

    Existing statuses are never renamed, reordered or removed. New statuses
    go after the current last position with both boundary flags off.

    Returns:
        The full position-ordered status list after the merge.

    Raises:
        NotFound: If the workflow does not exist.
        Conflict: If a concurrent merge inserted the same column first.
    """
    workflow = _lock_workflow(workflow_id)
    statuses = ordered_statuses(workflow.id)

    existing = {s.name_key for s in statuses}
    max_position = max((s.position for s in statuses), default=-1)

    created = []
    for column in dedupe_columns(desired_names):
        key = normalize_label(column)
        if key in existing:
            continue
        max_position += 1
        status = WorkflowStatus(
            workflow_id=workflow.id,
            name=column,
            name_key=key,
            color=palette_color(max_position),
            position=max_position,
            is_initial=False,
            is_final=False,
        )
        db.session.add(status)
        existing.add(key)
        created.append(status)

    if created:
        try:
            db.session.flush()
        except IntegrityError as e:
            logger.warning(f"Column merge race on workflow {workflow.id}: {e.orig}")
            raise Conflict(
                "Another change added the same column concurrently. Retry the merge."
            ) from e

    statuses = ordered_statuses(workflow.id)
    added_edges = extend_transition_chain(workflow.id, statuses)

    if created or added_edges:
        record_event(
            _project_id_for(workflow),
            actor_id,
            "workflow.columns_merged",
            workflow_id=workflow.id,
            created=[s.name for s in created],
            transitions_added=len(added_edges),
        )
        logger.info(
            f"Merged columns into workflow {workflow.id}: "
            f"{len(created)} new, {len(added_edges)} new transitions"
        )
    return statuses


def create_status(workflow_id, name, color=None, actor_id=None):
    """Append a single, explicitly named column to the workflow.

    Raises:
        InvalidInput: If the name is empty or the color is malformed.
        Conflict: If a column with the same normalized name exists.
    """
    name = (name or "").strip()[:MAX_STATUS_NAME]
    if not name:
        raise InvalidInput("Status name is required.")
    if color is not None and not _HEX_COLOR.match(color):
        raise InvalidInput(f"Invalid color '{color}'. Use #RRGGBB.")

    workflow = _lock_workflow(workflow_id)
    statuses = ordered_statuses(workflow.id)
    key = normalize_label(name)
    if any(s.name_key == key for s in statuses):
        raise Conflict(f"A column named '{name}' already exists.")

    position = max((s.position for s in statuses), default=-1) + 1
    status = WorkflowStatus(
        workflow_id=workflow.id,
        name=name,
        name_key=key,
        color=color or palette_color(position),
        position=position,
        is_initial=False,
        is_final=False,
    )
    db.session.add(status)
    try:
        db.session.flush()
    except IntegrityError as e:
        raise Conflict(f"A column named '{name}' already exists.") from e

    extend_transition_chain(workflow.id, statuses + [status])

    record_event(
        _project_id_for(workflow),
        actor_id,
        "status.created",
        workflow_id=workflow.id,
        status_id=status.id,
        name=name,
    )
    return status


def reorder_statuses(workflow_id, ordered_status_ids, actor_id=None):
    """Renumber positions densely (0..n-1) to follow the given order.

    Ids that no longer belong to the workflow are ignored and repeated ids
    count once, so a caller with a stale cached ordering cannot corrupt
    positions. Statuses the caller left out keep their relative order after
    the supplied ones. Boundary flags are untouched; edges between newly
    adjacent statuses are added, stale edges stay.

    Returns:
        The statuses in their new order.
    """
    if not isinstance(ordered_status_ids, (list, tuple)) or not ordered_status_ids:
        raise InvalidInput("ordered_status_ids must be a non-empty list.")

    workflow = _lock_workflow(workflow_id)
    statuses = ordered_statuses(workflow.id)
    by_id = {s.id: s for s in statuses}

    requested = []
    seen = set()
    for status_id in ordered_status_ids:
        if status_id in by_id and status_id not in seen:
            seen.add(status_id)
            requested.append(by_id[status_id])

    if not requested:
        raise InvalidInput("None of the given statuses belong to this workflow.")

    new_order = requested + [s for s in statuses if s.id not in seen]
    for index, status in enumerate(new_order):
        status.position = index
    db.session.flush()

    added_edges = extend_transition_chain(workflow.id, new_order)

    record_event(
        _project_id_for(workflow),
        actor_id,
        "workflow.statuses_reordered",
        workflow_id=workflow.id,
        order=[s.id for s in new_order],
        transitions_added=len(added_edges),
    )
    return new_order


def update_status(workflow_id, status_id, name=None, color=None):
    """Partial update of a status's name and/or color."""
    status = _get_status(workflow_id, status_id)

    if name is not None:
        name = name.strip()[:MAX_STATUS_NAME]
        if not name:
            raise InvalidInput("Status name cannot be empty.")
        key = normalize_label(name)
        clash = (
            WorkflowStatus.query
            .filter(
                WorkflowStatus.workflow_id == workflow_id,
                WorkflowStatus.name_key == key,
                WorkflowStatus.id != status.id,
            )
            .first()
        )
        if clash is not None:
            raise Conflict(f"A column named '{name}' already exists.")
        status.name = name
        status.name_key = key

    if color is not None:
        if not _HEX_COLOR.match(color):
            raise InvalidInput(f"Invalid color '{color}'. Use #RRGGBB.")
        status.color = color

    db.session.flush()
    return status


def delete_status(workflow_id, status_id, actor_id=None):
    """Delete a non-boundary status that no task references.

    Removes the status's transitions, closes the position gap and links
    the statuses that become adjacent.

    Raises:
        NotFound: If the status is not part of the workflow.
        InvalidOperation: If the status is initial/final or still has tasks.
    """
    workflow = _lock_workflow(workflow_id)
    status = _get_status(workflow.id, status_id)

    if status.is_initial or status.is_final:
        logger.warning(f"Refused to delete boundary status {status.id} ({status.name})")
        raise InvalidOperation(
            f"Cannot delete '{status.name}': initial and final columns are permanent."
        )

    in_use = Tarefa.query.filter_by(status_id=status.id).first()
    if in_use is not None:
        raise InvalidOperation(
            f"Cannot delete '{status.name}' while tasks are in it. Move them first."
        )

    name = status.name
    WorkflowTransition.query.filter(
        WorkflowTransition.workflow_id == workflow.id,
        or_(
            WorkflowTransition.from_status_id == status.id,
            WorkflowTransition.to_status_id == status.id,
        ),
    ).delete(synchronize_session="fetch")
    db.session.delete(status)
    db.session.flush()

    remaining = ordered_statuses(workflow.id)
    for index, remaining_status in enumerate(remaining):
        remaining_status.position = index
    db.session.flush()
    extend_transition_chain(workflow.id, remaining)

    record_event(
        _project_id_for(workflow),
        actor_id,
        "status.deleted",
        workflow_id=workflow.id,
        status_id=status_id,
        name=name,
    )
    logger.info(f"Deleted status {status_id} ({name}) from workflow {workflow.id}")
