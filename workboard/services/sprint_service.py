"""Sprint service — sprint lifecycle and the backlog/sprint partition.

Lifecycle is enforced via Sprint.VALID_TRANSITIONS (PLANNED -> ACTIVE ->
COMPLETED, no skipping, no reopening). At most one sprint per board is
ACTIVE at a time.

Functions flush but do NOT commit — the caller commits.
"""

import logging
from datetime import date

from sqlalchemy import or_

from workboard.errors import InvalidInput, InvalidOperation, InvalidState, NotFound
from workboard.extensions import db
from workboard.models.board import Board, WorkflowStatus
from workboard.models.project import Project
from workboard.models.sprint import Sprint
from workboard.models.tarefa import Tarefa
from workboard.services.audit_service import record_event
from workboard.services.tarefa_service import log_activity, sanitize, get_tarefa

logger = logging.getLogger(__name__)


def _parse_date(value, field):
    """Accept a date, an ISO ``YYYY-MM-DD`` string, or None."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise InvalidInput(f"Invalid {field} '{value}'. Use YYYY-MM-DD.") from e


def _check_dates(start_date, end_date):
    if start_date and end_date and end_date < start_date:
        raise InvalidInput("end_date cannot be before start_date.")


def get_sprint(sprint_id):
    sprint = db.session.get(Sprint, sprint_id)
    if sprint is None:
        raise NotFound(f"Sprint {sprint_id} not found.")
    return sprint


def list_sprints(project_id, board_id=None, state=None):
    """Sprints of a project, newest first."""
    query = Sprint.query.filter_by(project_id=project_id)
    if board_id:
        query = query.filter_by(board_id=board_id)
    if state:
        query = query.filter_by(state=state)
    return query.order_by(Sprint.created_at.desc()).all()


def create_sprint(project_id, name, board_id=None, goal=None, start_date=None,
                  end_date=None, actor_id=None):
    """Create a PLANNED sprint.

    Raises:
        NotFound: If the project or board is missing.
        InvalidInput: If the name is empty or the dates are inverted.
    """
    if db.session.get(Project, project_id) is None:
        raise NotFound(f"Project {project_id} not found.")

    name = sanitize(name)
    if not name:
        raise InvalidInput("Sprint name is required.")

    if board_id is not None:
        board = db.session.get(Board, board_id)
        if board is None or board.project_id != project_id:
            raise NotFound(f"Board {board_id} not found.")

    start_date = _parse_date(start_date, "start_date")
    end_date = _parse_date(end_date, "end_date")
    _check_dates(start_date, end_date)

    sprint = Sprint(
        project_id=project_id,
        board_id=board_id,
        name=name[:255],
        goal=sanitize(goal) or None,
        start_date=start_date,
        end_date=end_date,
        state="PLANNED",
        created_by=actor_id,
    )
    db.session.add(sprint)
    db.session.flush()

    record_event(project_id, actor_id, "sprint.created", sprint_id=sprint.id, name=sprint.name)
    logger.info(f"Created sprint {sprint.id} ({sprint.name}) in project {project_id}")
    return sprint


def update_sprint(sprint_id, name=None, goal=None, start_date=None, end_date=None):
    """Partial update of name, goal and dates. Completed sprints are frozen."""
    sprint = get_sprint(sprint_id)
    if sprint.state == "COMPLETED":
        raise InvalidState(f"Sprint '{sprint.name}' is completed and cannot be edited.")

    if name is not None:
        name = sanitize(name)
        if not name:
            raise InvalidInput("Sprint name cannot be empty.")
        sprint.name = name[:255]
    if goal is not None:
        sprint.goal = sanitize(goal) or None

    new_start = _parse_date(start_date, "start_date") if start_date is not None else sprint.start_date
    new_end = _parse_date(end_date, "end_date") if end_date is not None else sprint.end_date
    _check_dates(new_start, new_end)
    sprint.start_date = new_start
    sprint.end_date = new_end

    db.session.flush()
    return sprint


def _check_transition(sprint, new_state):
    allowed = Sprint.VALID_TRANSITIONS.get(sprint.state, [])
    if new_state not in allowed:
        logger.warning(
            f"Refused sprint transition {sprint.state} -> {new_state} for {sprint.id}"
        )
        raise InvalidState(
            f"Cannot move sprint '{sprint.name}' from {sprint.state} to {new_state}."
        )


def start_sprint(sprint_id, actor_id=None):
    """PLANNED -> ACTIVE. Fills start_date with today when unset.

    Raises:
        InvalidState: If the sprint is not PLANNED or its board already
            has an ACTIVE sprint.
    """
    sprint = get_sprint(sprint_id)
    _check_transition(sprint, "ACTIVE")

    same_board = (
        Sprint.board_id == sprint.board_id
        if sprint.board_id
        else Sprint.board_id.is_(None)
    )
    active = Sprint.query.filter(
        Sprint.project_id == sprint.project_id,
        same_board,
        Sprint.state == "ACTIVE",
        Sprint.id != sprint.id,
    ).first()
    if active is not None:
        raise InvalidState(f"Sprint '{active.name}' is already active on this board.")

    start_date = sprint.start_date or date.today()
    _check_dates(start_date, sprint.end_date)
    sprint.state = "ACTIVE"
    sprint.start_date = start_date
    db.session.flush()

    record_event(
        sprint.project_id,
        actor_id,
        "sprint.started",
        sprint_id=sprint.id,
        start_date=sprint.start_date.isoformat(),
    )
    logger.info(f"Started sprint {sprint.id} ({sprint.name})")
    return sprint


def complete_sprint(sprint_id, actor_id=None):
    """ACTIVE -> COMPLETED. Unfinished tasks go back to the backlog.

    A task is finished when its status is flagged final.

    Returns:
        dict with the "sprint" and "returned_to_backlog" task count.

    Raises:
        InvalidState: If the sprint is not ACTIVE.
    """
    sprint = get_sprint(sprint_id)
    _check_transition(sprint, "COMPLETED")

    sprint.state = "COMPLETED"
    if sprint.end_date is None or (sprint.start_date and sprint.end_date < sprint.start_date):
        sprint.end_date = date.today()

    unfinished = (
        Tarefa.query
        .outerjoin(WorkflowStatus, Tarefa.status_id == WorkflowStatus.id)
        .filter(
            Tarefa.sprint_id == sprint.id,
            or_(WorkflowStatus.id.is_(None), WorkflowStatus.is_final.is_(False)),
        )
        .all()
    )
    for tarefa in unfinished:
        tarefa.sprint_id = None
        log_activity(
            tarefa.id,
            actor_id,
            "sprint_changed",
            field_name="sprint",
            old_value=sprint.name,
            new_value=None,
        )
    db.session.flush()

    record_event(
        sprint.project_id,
        actor_id,
        "sprint.completed",
        sprint_id=sprint.id,
        end_date=sprint.end_date.isoformat(),
        returned_to_backlog=len(unfinished),
    )
    logger.info(
        f"Completed sprint {sprint.id} ({sprint.name}); "
        f"{len(unfinished)} unfinished tasks returned to backlog"
    )
    return {"sprint": sprint, "returned_to_backlog": len(unfinished)}


# ─── Backlog ─────────────────────────────────────────────────────

def assign_to_sprint(tarefa_id, sprint_id, actor_id=None):
    """Put a task in a sprint, or back in the backlog when sprint_id is None.

    Raises:
        NotFound: If the task is missing.
        InvalidOperation: If the sprint belongs to another project or is
            already completed.
    """
    tarefa = get_tarefa(tarefa_id)

    sprint = None
    if sprint_id is not None:
        sprint = db.session.get(Sprint, sprint_id)
        if sprint is None:
            raise NotFound(f"Sprint {sprint_id} not found.")
        if sprint.project_id != tarefa.project_id:
            raise InvalidOperation("Sprint belongs to another project.")
        if sprint.state == "COMPLETED":
            raise InvalidOperation(f"Sprint '{sprint.name}' is already completed.")

    if tarefa.sprint_id == sprint_id:
        return tarefa

    old_sprint = db.session.get(Sprint, tarefa.sprint_id) if tarefa.sprint_id else None
    tarefa.sprint_id = sprint_id
    log_activity(
        tarefa.id,
        actor_id,
        "sprint_changed",
        field_name="sprint",
        old_value=old_sprint.name if old_sprint else None,
        new_value=sprint.name if sprint else None,
    )
    db.session.flush()
    return tarefa


def reorder_backlog(project_id, ordered_tarefa_ids, actor_id=None):
    """Assign backlog_order = index to the given tasks, in order.

    Sprint-assigned tasks are not filtered out; callers pass backlog tasks.

    Raises:
        InvalidInput: If the list is empty or not a list.
        NotFound: If any id is not a task of this project.
    """
    if not isinstance(ordered_tarefa_ids, (list, tuple)) or not ordered_tarefa_ids:
        raise InvalidInput("ordered_tarefa_ids must be a non-empty list.")

    ordered_tarefa_ids = list(dict.fromkeys(ordered_tarefa_ids))
    tarefas = Tarefa.query.filter(
        Tarefa.project_id == project_id,
        Tarefa.id.in_(ordered_tarefa_ids),
    ).all()
    by_id = {t.id: t for t in tarefas}
    missing = [tid for tid in ordered_tarefa_ids if tid not in by_id]
    if missing:
        raise NotFound(f"Tarefa {missing[0]} not found in this project.")

    for index, tarefa_id in enumerate(ordered_tarefa_ids):
        tarefa = by_id[tarefa_id]
        if tarefa.backlog_order == index:
            continue
        old_order = tarefa.backlog_order
        tarefa.backlog_order = index
        log_activity(
            tarefa.id,
            actor_id,
            "reordered",
            field_name="backlog_order",
            old_value=old_order,
            new_value=index,
        )
    db.session.flush()
    return [by_id[tid] for tid in ordered_tarefa_ids]


def list_backlog(project_id):
    """Tasks without a sprint, by backlog_order (unordered ones last)."""
    return (
        Tarefa.query
        .filter_by(project_id=project_id, sprint_id=None)
        .order_by(
            Tarefa.backlog_order.is_(None),
            Tarefa.backlog_order,
            Tarefa.created_at,
        )
        .all()
    )
