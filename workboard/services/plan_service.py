"""Plan service — imports a planner-produced task plan into a project.

A task plan looks like::

    {"type": "task_plan",
     "board": {"mode": "existing" | "new", "id": ..., "name": ...,
               "type": "KANBAN" | "SCRUM", "columns": [...]},
     "tasks": [{"title": ..., "description": ..., "type": ...,
                "priority": ..., "column": ..., "labels": [...]}]}

The plan is validated before anything is written. Board resolution,
column merging and task creation all happen in the caller's transaction,
so an import either creates every task or nothing.

Functions flush but do NOT commit — the caller commits.
"""

import logging
from datetime import date

from flask import current_app, has_app_context

from workboard.errors import InvalidPlan, NotFound
from workboard.extensions import db
from workboard.models.project import Project
from workboard.services import tarefa_service, workflow_service
from workboard.services.audit_service import record_event
from workboard.services.workflow_service import MAX_STATUS_NAME, normalize_label

logger = logging.getLogger(__name__)

TASK_PLAN_TYPE = "task_plan"
MAX_TASKS_PER_PLAN = 40
BOARD_MODES = ("existing", "new")


def _max_tasks():
    if has_app_context():
        return current_app.config.get("MAX_TASKS_PER_PLAN", MAX_TASKS_PER_PLAN)
    return MAX_TASKS_PER_PLAN


def validate_plan(plan):
    """Return the usable task entries of a plan.

    Keeps tasks whose title is still non-empty once markup is stripped,
    capped at MAX_TASKS_PER_PLAN.

    Raises:
        InvalidPlan: On a wrong shape or when no valid task remains.
    """
    if not isinstance(plan, dict):
        raise InvalidPlan("Task plan must be an object.")
    if plan.get("type") != TASK_PLAN_TYPE:
        raise InvalidPlan(f"Task plan type must be '{TASK_PLAN_TYPE}'.")
    if not isinstance(plan.get("tasks"), list):
        raise InvalidPlan("Task plan must contain a list of tasks.")
    board = plan.get("board")
    if board is not None and not isinstance(board, dict):
        raise InvalidPlan("Task plan board must be an object.")

    tasks = [
        task for task in plan["tasks"]
        if isinstance(task, dict)
        and isinstance(task.get("title"), str)
        and tarefa_service.sanitize(task["title"])
    ][:_max_tasks()]

    if not tasks:
        raise InvalidPlan("No valid task found in the plan.")
    return tasks


def board_mode(board_data):
    """Explicit mode when valid, else "existing" if an id is given, else "new"."""
    mode = board_data.get("mode")
    if mode in BOARD_MODES:
        return mode
    return "existing" if board_data.get("id") else "new"


def find_existing_board(project_id, board_data):
    """Resolve the target board by id, then by name, then the newest board."""
    boards = workflow_service.list_boards(project_id)
    if not boards:
        return None

    board_id = board_data.get("id")
    if board_id:
        for board in boards:
            if board.id == board_id:
                return board

    name = board_data.get("name")
    if isinstance(name, str) and name.strip():
        wanted = normalize_label(name)
        for board in boards:
            if normalize_label(board.name) == wanted:
                return board

    return boards[0]


def desired_columns(board_data, tasks):
    """Board columns followed by any new task columns, first spelling wins."""
    names = []
    columns = board_data.get("columns")
    if isinstance(columns, list):
        names.extend(columns)
    names.extend(task.get("column") for task in tasks)
    return workflow_service.dedupe_columns(names)


def default_board_name():
    return f"Board IA {date.today().strftime('%d/%m/%Y')}"


def import_plan(project_id, actor_id, plan):
    """Create the tasks of a plan, on an existing or a new board.

    Args:
        project_id: Target project UUID string.
        actor_id: User importing the plan (task reporter).
        plan: Parsed task plan dict.

    Returns:
        dict with created_count, created_tasks ({id, key, title, status_id}),
        board_id, board_label and a human-readable summary.

    Raises:
        InvalidPlan: If the plan is malformed or has no valid task.
        NotFound: If the project does not exist.
    """
    tasks = validate_plan(plan)

    if db.session.get(Project, project_id) is None:
        raise NotFound(f"Project {project_id} not found.")

    board_data = plan.get("board") or {}
    mode = board_mode(board_data)

    board = None
    if mode == "existing":
        board = find_existing_board(project_id, board_data)

    if board is None:
        name = board_data.get("name")
        if not isinstance(name, str) or not name.strip():
            name = default_board_name()
        board_type = "SCRUM" if board_data.get("type") == "SCRUM" else "KANBAN"
        columns = board_data.get("columns")
        data = workflow_service.create_board_with_workflow(
            project_id,
            name.strip(),
            board_type=board_type,
            column_names=columns if isinstance(columns, list) else None,
            actor_id=actor_id,
        )
        board = data["board"]
        statuses = data["statuses"]
    else:
        data = workflow_service.ensure_workflow_and_statuses(board.id)
        statuses = workflow_service.merge_columns(
            data["workflow"].id,
            desired_columns(board_data, tasks),
            actor_id=actor_id,
        )

    by_name = {normalize_label(s.name): s for s in statuses}
    initial = workflow_service.get_initial_status(statuses)

    created = []
    for task in tasks:
        column = task.get("column")
        status = None
        if isinstance(column, str):
            status = by_name.get(normalize_label(column.strip()[:MAX_STATUS_NAME]))
        status = status or initial
        tarefa = tarefa_service.create_tarefa(
            project_id,
            actor_id,
            task["title"],
            board_id=board.id,
            tarefa_type=task.get("type"),
            description=task.get("description") if isinstance(task.get("description"), str) else None,
            priority=task.get("priority"),
            status_id=status.id if status else None,
            labels=task.get("labels"),
        )
        created.append({
            "id": tarefa.id,
            "key": tarefa.key,
            "title": tarefa.title,
            "status_id": tarefa.status_id,
        })

    count = len(created)
    summary = f'Created {count} {"task" if count == 1 else "tasks"} on board "{board.name}".'
    columns = board_data.get("columns")
    if isinstance(columns, list) and columns:
        summary += f" Columns used/created: {', '.join(str(c) for c in columns)}."

    record_event(
        project_id,
        actor_id,
        "plan.imported",
        board_id=board.id,
        board_mode=mode,
        created_count=count,
        keys=[t["key"] for t in created],
    )
    logger.info(
        f"Imported plan into board {board.id} ({board.name}): {count} tasks "
        f"for project {project_id}"
    )
    return {
        "created_count": count,
        "created_tasks": created,
        "board_id": board.id,
        "board_label": board.name,
        "summary": summary,
    }
