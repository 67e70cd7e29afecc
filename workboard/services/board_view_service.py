"""Board view — read model the board UI renders.

One column per status of the board's default workflow, in position order,
each with its tasks and the statuses its outgoing transitions point to.
"""

from workboard.models.tarefa import Tarefa
from workboard.services import workflow_service


def get_board_view(board_id, sprint_id=None):
    """Build the board view.

    Args:
        board_id: Board UUID string.
        sprint_id: Optional filter; only tasks of that sprint are shown.

    Returns:
        dict with "board", "workflow", "columns" and "transitions".

    Raises:
        NotFound: If the board or its default workflow is missing.
    """
    board = workflow_service.get_board(board_id)
    data = workflow_service.ensure_workflow_and_statuses(board.id)
    workflow = data["workflow"]
    statuses = data["statuses"]
    transitions = workflow_service.list_transitions(workflow.id)

    outgoing = {}
    for transition in transitions:
        outgoing.setdefault(transition.from_status_id, []).append(transition.to_status_id)

    query = Tarefa.query.filter_by(board_id=board.id)
    if sprint_id:
        query = query.filter_by(sprint_id=sprint_id)
    tarefas = query.order_by(
        Tarefa.backlog_order.is_(None),
        Tarefa.backlog_order,
        Tarefa.created_at,
    ).all()

    by_status = {}
    for tarefa in tarefas:
        by_status.setdefault(tarefa.status_id, []).append(tarefa.to_dict())

    columns = [
        {
            "status": status.to_dict(),
            "tarefas": by_status.get(status.id, []),
            "allowed_transitions": outgoing.get(status.id, []),
        }
        for status in statuses
    ]

    return {
        "board": board.to_dict(),
        "workflow": workflow.to_dict(),
        "columns": columns,
        "transitions": [t.to_dict() for t in transitions],
    }
