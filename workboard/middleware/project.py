"""Project middleware — resolves the project behind an /api/* URL.

Runs before every request. Routes name their resource through a URL
parameter (project_id, board_id, workflow_id, tarefa_id or sprint_id);
the owning project is loaded and stored on g.project / g.project_id so
the role decorators can check membership.

Missing resources abort with 404 before the view runs.
"""

from flask import abort, g, request

from workboard.extensions import db
from workboard.models.board import Board, Workflow
from workboard.models.project import Project
from workboard.models.sprint import Sprint
from workboard.models.tarefa import Tarefa


def _project_id_from_view_args(view_args):
    if "project_id" in view_args:
        return view_args["project_id"]

    if "board_id" in view_args:
        board = db.session.get(Board, view_args["board_id"])
        return board.project_id if board else None

    if "workflow_id" in view_args:
        workflow = db.session.get(Workflow, view_args["workflow_id"])
        if workflow is None or workflow.board is None:
            return None
        return workflow.board.project_id

    if "tarefa_id" in view_args:
        tarefa = db.session.get(Tarefa, view_args["tarefa_id"])
        return tarefa.project_id if tarefa else None

    if "sprint_id" in view_args:
        sprint = db.session.get(Sprint, view_args["sprint_id"])
        return sprint.project_id if sprint else None

    return False


def resolve_project():
    """Before-request hook for API routes.

    Only runs on /api/ routes that carry a resource id in the URL.
    """
    g.project = None
    g.project_id = None

    if request.view_args is None or not request.path.startswith("/api/"):
        return

    project_id = _project_id_from_view_args(request.view_args)
    if project_id is False:
        return
    if project_id is None:
        abort(404)

    project = db.session.get(Project, project_id)
    if project is None:
        abort(404)

    g.project = project
    g.project_id = project.id


def init_project_middleware(app):
    """Register the project resolver as a before_request hook."""
    app.before_request(resolve_project)
