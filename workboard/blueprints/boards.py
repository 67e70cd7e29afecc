"""Boards blueprint — /api/projects/<id>/boards, /api/boards/*, /api/workflows/*

Boards, their default workflow and its columns (statuses). Structural
changes need an elevated project role (admin or tech_lead); reads need
membership. JSON API, CSRF-exempt (session auth + role checks).

Route Map:
  GET    /api/projects/<project_id>/boards                  — List boards
  POST   /api/projects/<project_id>/boards                  — Create board + workflow
  GET    /api/boards/<board_id>                             — Board + workflow + columns
  PUT    /api/boards/<board_id>                             — Update board
  DELETE /api/boards/<board_id>                             — Delete board (admin)
  GET    /api/boards/<board_id>/view                        — Board view read model
  POST   /api/workflows/<workflow_id>/statuses              — Create column
  PUT    /api/workflows/<workflow_id>/statuses/<status_id>  — Update column
  DELETE /api/workflows/<workflow_id>/statuses/<status_id>  — Delete column
  POST   /api/workflows/<workflow_id>/statuses/reorder      — Reorder columns
  POST   /api/workflows/<workflow_id>/columns/merge         — Merge column names
"""

from flask import Blueprint, g, jsonify, request
from flask_login import current_user

from workboard.decorators import project_role_required
from workboard.extensions import db
from workboard.services import board_view_service, workflow_service
from workboard.services.permission_service import ELEVATED_ROLES

boards_bp = Blueprint("boards", __name__, url_prefix="/api")


def _json_body():
    return request.get_json(force=True, silent=True) or {}


def _workflow_dict(workflow):
    statuses = workflow_service.ordered_statuses(workflow.id)
    transitions = workflow_service.list_transitions(workflow.id)
    return {
        **workflow.to_dict(),
        "statuses": [s.to_dict() for s in statuses],
        "transitions": [t.to_dict() for t in transitions],
    }


# ─── Boards ──────────────────────────────────────────────────────

@boards_bp.route("/projects/<project_id>/boards")
@project_role_required()
def list_boards(project_id):
    boards = workflow_service.list_boards(g.project_id)
    return jsonify([b.to_dict() for b in boards])


@boards_bp.route("/projects/<project_id>/boards", methods=["POST"])
@project_role_required(*ELEVATED_ROLES)
def create_board(project_id):
    data = _json_body()
    result = workflow_service.create_board_with_workflow(
        g.project_id,
        data.get("name"),
        board_type=data.get("type"),
        column_names=data.get("columns"),
        actor_id=current_user.id,
        description=data.get("description"),
    )
    db.session.commit()
    return jsonify({
        "board": result["board"].to_dict(),
        "workflow": _workflow_dict(result["workflow"]),
    }), 201


@boards_bp.route("/boards/<board_id>")
@project_role_required()
def get_board(board_id):
    board = workflow_service.get_board(board_id)
    workflow = workflow_service.get_default_workflow(board.id)
    return jsonify({
        "board": board.to_dict(),
        "workflow": _workflow_dict(workflow) if workflow else None,
    })


@boards_bp.route("/boards/<board_id>", methods=["PUT"])
@project_role_required(*ELEVATED_ROLES)
def update_board(board_id):
    data = _json_body()
    board = workflow_service.update_board(
        board_id,
        name=data.get("name"),
        board_type=data.get("type"),
        description=data.get("description"),
    )
    db.session.commit()
    return jsonify(board.to_dict())


@boards_bp.route("/boards/<board_id>", methods=["DELETE"])
@project_role_required("admin")
def delete_board(board_id):
    workflow_service.delete_board(board_id, actor_id=current_user.id)
    db.session.commit()
    return jsonify({"success": True})


@boards_bp.route("/boards/<board_id>/view")
@project_role_required()
def board_view(board_id):
    view = board_view_service.get_board_view(
        board_id, sprint_id=request.args.get("sprint_id")
    )
    return jsonify(view)


# ─── Workflow statuses ───────────────────────────────────────────

@boards_bp.route("/workflows/<workflow_id>/statuses", methods=["POST"])
@project_role_required(*ELEVATED_ROLES)
def create_status(workflow_id):
    data = _json_body()
    status = workflow_service.create_status(
        workflow_id,
        data.get("name"),
        color=data.get("color"),
        actor_id=current_user.id,
    )
    db.session.commit()
    return jsonify(status.to_dict()), 201


@boards_bp.route("/workflows/<workflow_id>/statuses/<status_id>", methods=["PUT"])
@project_role_required(*ELEVATED_ROLES)
def update_status(workflow_id, status_id):
    data = _json_body()
    status = workflow_service.update_status(
        workflow_id,
        status_id,
        name=data.get("name"),
        color=data.get("color"),
    )
    db.session.commit()
    return jsonify(status.to_dict())


@boards_bp.route("/workflows/<workflow_id>/statuses/<status_id>", methods=["DELETE"])
@project_role_required(*ELEVATED_ROLES)
def delete_status(workflow_id, status_id):
    workflow_service.delete_status(workflow_id, status_id, actor_id=current_user.id)
    db.session.commit()
    return jsonify({"success": True})


@boards_bp.route("/workflows/<workflow_id>/statuses/reorder", methods=["POST"])
@project_role_required(*ELEVATED_ROLES)
def reorder_statuses(workflow_id):
    data = _json_body()
    statuses = workflow_service.reorder_statuses(
        workflow_id,
        data.get("status_ids"),
        actor_id=current_user.id,
    )
    db.session.commit()
    return jsonify([s.to_dict() for s in statuses])


@boards_bp.route("/workflows/<workflow_id>/columns/merge", methods=["POST"])
@project_role_required(*ELEVATED_ROLES)
def merge_columns(workflow_id):
    data = _json_body()
    columns = data.get("columns")
    if not isinstance(columns, list):
        columns = []
    workflow_service.merge_columns(workflow_id, columns, actor_id=current_user.id)
    db.session.commit()
    workflow = workflow_service.get_workflow(workflow_id)
    return jsonify(_workflow_dict(workflow))
