"""Sprints blueprint — sprint lifecycle and the backlog.

Route Map:
  GET  /api/projects/<project_id>/sprints           — List sprints (?state=)
  POST /api/projects/<project_id>/sprints           — Create sprint
  PUT  /api/sprints/<sprint_id>                     — Update sprint
  POST /api/sprints/<sprint_id>/start               — PLANNED -> ACTIVE
  POST /api/sprints/<sprint_id>/complete            — ACTIVE -> COMPLETED
  POST /api/tarefas/<tarefa_id>/sprint              — Assign to sprint / backlog
  GET  /api/projects/<project_id>/backlog           — Backlog tasks
  POST /api/projects/<project_id>/backlog/reorder   — Reorder backlog
"""

from flask import Blueprint, g, jsonify, request
from flask_login import current_user

from workboard.decorators import project_role_required
from workboard.extensions import db
from workboard.services import sprint_service
from workboard.services.permission_service import ELEVATED_ROLES, WRITER_ROLES

sprints_bp = Blueprint("sprints", __name__, url_prefix="/api")


def _json_body():
    return request.get_json(force=True, silent=True) or {}


# ─── Sprints ─────────────────────────────────────────────────────

@sprints_bp.route("/projects/<project_id>/sprints")
@project_role_required()
def list_sprints(project_id):
    sprints = sprint_service.list_sprints(
        g.project_id,
        board_id=request.args.get("board_id"),
        state=request.args.get("state"),
    )
    return jsonify([s.to_dict() for s in sprints])


@sprints_bp.route("/projects/<project_id>/sprints", methods=["POST"])
@project_role_required(*ELEVATED_ROLES)
def create_sprint(project_id):
    data = _json_body()
    sprint = sprint_service.create_sprint(
        g.project_id,
        data.get("name"),
        board_id=data.get("board_id"),
        goal=data.get("goal"),
        start_date=data.get("start_date"),
        end_date=data.get("end_date"),
        actor_id=current_user.id,
    )
    db.session.commit()
    return jsonify(sprint.to_dict()), 201


@sprints_bp.route("/sprints/<sprint_id>", methods=["PUT"])
@project_role_required(*ELEVATED_ROLES)
def update_sprint(sprint_id):
    data = _json_body()
    sprint = sprint_service.update_sprint(
        sprint_id,
        name=data.get("name"),
        goal=data.get("goal"),
        start_date=data.get("start_date"),
        end_date=data.get("end_date"),
    )
    db.session.commit()
    return jsonify(sprint.to_dict())


@sprints_bp.route("/sprints/<sprint_id>/start", methods=["POST"])
@project_role_required(*ELEVATED_ROLES)
def start_sprint(sprint_id):
    sprint = sprint_service.start_sprint(sprint_id, actor_id=current_user.id)
    db.session.commit()
    return jsonify(sprint.to_dict())


@sprints_bp.route("/sprints/<sprint_id>/complete", methods=["POST"])
@project_role_required(*ELEVATED_ROLES)
def complete_sprint(sprint_id):
    result = sprint_service.complete_sprint(sprint_id, actor_id=current_user.id)
    db.session.commit()
    return jsonify({
        **result["sprint"].to_dict(),
        "returned_to_backlog": result["returned_to_backlog"],
    })


# ─── Backlog ─────────────────────────────────────────────────────

@sprints_bp.route("/tarefas/<tarefa_id>/sprint", methods=["POST"])
@project_role_required(*WRITER_ROLES)
def assign_to_sprint(tarefa_id):
    data = _json_body()
    tarefa = sprint_service.assign_to_sprint(
        tarefa_id, data.get("sprint_id") or None, actor_id=current_user.id
    )
    db.session.commit()
    return jsonify(tarefa.to_dict())


@sprints_bp.route("/projects/<project_id>/backlog")
@project_role_required()
def list_backlog(project_id):
    tarefas = sprint_service.list_backlog(g.project_id)
    return jsonify([t.to_dict() for t in tarefas])


@sprints_bp.route("/projects/<project_id>/backlog/reorder", methods=["POST"])
@project_role_required(*WRITER_ROLES)
def reorder_backlog(project_id):
    data = _json_body()
    tarefas = sprint_service.reorder_backlog(
        g.project_id, data.get("tarefa_ids"), actor_id=current_user.id
    )
    db.session.commit()
    return jsonify([t.to_dict() for t in tarefas])
