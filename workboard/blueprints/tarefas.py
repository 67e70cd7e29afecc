"""Tarefas blueprint — /api/projects/<id>/tarefas, /api/tarefas/*

Task CRUD, free-form moves, comments and the activity log. Writers
(admin, tech_lead, developer) edit tasks; viewers read. Deleting a task
needs an elevated role.

Route Map:
  GET    /api/projects/<project_id>/tarefas      — List tasks (?board_id=)
  POST   /api/projects/<project_id>/tarefas      — Create task
  GET    /api/tarefas/<tarefa_id>                — Task detail
  PUT    /api/tarefas/<tarefa_id>                — Update fields
  PUT    /api/tarefas/<tarefa_id>/move           — Move to any column
  DELETE /api/tarefas/<tarefa_id>                — Delete task
  GET    /api/tarefas/<tarefa_id>/comments       — List comments
  POST   /api/tarefas/<tarefa_id>/comments       — Add comment
  GET    /api/tarefas/<tarefa_id>/activity       — Activity log
"""

from flask import Blueprint, g, jsonify, request
from flask_login import current_user

from workboard.decorators import project_role_required
from workboard.extensions import db
from workboard.services import tarefa_service
from workboard.services.permission_service import ELEVATED_ROLES, WRITER_ROLES

tarefas_bp = Blueprint("tarefas", __name__, url_prefix="/api")


def _json_body():
    return request.get_json(force=True, silent=True) or {}


@tarefas_bp.route("/projects/<project_id>/tarefas")
@project_role_required()
def list_tarefas(project_id):
    tarefas = tarefa_service.list_tarefas(
        g.project_id, board_id=request.args.get("board_id")
    )
    return jsonify([t.to_dict() for t in tarefas])


@tarefas_bp.route("/projects/<project_id>/tarefas", methods=["POST"])
@project_role_required(*WRITER_ROLES)
def create_tarefa(project_id):
    data = _json_body()
    tarefa = tarefa_service.create_tarefa(
        g.project_id,
        current_user.id,
        data.get("title"),
        board_id=data.get("board_id"),
        tarefa_type=data.get("type"),
        description=data.get("description"),
        priority=data.get("priority"),
        status_id=data.get("status_id"),
        assignee_id=data.get("assignee_id"),
        epic_id=data.get("epic_id"),
        sprint_id=data.get("sprint_id"),
        labels=data.get("labels"),
    )
    db.session.commit()
    return jsonify(tarefa.to_dict()), 201


@tarefas_bp.route("/tarefas/<tarefa_id>")
@project_role_required()
def get_tarefa(tarefa_id):
    tarefa = tarefa_service.get_tarefa(tarefa_id)
    return jsonify(tarefa.to_dict())


@tarefas_bp.route("/tarefas/<tarefa_id>", methods=["PUT"])
@project_role_required(*WRITER_ROLES)
def update_tarefa(tarefa_id):
    tarefa = tarefa_service.update_tarefa(
        tarefa_id, _json_body(), actor_id=current_user.id
    )
    db.session.commit()
    return jsonify(tarefa.to_dict())


@tarefas_bp.route("/tarefas/<tarefa_id>/move", methods=["PUT"])
@project_role_required(*WRITER_ROLES)
def move_tarefa(tarefa_id):
    data = _json_body()
    tarefa = tarefa_service.move_tarefa(
        tarefa_id, data.get("status_id"), actor_id=current_user.id
    )
    db.session.commit()
    return jsonify(tarefa.to_dict())


@tarefas_bp.route("/tarefas/<tarefa_id>", methods=["DELETE"])
@project_role_required(*ELEVATED_ROLES)
def delete_tarefa(tarefa_id):
    tarefa_service.delete_tarefa(tarefa_id, actor_id=current_user.id)
    db.session.commit()
    return jsonify({"success": True})


# ─── Comments & activity ─────────────────────────────────────────

@tarefas_bp.route("/tarefas/<tarefa_id>/comments")
@project_role_required()
def list_comments(tarefa_id):
    comments = tarefa_service.list_comments(tarefa_id)
    return jsonify([c.to_dict() for c in comments])


@tarefas_bp.route("/tarefas/<tarefa_id>/comments", methods=["POST"])
@project_role_required(*WRITER_ROLES)
def add_comment(tarefa_id):
    data = _json_body()
    comment = tarefa_service.add_comment(
        tarefa_id, current_user.id, data.get("content")
    )
    db.session.commit()
    return jsonify(comment.to_dict()), 201


@tarefas_bp.route("/tarefas/<tarefa_id>/activity")
@project_role_required()
def list_activity(tarefa_id):
    entries = tarefa_service.list_activity(tarefa_id)
    return jsonify([e.to_dict() for e in entries])
