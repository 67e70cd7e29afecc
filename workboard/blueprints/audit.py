"""Audit blueprint — GET /api/projects/<project_id>/audit

Read-only trail of structural actions in a project. Elevated role required.
Optional query params: ?action=board.created&limit=50 (max 200).
"""

from flask import Blueprint, g, jsonify, request

from workboard.decorators import project_role_required
from workboard.services import audit_service
from workboard.services.permission_service import ELEVATED_ROLES

audit_bp = Blueprint("audit", __name__, url_prefix="/api")

MAX_LIMIT = 200


@audit_bp.route("/projects/<project_id>/audit")
@project_role_required(*ELEVATED_ROLES)
def list_events(project_id):
    limit = request.args.get("limit", 50, type=int)
    limit = max(1, min(limit, MAX_LIMIT))
    events = audit_service.list_events(
        g.project_id, action=request.args.get("action"), limit=limit
    )
    return jsonify([e.to_dict() for e in events])
