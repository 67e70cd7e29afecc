"""Plans blueprint — POST /api/projects/<project_id>/plans/import

Imports a planner-produced task plan in one transaction. Elevated role
required; rate-limited per client address.
"""

from flask import Blueprint, current_app, g, jsonify, request
from flask_login import current_user

from workboard.decorators import project_role_required
from workboard.extensions import db, limiter
from workboard.services import plan_service
from workboard.services.permission_service import ELEVATED_ROLES

plans_bp = Blueprint("plans", __name__, url_prefix="/api")


def _plan_import_rate_limit():
    return current_app.config["PLAN_IMPORT_RATE_LIMIT"]


@plans_bp.route("/projects/<project_id>/plans/import", methods=["POST"])
@limiter.limit(_plan_import_rate_limit)
@project_role_required(*ELEVATED_ROLES)
def import_plan(project_id):
    """Body is the task plan itself, or {"plan": <task plan>}."""
    data = request.get_json(force=True, silent=True)
    plan = data.get("plan", data) if isinstance(data, dict) else data

    result = plan_service.import_plan(g.project_id, current_user.id, plan)
    db.session.commit()
    return jsonify(result), 201
