"""
Custom route decorators for access control.

- project_role_required: ensures user is logged in AND holds one of the
  given roles in the project resolved from the URL by the project
  middleware. The role is stored on g.project_role.
"""

from functools import wraps

from flask import abort, g
from flask_login import current_user, login_required

from workboard.services.permission_service import READER_ROLES, get_project_role


def project_role_required(*roles):
    """Require login + a project role in ``roles`` (any member when empty)."""
    allowed = roles or READER_ROLES

    def decorator(f):
        @wraps(f)
        @login_required
        def decorated(*args, **kwargs):
            # g.project_id is set by project middleware
            if getattr(g, "project_id", None) is None:
                abort(404)

            role = get_project_role(current_user.id, g.project_id)
            if role is None or role not in allowed:
                abort(403)

            g.project_role = role
            return f(*args, **kwargs)

        return decorated

    return decorator
