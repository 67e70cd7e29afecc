"""Project roles.

admin and tech_lead may change board/workflow structure, run sprints and
import plans; developer may work on tasks; viewer only reads. A project's
creator is always admin.
"""

from workboard.errors import Forbidden
from workboard.models.project import Project, ProjectMember

ELEVATED_ROLES = ("admin", "tech_lead")
WRITER_ROLES = ("admin", "tech_lead", "developer")
READER_ROLES = ("admin", "tech_lead", "developer", "viewer")


def get_project_role(user_id, project_id):
    """The user's role in the project, or None when not a member."""
    project = Project.query.filter_by(id=project_id).first()
    if project is None:
        return None
    if project.created_by == user_id:
        return "admin"
    membership = ProjectMember.query.filter_by(
        user_id=user_id, project_id=project_id
    ).first()
    return membership.role if membership else None


def require_role(user_id, project_id, allowed_roles):
    """Return the user's role or raise Forbidden."""
    role = get_project_role(user_id, project_id)
    if role is None or role not in allowed_roles:
        raise Forbidden(
            f"This action requires one of the roles: {', '.join(allowed_roles)}."
        )
    return role
