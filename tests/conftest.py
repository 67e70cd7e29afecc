"""Shared test fixtures for the Workboard test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, CSRF off)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- seed_data: a project (slug "proj") with one user per role plus an outsider
"""

import pytest
from werkzeug.security import generate_password_hash

from workboard import create_app
from workboard.extensions import db as _db
from workboard.models.user import User
from workboard.models.project import Project, ProjectMember


PASSWORD = "s3cret-pass"


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


def _make_user(email, full_name):
    user = User(
        email=email,
        password_hash=generate_password_hash(PASSWORD),
        full_name=full_name,
    )
    _db.session.add(user)
    _db.session.flush()
    return user


@pytest.fixture
def seed_data(db_session):
    """Seed a project with an admin (creator), tech lead, developer and viewer.

    Returns a dict with the created objects and their plain IDs.
    """
    admin = _make_user("admin@workboard.test", "Admin User")
    lead = _make_user("lead@workboard.test", "Tech Lead")
    dev = _make_user("dev@workboard.test", "Developer")
    viewer = _make_user("viewer@workboard.test", "Viewer")
    outsider = _make_user("outsider@workboard.test", "Outsider")

    project = Project(name="Test Project", slug="proj", created_by=admin.id)
    _db.session.add(project)
    _db.session.flush()

    for user, role in ((admin, "admin"), (lead, "tech_lead"), (dev, "developer"), (viewer, "viewer")):
        _db.session.add(ProjectMember(user_id=user.id, project_id=project.id, role=role))

    # --- Second project, for isolation checks ---
    other = Project(name="Other Project", slug="other", created_by=outsider.id)
    _db.session.add(other)
    _db.session.flush()

    _db.session.commit()

    return {
        "admin": admin,
        "admin_id": admin.id,
        "lead": lead,
        "lead_id": lead.id,
        "dev": dev,
        "dev_id": dev.id,
        "viewer": viewer,
        "viewer_id": viewer.id,
        "outsider": outsider,
        "outsider_id": outsider.id,
        "project": project,
        "project_id": project.id,
        "other_project_id": other.id,
        "password": PASSWORD,
    }
