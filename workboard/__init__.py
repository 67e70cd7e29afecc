import os
import json
import logging

import click
from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash

from workboard.config import config_by_name
from workboard.errors import EngineError
from workboard.extensions import db, migrate, login_manager, csrf, limiter


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from workboard import models  # noqa: F401

    # --- Project middleware ---
    from workboard.middleware.project import init_project_middleware
    init_project_middleware(app)

    # --- Register blueprints ---
    from workboard.blueprints.auth import auth_bp
    from workboard.blueprints.boards import boards_bp
    from workboard.blueprints.tarefas import tarefas_bp
    from workboard.blueprints.sprints import sprints_bp
    from workboard.blueprints.plans import plans_bp
    from workboard.blueprints.audit import audit_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(boards_bp)
    app.register_blueprint(tarefas_bp)
    app.register_blueprint(sprints_bp)
    app.register_blueprint(plans_bp)
    app.register_blueprint(audit_bp)

    # Exempt the JSON API from CSRF — session auth + project role checks
    csrf.exempt(boards_bp)
    csrf.exempt(tarefas_bp)
    csrf.exempt(sprints_bp)
    csrf.exempt(plans_bp)

    # --- Error handlers ---
    @app.errorhandler(EngineError)
    def engine_error(e):
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def storage_error(e):
        db.session.rollback()
        app.logger.error(f"Database error: {e}", exc_info=True)
        return jsonify({
            "error": "internal_error",
            "message": "The change could not be saved. Please retry.",
        }), 500

    @app.errorhandler(401)
    def unauthorized(e):
        return jsonify({"error": "unauthorized", "message": "Login required."}), 401

    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({
            "error": "forbidden",
            "message": "You do not have access to this resource.",
        }), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "not_found", "message": "Resource not found."}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({
            "error": "method_not_allowed",
            "message": "Method not allowed.",
        }), 405

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify({
            "error": "rate_limited",
            "message": "Too many requests. Slow down and retry.",
        }), 429

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-demo")
    @click.option("--email", default="admin@workboard.local", help="Admin email")
    @click.option("--password", default="admin123", help="Admin password")
    @click.option("--slug", default="DEMO", help="Project key prefix")
    def seed_demo(email, password, slug):
        """Create a demo user, project, admin membership and default board.

        Usage:
            flask seed-demo
            flask seed-demo --email lead@example.com --password s3cret --slug APP
        """
        from workboard.models.user import User
        from workboard.models.project import Project, ProjectMember
        from workboard.services import workflow_service

        # --- 1. User ---
        user = User.query.filter_by(email=email).first()
        if user:
            click.echo(f"User already exists: {email}")
        else:
            user = User(
                email=email,
                password_hash=generate_password_hash(password),
                full_name="Demo Admin",
            )
            db.session.add(user)
            db.session.flush()
            click.echo(f"Created user: {email}")

        # --- 2. Project ---
        project = Project.query.filter_by(slug=slug).first()
        if project:
            click.echo(f"Project already exists: {slug}")
        else:
            project = Project(name=f"{slug} demo project", slug=slug, created_by=user.id)
            db.session.add(project)
            db.session.flush()

            # --- 3. Membership ---
            db.session.add(ProjectMember(
                user_id=user.id, project_id=project.id, role="admin"
            ))

            # --- 4. Default board ---
            workflow_service.create_board_with_workflow(
                project.id, "Main board", board_type="KANBAN", actor_id=user.id
            )

        db.session.commit()

        click.echo("")
        click.echo("=" * 60)
        click.echo("Seed data created successfully!")
        click.echo("=" * 60)
        click.echo(f"  User:      {email} / {password}")
        click.echo(f"  Project:   {project.name} (id: {project.id})")
        click.echo("=" * 60)

    @app.cli.command("import-plan")
    @click.argument("slug")
    @click.argument("email")
    @click.argument("plan_file", type=click.File("r"))
    def import_plan(slug, email, plan_file):
        """Import a task plan JSON file into a project, as one transaction.

        Usage:
            flask import-plan DEMO admin@workboard.local plan.json
        """
        from workboard.models.user import User
        from workboard.models.project import Project
        from workboard.services import plan_service
        from workboard.services.permission_service import ELEVATED_ROLES, require_role

        project = Project.query.filter_by(slug=slug).first()
        if project is None:
            raise click.ClickException(f"Project not found: {slug}")
        user = User.query.filter_by(email=email).first()
        if user is None:
            raise click.ClickException(f"User not found: {email}")

        try:
            plan = json.load(plan_file)
        except ValueError as e:
            raise click.ClickException(f"Invalid JSON: {e}")

        try:
            require_role(user.id, project.id, ELEVATED_ROLES)
            result = plan_service.import_plan(project.id, user.id, plan)
            db.session.commit()
        except EngineError as e:
            db.session.rollback()
            raise click.ClickException(f"{e.kind}: {e.message}")

        click.echo(result["summary"])
        for task in result["created_tasks"]:
            click.echo(f"  {task['key']}  {task['title']}")
