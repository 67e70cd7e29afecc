"""Auth blueprint — /auth/*

Session login for API clients. Accepts form posts or JSON bodies.
CSRF stays on for these routes; GET /auth/login hands out the token.
"""

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf
from werkzeug.security import check_password_hash

from workboard.extensions import limiter
from workboard.models.user import User

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _login_rate_limit():
    return current_app.config["LOGIN_RATE_LIMIT"]


# ──────────────────────────────────────────────
# GET/POST /auth/login
# ──────────────────────────────────────────────

@auth_bp.route("/login", methods=["GET", "POST"])
@limiter.limit(_login_rate_limit, methods=["POST"])
def login():
    """Email + password login.

    GET: return a CSRF token for the login POST
    POST: check credentials, start the session
    """
    if request.method == "GET":
        return jsonify({"csrf_token": generate_csrf()})

    data = request.get_json(silent=True) or request.form
    email = (data.get("email") or "").lower().strip()
    password = data.get("password") or ""
    remember = bool(data.get("remember"))

    if not email or not password:
        return jsonify({
            "error": "invalid_input",
            "message": "Email and password are required.",
        }), 400

    user = User.query.filter_by(email=email).first()

    if user is None or not check_password_hash(user.password_hash, password):
        return jsonify({
            "error": "unauthorized",
            "message": "Invalid email or password.",
        }), 401

    if not user.is_active:
        return jsonify({
            "error": "forbidden",
            "message": "Your account has been deactivated.",
        }), 403

    login_user(user, remember=remember)
    current_app.logger.info(f"User {user.email} logged in")
    return jsonify({"user": user.to_dict()})


# ──────────────────────────────────────────────
# POST /auth/logout
# ──────────────────────────────────────────────

@auth_bp.route("/logout", methods=["POST"])
def logout():
    logout_user()
    return jsonify({"success": True})


# ──────────────────────────────────────────────
# GET /auth/me
# ──────────────────────────────────────────────

@auth_bp.route("/me")
@login_required
def me():
    """Current user and their project memberships."""
    memberships = [
        {"project_id": m.project_id, "role": m.role}
        for m in current_user.project_memberships
    ]
    return jsonify({"user": current_user.to_dict(), "memberships": memberships})
