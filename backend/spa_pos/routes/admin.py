# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

"""
Admin routes for user management.

Two roles exist: admin and staff. Every endpoint here is admin-only.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import User
from ..services import auth_service, session_service
from ..services.auth_service import AuthError, PasswordValidationError
from ..decorators import require_auth, require_admin

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/users")
@require_auth
@require_admin
def list_users():
    """
    List users.

    Query params:
    - include_inactive: bool (default false) - include deactivated users
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"

    query = db.session.query(User)
    if not include_inactive:
        query = query.filter_by(is_active=True)

    users = [u.to_dict() for u in query.order_by(User.username).all()]
    return jsonify({"users": users, "count": len(users)})


@admin_bp.post("/users")
@require_auth
@require_admin
def create_user():
    """
    Create a user.

    Request body:
    {
        "username": "jane",
        "email": "jane@example.com",
        "password": "Str0ng!pass",
        "role": "staff",          // optional, admin or staff
        "name": "Jane Doe"        // optional
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        user = auth_service.create_user(
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password") or "",
            role=data.get("role") or "staff",
            name=data.get("name"),
        )
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("User %s created by %s", user.username, g.current_user.username)
    return jsonify({"user": user.to_dict()}), 201


@admin_bp.post("/users/<int:user_id>/deactivate")
@require_auth
@require_admin
def deactivate_user(user_id: int):
    """
    Deactivate a user account and revoke its sessions.

    The user is logged out at once and cannot log back in.
    """
    user = db.session.get(User, user_id)

    if not user:
        return jsonify({"error": "User not found"}), 404

    if not user.is_active:
        return jsonify({"error": "User is already deactivated"}), 400

    if user.id == g.current_user.id:
        return jsonify({"error": "Cannot deactivate your own account"}), 400

    user.is_active = False
    revoked_count = session_service.revoke_all_user_sessions(user.id)
    db.session.commit()

    current_app.logger.info("User %s deactivated, %s sessions revoked", user.username, revoked_count)
    return jsonify({
        "message": f"User {user.username} deactivated",
        "sessions_revoked": revoked_count,
    })


@admin_bp.post("/users/<int:user_id>/reactivate")
@require_auth
@require_admin
def reactivate_user(user_id: int):
    try:
        user = auth_service.set_active(user_id, True)
    except AuthError:
        return jsonify({"error": "User not found"}), 404

    return jsonify({"message": f"User {user.username} reactivated", "user": user.to_dict()})
