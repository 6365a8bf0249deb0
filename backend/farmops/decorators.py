# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User


ACTOR_HEADER = "X-User-Id"


def require_actor(f):
    """
    Resolve the calling user and establish tenant context.

    Authentication happens upstream; the gateway forwards the authenticated
    user id in the X-User-Id header. Sets the following Flask g attributes:
    - g.current_user: The calling User object
    - g.farm_id: The user's farm (tenant) ID, None for admins and customers

    Returns 401 if the header is missing, malformed or names no user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw_id = (request.headers.get(ACTOR_HEADER) or "").strip()
        if not raw_id:
            return jsonify({"error": "Authentication required"}), 401

        try:
            user_id = int(raw_id)
        except ValueError:
            return jsonify({"error": "Invalid user identity"}), 401

        user = db.session.query(User).filter_by(id=user_id).first()
        if not user:
            return jsonify({"error": "User not found"}), 401

        g.current_user = user
        g.farm_id = user.farm_id

        return f(*args, **kwargs)

    return decorated_function


def require_farm(f):
    """Require the caller to be bound to a farm. Use after @require_actor."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not getattr(g, "farm_id", None):
            return jsonify({"error": "User must be associated with a farm"}), 400
        return f(*args, **kwargs)

    return decorated_function
