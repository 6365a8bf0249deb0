# Overview: Flask API routes for the caller's notification inbox.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..errors import FarmOpsError
from ..services import notification_service
from ..decorators import require_actor
from ..validation import coerce_int


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_actor
def list_notifications_route():
    try:
        default_limit = current_app.config["NOTIFICATION_PAGE_SIZE"]
        limit = coerce_int("limit", request.args.get("limit", default_limit), minimum=1)
        limit = min(limit, 100)

        notifications = notification_service.list_notifications(db.session, g.current_user.id, limit)
        return jsonify({"notifications": [n.to_dict() for n in notifications]}), 200

    except FarmOpsError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list notifications")
        return jsonify({"error": "Failed to list notifications"}), 500


@notifications_bp.post("/<int:notification_id>/read")
@require_actor
def mark_notification_read_route(notification_id: int):
    try:
        notification = notification_service.mark_read(db.session, notification_id, g.current_user.id)
        return jsonify({"notification": notification.to_dict()}), 200

    except FarmOpsError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to mark notification %s read", notification_id)
        db.session.rollback()
        return jsonify({"error": "Failed to update notification"}), 500
