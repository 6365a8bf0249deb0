# Overview: Flask API routes for farm registration; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import FarmOpsError
from ..services import tenant_service
from ..decorators import require_actor


farms_bp = Blueprint("farms", __name__, url_prefix="/api/farms")


@farms_bp.post("")
@require_actor
def create_farm_route():
    """
    Register a farm and bind the caller to it.

    Admins stay global; any other caller becomes the farm_owner.
    """
    try:
        data = request.get_json(silent=True) or {}

        binding = tenant_service.create_farm_with_owner(data, g.current_user.id)

        message = "Farm registered successfully"
        if not binding.user.is_admin:
            message = "Farm registered successfully and user promoted to farm owner"

        return jsonify({**binding.to_dict(), "message": message}), 201

    except FarmOpsError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create farm")
        return jsonify({"error": "Failed to create farm"}), 500
