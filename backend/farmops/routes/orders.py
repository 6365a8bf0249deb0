# Overview: Flask API routes for marketplace orders; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..errors import FarmOpsError, ValidationError
from ..services import order_service
from ..decorators import require_actor, require_farm
from ..validation import coerce_int, ensure_object


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_actor
@require_farm
def create_order_route():
    """
    Create an order for the caller's farm.

    Prices come from the product rows; any price sent by the client is ignored.
    Stock conflicts answer 409 with the offending products in details.
    """
    try:
        data = ensure_object(request.get_json(silent=True) or {})
        items = data.get("items")

        if data.get("customer_id") is None:
            raise ValidationError("customer_id is required")
        customer_id = coerce_int("customer_id", data.get("customer_id"))

        result = order_service.create_order_with_items(
            tenant_id=g.farm_id,
            customer_id=customer_id,
            actor_id=g.current_user.id,
            delivery=data,
            items=items,
        )

        return jsonify({"message": "Order created successfully", **result.to_dict()}), 201

    except FarmOpsError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Failed to create order"}), 500


@orders_bp.get("/<int:order_id>")
@require_actor
@require_farm
def get_order_route(order_id: int):
    """Get an order of the caller's farm with its items."""
    try:
        result = order_service.get_order_for_farm(db.session, order_id, g.farm_id)
        return jsonify(result.to_dict()), 200

    except FarmOpsError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load order %s", order_id)
        return jsonify({"error": "Failed to load order"}), 500
