# Overview: Flask API routes for daily flock records; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import FarmOpsError, ValidationError
from ..services import daily_record_service
from ..decorators import require_actor, require_farm
from ..validation import coerce_int, ensure_object


daily_records_bp = Blueprint("daily_records", __name__, url_prefix="/api/daily-records")


@daily_records_bp.post("")
@require_actor
@require_farm
def create_daily_record_route():
    """
    Submit a daily record for one of the caller's flocks.

    A repeat submission for the same flock and date is still accepted (201)
    but parked for manager review; the response then carries a message.
    A race with another approved record for that date answers 409.
    """
    try:
        data = ensure_object(request.get_json(silent=True) or {})

        if data.get("flock_id") is None:
            raise ValidationError("flock_id is required")
        flock_id = coerce_int("flock_id", data.pop("flock_id"))
        record_date = data.pop("record_date", None)

        record = daily_record_service.ingest_daily_record(
            g.current_user.id,
            flock_id,
            record_date,
            data,
        )

        body = record.to_dict()
        if record.is_pending_review:
            body["message"] = daily_record_service.PENDING_REVIEW_MESSAGE
        return jsonify(body), 201

    except FarmOpsError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create daily record")
        return jsonify({"error": "Failed to create daily record"}), 500
