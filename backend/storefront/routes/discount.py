# Overview: Flask API routes for discount points; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import discount_service
from ..services.discount_service import InsufficientPointsError
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth


discount_bp = Blueprint("discount", __name__, url_prefix="/api/discount")


@discount_bp.get("/options")
def list_options_route():
    """Public list of discount tiers: [{points, discount}, ...]."""
    return jsonify(discount_service.list_tiers()), 200


@discount_bp.get("/points")
@require_auth
def get_points_route():
    """Current discount points of the logged-in user."""
    try:
        points = discount_service.current_points(g.current_user.id)
        return jsonify({"points": points}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to load discount points")
        return jsonify({"error": "Internal server error"}), 500


@discount_bp.post("/apply")
@require_auth
def apply_discount_route():
    """
    Redeem points for a discount tier.

    Body: {"discount": <percent>}
    Returns {"discount", "updatedPoints"}. Points are debited immediately.
    """
    try:
        data = request.get_json(silent=True) or {}
        result = discount_service.redeem(g.current_user.id, data.get("discount"))
        return jsonify(result), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InsufficientPointsError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to apply discount")
        return jsonify({"error": "Internal server error"}), 500


@discount_bp.get("/history")
@require_auth
def points_history_route():
    """Point ledger of the logged-in user, newest first."""
    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit, 500))
    try:
        return jsonify(discount_service.points_history(g.current_user.id, limit=limit)), 200
    except Exception:
        current_app.logger.exception("Failed to load points history")
        return jsonify({"error": "Internal server error"}), 500
