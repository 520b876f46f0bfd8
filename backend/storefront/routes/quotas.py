# Overview: Flask API routes for user quotas; parses input and returns JSON responses.

"""
Quota API routes

Admin:  list all users' quotas, override quotas/usage.
Self:   read own quotas, advisory check-order before checkout.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import quota_service
from ..services.quota_service import QuotaExceededError
from ..validation import ValidationError, NotFoundError
from ..identifiers import normalize_id
from ..decorators import require_auth, require_admin, is_self_or_admin


quotas_bp = Blueprint("quotas", __name__, url_prefix="/api/quotas")


@quotas_bp.get("/users")
@require_auth
@require_admin
def list_user_quotas_route():
    return jsonify(quota_service.list_user_quotas()), 200


@quotas_bp.get("/users/<user_id>")
@require_auth
def get_user_quotas_route(user_id: str):
    """Returns {userId, email, username, quotas, usage}."""
    try:
        uid = normalize_id(user_id)
        if not is_self_or_admin(user_id=uid):
            return jsonify({"error": "Admin access required"}), 403
        return jsonify(quota_service.get_quotas(uid)), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to load user quotas")
        return jsonify({"error": "Internal server error"}), 500


@quotas_bp.put("/users/<user_id>")
@require_auth
@require_admin
def set_user_quotas_route(user_id: str):
    """
    Body: {quotas?: {...}, usage?: {...}}

    Partial update. Negative numbers are stored as 0.
    """
    try:
        uid = normalize_id(user_id)
        data = request.get_json(silent=True) or {}
        result = quota_service.set_quotas(
            uid,
            quotas=data.get("quotas"),
            usage=data.get("usage"),
            actor=g.current_user.username,
        )
        return jsonify(result), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to set user quotas")
        return jsonify({"error": "Internal server error"}), 500


@quotas_bp.post("/check-order/<user_id>")
@require_auth
def check_order_route(user_id: str):
    """
    Advisory quota check. Body: {orderValue, productCount}.

    200 {canOrder: true, quotas, usage}, or the same rejection body and
    status order creation would return.
    """
    try:
        uid = normalize_id(user_id)
        if not is_self_or_admin(user_id=uid):
            return jsonify({"error": "Admin access required"}), 403

        data = request.get_json(silent=True) or {}
        missing = [f for f in ("orderValue", "productCount") if data.get(f) is None]
        if missing:
            return jsonify({"error": f"Missing required fields: {', '.join(missing)}"}), 400

        result = quota_service.check_order(uid, data["orderValue"], data["productCount"])
        return jsonify(result), 200

    except QuotaExceededError as e:
        return jsonify(e.decision.to_dict()), e.decision.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to check order quota")
        return jsonify({"error": "Internal server error"}), 500
