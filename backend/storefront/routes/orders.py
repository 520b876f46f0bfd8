# Overview: Flask API routes for orders; parses input and returns JSON responses.

# backend/storefront/routes/orders.py
"""Order API routes with quota enforcement"""

from flask import Blueprint, request, jsonify, current_app

from ..services import order_service
from ..services.order_service import OrderError
from ..services.quota_service import QuotaExceededError
from ..validation import ValidationError, ConflictError, NotFoundError
from ..identifiers import normalize_id
from ..decorators import require_auth, require_admin, is_self_or_admin


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Place an order.

    Body: {username, totalAmount, products[], address, payment, variant?}
    Shoppers may only order for themselves; admins for anyone.

    Quota rejections answer 429 (daily limit) or 400 (product count /
    order value) with {error, reason, limit, used|requested}.
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload"}), 400

        username = data.get("username")
        if isinstance(username, str) and not is_self_or_admin(username=username.strip()):
            return jsonify({"error": "Cannot place orders for another user"}), 403

        order = order_service.create_order(data)
        return jsonify(order.to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except QuotaExceededError as e:
        return jsonify(e.decision.to_dict()), e.decision.status_code
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
@require_auth
@require_admin
def list_orders_route():
    """All orders, newest first. Admin only."""
    try:
        return jsonify([o.to_dict() for o in order_service.list_orders()]), 200
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/user/<username>")
@require_auth
def list_user_orders_route(username: str):
    """Orders placed by one user. Self or admin."""
    if not is_self_or_admin(username=username):
        return jsonify({"error": "Cannot view orders of another user"}), 403
    try:
        return jsonify([o.to_dict() for o in order_service.list_user_orders(username)]), 200
    except Exception:
        current_app.logger.exception("Failed to list orders for %s", username)
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<order_id>")
@require_auth
def get_order_route(order_id: str):
    try:
        order = order_service.get_order(normalize_id(order_id))
        if not is_self_or_admin(user_id=order.user_id):
            return jsonify({"error": "Order not found"}), 404
        return jsonify(order.to_dict()), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/<order_id>/status")
@require_auth
@require_admin
def update_status_route(order_id: str):
    """Body: {status}. Admin only."""
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.update_order_status(normalize_id(order_id), data.get("status"))
        return jsonify(order.to_dict()), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/<order_id>/tracking")
@require_auth
@require_admin
def update_tracking_route(order_id: str):
    """Body: {trackingNumber, shippingCarrier}. Admin only."""
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.update_order_tracking(
            normalize_id(order_id),
            data.get("trackingNumber"),
            data.get("shippingCarrier"),
        )
        return jsonify(order.to_dict()), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update order tracking")
        return jsonify({"error": "Internal server error"}), 500
