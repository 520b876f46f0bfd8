# Overview: Order creation under quota admission, plus order listing and fulfilment updates.

"""
Order Service

create_order is the only multi-step write in the system:

    lookup user -> admission check -> claim quota slot + credit points
    -> persist order + EARN ledger row -> single commit

Claiming the slot is one conditional UPDATE on the user row that re-checks
every quota in its WHERE clause (compare-and-increment). Two requests that
both pass the admission check against the same snapshot cannot both claim
the last slot: the loser updates zero rows, re-reads the user and gets the
rejection the fresh snapshot produces.

The order, the usage/points update and the ledger row share one
transaction; any failure before commit rolls all of them back.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import current_app
from sqlalchemy import case, or_, select, update

from ..extensions import db
from ..models import User, Order, PointsTransaction
from ..models.orders import ORDER_STATUSES
from ..models.rewards import TXN_EARN
from ..time_utils import utc_today
from ..validation import ValidationError, ConflictError, NotFoundError, parse_amount
from .concurrency import run_with_retry
from .discount_service import points_for_amount
from .quota_service import QuotaExceededError, evaluate_for_user


# Re-reads allowed when a concurrent writer changes the user row between
# the admission check and the claim.
ADMISSION_ATTEMPTS = 3


class OrderError(Exception):
    """Raised for order operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip()) or value == {}


def _validate_draft(draft: dict) -> tuple[str, Decimal, list]:
    if not isinstance(draft, dict):
        raise ValidationError("Invalid JSON payload")

    username = draft.get("username")
    if not isinstance(username, str) or not username.strip():
        raise ValidationError("username is required")

    if draft.get("totalAmount") is None:
        raise ValidationError("totalAmount is required")
    total = parse_amount(draft["totalAmount"], "totalAmount")
    if total <= 0:
        raise ValidationError("totalAmount must be greater than 0")

    products = draft.get("products")
    if not isinstance(products, list) or not products:
        raise ValidationError("products must be a non-empty list")

    for key in ("address", "payment"):
        if _is_blank(draft.get(key)):
            raise ValidationError(f"{key} is required")

    return username.strip(), total, products


def _claim_admission(user: User, *, product_count: int, total: Decimal, points: int, today: date) -> bool:
    """
    Atomically consume one daily order slot and credit points.

    Returns False when the row no longer satisfies the quotas (another
    request took the slot or an admin lowered a limit).
    """
    stmt = (
        update(User)
        .where(
            User.id == user.id,
            or_(
                User.last_order_date.is_(None),
                User.last_order_date != today,
                User.orders_today < User.max_orders_per_day,
            ),
            User.max_products_per_order >= product_count,
            User.max_total_order_value >= total,
        )
        .values(
            orders_today=case((User.last_order_date == today, User.orders_today + 1), else_=1),
            last_order_date=today,
            discount_points=User.discount_points + points,
            version_id=User.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount == 1


def _record_points(user_id: int, order: Order, points: int) -> None:
    if points <= 0:
        return
    balance = db.session.execute(
        select(User.discount_points).where(User.id == user_id)
    ).scalar_one()
    db.session.add(PointsTransaction(
        user_id=user_id,
        transaction_type=TXN_EARN,
        points=points,
        balance_after=balance,
        order_id=order.id,
    ))


def create_order(draft: dict, today: date | None = None) -> Order:
    """
    Create an order for draft["username"] after quota admission.

    Raises:
    - ValidationError: malformed draft
    - NotFoundError: no such user
    - QuotaExceededError: admission rejected (decision attached)
    - ConflictError: the user row kept changing under us
    """
    username, total, products = _validate_draft(draft)
    today = today or utc_today()

    def _op():
        try:
            for attempt in range(ADMISSION_ATTEMPTS):
                user = db.session.query(User).filter_by(username=username).first()
                if not user:
                    raise NotFoundError("User not found")

                decision = evaluate_for_user(
                    user, total_amount=total, product_count=len(products), today=today
                )
                if not decision.allowed:
                    raise QuotaExceededError(decision)

                points = points_for_amount(total)

                if _claim_admission(user, product_count=len(products), total=total, points=points, today=today):
                    break

                current_app.logger.warning(
                    "Quota slot for %s taken concurrently (attempt %d/%d)",
                    username, attempt + 1, ADMISSION_ATTEMPTS,
                )
                db.session.rollback()
            else:
                raise ConflictError("Order could not be admitted due to concurrent updates; please retry")

            order = Order(
                user_id=user.id,
                username=user.username,
                total_amount=total,
                products=products,
                address=draft.get("address"),
                payment=draft.get("payment"),
                variant=draft.get("variant"),
                points_earned=points,
            )
            db.session.add(order)
            db.session.flush()

            _record_points(user.id, order, points)

            db.session.commit()
            return order
        except Exception:
            db.session.rollback()
            raise

    order = run_with_retry(_op)

    current_app.logger.info(
        "Order %s created for %s: total=%s products=%d points=+%d",
        order.id, order.username, total, len(products), order.points_earned,
    )
    return order


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


def list_orders() -> list[Order]:
    return db.session.query(Order).order_by(Order.id.desc()).all()


def list_user_orders(username: str) -> list[Order]:
    return (
        db.session.query(Order)
        .filter_by(username=username)
        .order_by(Order.id.desc())
        .all()
    )


def update_order_status(order_id: int, status: str) -> Order:
    if not isinstance(status, str) or not status.strip():
        raise ValidationError("status is required")
    status = status.strip().upper()
    if status not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")

    def _op():
        order = get_order(order_id)
        if order.status == "CANCELLED" and status != "CANCELLED":
            raise OrderError("Cannot change status of a CANCELLED order")
        order.status = status
        db.session.commit()
        return order

    return run_with_retry(_op)


def update_order_tracking(order_id: int, tracking_number: str, shipping_carrier: str) -> Order:
    if _is_blank(tracking_number):
        raise ValidationError("trackingNumber is required")
    if _is_blank(shipping_carrier):
        raise ValidationError("shippingCarrier is required")

    def _op():
        order = get_order(order_id)
        order.tracking_number = str(tracking_number).strip()
        order.shipping_carrier = str(shipping_carrier).strip()
        db.session.commit()
        return order

    return run_with_retry(_op)
