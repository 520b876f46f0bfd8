# Overview: Order-quota admission checks and the admin quota/usage override surface.

"""
Quota Service

Two halves:

1. The admission check (evaluate). A pure decision over a snapshot of a
   user's quotas and usage plus the proposed order's value and product
   count. First failing check wins; nothing is aggregated and nothing is
   written. Both the advisory check-order endpoint and order creation use
   it, so the daily comparison is the same ">=" everywhere.

2. Admin overrides (get_quotas / set_quotas / list_user_quotas). Partial
   updates: only supplied keys change, numbers are clamped to >= 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import User
from ..time_utils import utc_today, parse_iso_date, to_iso_date
from ..validation import (
    ValidationError,
    NotFoundError,
    coerce_int,
    coerce_amount,
    parse_amount,
    clamp_non_negative,
    amount_to_json,
)
from .concurrency import lock_for_update, run_with_retry


REASON_DAILY_ORDER_LIMIT = "DAILY_ORDER_LIMIT"
REASON_PRODUCT_COUNT_LIMIT = "PRODUCT_COUNT_LIMIT"
REASON_ORDER_VALUE_LIMIT = "ORDER_VALUE_LIMIT"


@dataclass(frozen=True)
class Quotas:
    max_orders_per_day: int
    max_products_per_order: int
    max_total_order_value: Decimal


@dataclass(frozen=True)
class Usage:
    orders_today: int
    last_order_date: date | None


@dataclass(frozen=True)
class QuotaDecision:
    """
    Outcome of an admission check.

    allowed=True carries nothing else. A rejection carries a stable
    machine-readable reason, the human error string, the limit that was
    hit and either `used` (daily count) or `requested` (product count /
    order value).
    """
    allowed: bool
    reason: str | None = None
    error: str | None = None
    limit: int | Decimal | None = None
    used: int | None = None
    requested: int | Decimal | None = None
    status_code: int = 200

    def to_dict(self) -> dict:
        body = {
            "error": self.error,
            "reason": self.reason,
            "limit": amount_to_json(self.limit),
        }
        if self.used is not None:
            body["used"] = self.used
        if self.requested is not None:
            body["requested"] = amount_to_json(self.requested)
        return body


ADMIT = QuotaDecision(allowed=True)


class QuotaExceededError(Exception):
    """Raised when an order fails admission; carries the QuotaDecision."""
    def __init__(self, decision: QuotaDecision):
        super().__init__(decision.error)
        self.decision = decision


def quotas_of(user: User) -> Quotas:
    return Quotas(
        max_orders_per_day=user.max_orders_per_day,
        max_products_per_order=user.max_products_per_order,
        max_total_order_value=Decimal(user.max_total_order_value),
    )


def usage_of(user: User) -> Usage:
    return Usage(orders_today=user.orders_today, last_order_date=user.last_order_date)


def evaluate(
    quotas: Quotas,
    usage: Usage,
    *,
    total_amount: Decimal,
    product_count: int,
    today: date | None = None,
) -> QuotaDecision:
    """
    Decide whether an order may proceed. Side-effect free.

    Order of checks (first failure wins):
    1. Daily order count, only when usage is dated today
    2. Products per order
    3. Total order value
    """
    today = today or utc_today()

    if usage.last_order_date == today and usage.orders_today >= quotas.max_orders_per_day:
        return QuotaDecision(
            allowed=False,
            reason=REASON_DAILY_ORDER_LIMIT,
            error="Daily order limit exceeded",
            limit=quotas.max_orders_per_day,
            used=usage.orders_today,
            status_code=429,
        )

    if product_count > quotas.max_products_per_order:
        return QuotaDecision(
            allowed=False,
            reason=REASON_PRODUCT_COUNT_LIMIT,
            error="Product count per order exceeded",
            limit=quotas.max_products_per_order,
            requested=product_count,
            status_code=400,
        )

    if total_amount > quotas.max_total_order_value:
        return QuotaDecision(
            allowed=False,
            reason=REASON_ORDER_VALUE_LIMIT,
            error="Total order value exceeded",
            limit=quotas.max_total_order_value,
            requested=total_amount,
            status_code=400,
        )

    return ADMIT


def evaluate_for_user(user: User, *, total_amount: Decimal, product_count: int, today: date | None = None) -> QuotaDecision:
    return evaluate(
        quotas_of(user),
        usage_of(user),
        total_amount=total_amount,
        product_count=product_count,
        today=today,
    )


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def get_quotas(user_id: int) -> dict:
    return _get_user(user_id).to_quota_dict()


def list_user_quotas() -> list[dict]:
    users = db.session.query(User).order_by(User.id.asc()).all()
    return [u.to_quota_dict() for u in users]


def check_order(user_id: int, order_value, product_count, today: date | None = None) -> dict:
    """
    Advisory pre-check for a prospective order. Never writes.

    Raises QuotaExceededError with the same decision order creation would
    produce against the current snapshot.
    """
    total = parse_amount(order_value, "orderValue")
    count = coerce_int(product_count, "productCount")
    if count < 0:
        raise ValidationError("productCount must be >= 0")

    user = _get_user(user_id)
    decision = evaluate_for_user(user, total_amount=total, product_count=count, today=today)
    if not decision.allowed:
        raise QuotaExceededError(decision)

    return {
        "canOrder": True,
        "quotas": user.quotas_dict(),
        "usage": user.usage_dict(),
    }


# (wire key, column, coercer)
_QUOTA_FIELDS = (
    ("maxOrdersPerDay", "max_orders_per_day", coerce_int),
    ("maxProductsPerOrder", "max_products_per_order", coerce_int),
    ("maxTotalOrderValue", "max_total_order_value", coerce_amount),
)


def _build_patch(quotas: dict | None, usage: dict | None) -> tuple[dict, dict]:
    """
    Validate admin input into (column patch, echo of applied wire values).

    Only keys present in the input are applied. Numbers are clamped to 0.
    """
    if quotas is not None and not isinstance(quotas, dict):
        raise ValidationError("quotas must be an object")
    if usage is not None and not isinstance(usage, dict):
        raise ValidationError("usage must be an object")

    patch: dict = {}
    echo: dict = {}

    for key, column, coerce in _QUOTA_FIELDS:
        if quotas and key in quotas:
            if quotas[key] is None:
                raise ValidationError(f"quotas.{key} cannot be null")
            value = clamp_non_negative(coerce(quotas[key], f"quotas.{key}"))
            patch[column] = value
            echo[f"quotas.{key}"] = amount_to_json(value)

    if usage:
        if "ordersToday" in usage:
            if usage["ordersToday"] is None:
                raise ValidationError("usage.ordersToday cannot be null")
            value = clamp_non_negative(coerce_int(usage["ordersToday"], "usage.ordersToday"))
            patch["orders_today"] = value
            echo["usage.ordersToday"] = value
        if "lastOrderDate" in usage:
            try:
                day = parse_iso_date(usage["lastOrderDate"])
            except ValueError:
                raise ValidationError("usage.lastOrderDate must be a YYYY-MM-DD date")
            patch["last_order_date"] = day
            echo["usage.lastOrderDate"] = to_iso_date(day)

    return patch, echo


def set_quotas(user_id: int, quotas: dict | None = None, usage: dict | None = None, actor: str | None = None) -> dict:
    """
    Admin override of a user's quotas and/or usage counters.

    Partial update semantics; an empty update still verifies the user
    exists. Raises NotFoundError / ValidationError.
    """
    patch, echo = _build_patch(quotas, usage)

    def _op():
        user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
        if not user:
            raise NotFoundError("User not found")
        for column, value in patch.items():
            setattr(user, column, value)
        db.session.commit()
        return user

    user = run_with_retry(_op)

    current_app.logger.info(
        "Quota override for user %s by %s: %s", user.id, actor or "system", echo,
    )

    message = (
        "User quotas and usage updated successfully"
        if usage is not None
        else "User quotas updated successfully"
    )
    return {
        "success": True,
        "message": message,
        "updatedData": echo,
    }
