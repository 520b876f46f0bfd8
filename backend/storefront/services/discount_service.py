# Overview: Discount points accrual formula, tier table and point redemption.

"""
Discount Points Service

Shoppers earn 1 point per full 40 currency units of an accepted order
(credited by order_service.create_order) and spend them on one of four
fixed percentage-off tiers.

Redemption debits immediately. There is no reservation: if the shopper
abandons checkout after redeeming, the points are gone. Every balance
change is mirrored by a PointsTransaction row in the same commit.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import select, update

from ..extensions import db
from ..models import User, PointsTransaction
from ..models.rewards import TXN_REDEEM
from ..validation import ValidationError, NotFoundError
from .concurrency import run_with_retry


POINTS_AMOUNT_STEP = Decimal(40)


@dataclass(frozen=True)
class DiscountTier:
    points: int
    discount: int  # percent off

    def to_dict(self) -> dict:
        return {"points": self.points, "discount": self.discount}


DISCOUNT_TIERS = (
    DiscountTier(points=20, discount=10),
    DiscountTier(points=40, discount=15),
    DiscountTier(points=60, discount=20),
    DiscountTier(points=80, discount=25),
)


class InsufficientPointsError(Exception):
    """Raised when a balance cannot cover the requested tier."""
    def __init__(self, message: str = "Not enough discount points", details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def points_for_amount(amount) -> int:
    """
    Points earned for an order total: floor(amount / 40).

    Exact for any number of decimal places: 39.999 earns 0.
    """
    amount = Decimal(amount)
    if amount <= 0:
        return 0
    return int(amount // POINTS_AMOUNT_STEP)


def list_tiers() -> list[dict]:
    return [tier.to_dict() for tier in DISCOUNT_TIERS]


def find_tier(requested) -> DiscountTier:
    """
    Resolve a requested percentage to its tier by exact match.

    Raises ValidationError("Discount value is required") for missing or
    falsy input and ValidationError("Invalid discount option") when no
    tier offers exactly that percentage.
    """
    if not requested:
        raise ValidationError("Discount value is required")
    if isinstance(requested, bool):
        raise ValidationError("Invalid discount option")
    try:
        value = Decimal(requested.strip()) if isinstance(requested, str) else Decimal(requested)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("Invalid discount option")

    for tier in DISCOUNT_TIERS:
        if value == tier.discount:
            return tier
    raise ValidationError("Invalid discount option")


def current_points(user_id: int) -> int:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user.discount_points


def redeem(user_id: int, requested_discount) -> dict:
    """
    Spend points on a discount tier.

    Returns {"discount": <percent>, "updatedPoints": <new balance>}.

    The debit is a conditional UPDATE (balance >= cost), so two concurrent
    redemptions can never drive the balance negative. A failed redemption
    leaves the balance untouched.
    """
    tier = find_tier(requested_discount)

    def _op():
        try:
            user = db.session.get(User, user_id)
            if not user:
                raise NotFoundError("User not found")

            if user.discount_points < tier.points:
                raise InsufficientPointsError(details={
                    "required": tier.points,
                    "available": user.discount_points,
                })

            result = db.session.execute(
                update(User)
                .where(User.id == user_id, User.discount_points >= tier.points)
                .values(
                    discount_points=User.discount_points - tier.points,
                    version_id=User.version_id + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # Balance was spent by a concurrent request since the read
                raise InsufficientPointsError(details={"required": tier.points})

            balance = db.session.execute(
                select(User.discount_points).where(User.id == user_id)
            ).scalar_one()

            db.session.add(PointsTransaction(
                user_id=user_id,
                transaction_type=TXN_REDEEM,
                points=-tier.points,
                balance_after=balance,
                discount_percent=tier.discount,
            ))
            db.session.commit()
            return balance
        except Exception:
            db.session.rollback()
            raise

    balance = run_with_retry(_op)

    current_app.logger.info(
        "User %s redeemed %d points for %d%% off (balance %d)",
        user_id, tier.points, tier.discount, balance,
    )
    return {"discount": tier.discount, "updatedPoints": balance}


def points_history(user_id: int, limit: int = 100) -> list[dict]:
    rows = (
        db.session.query(PointsTransaction)
        .filter_by(user_id=user_id)
        .order_by(PointsTransaction.id.desc())
        .limit(limit)
        .all()
    )
    return [row.to_dict() for row in rows]
